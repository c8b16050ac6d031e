"""WebSocket server running the stabilization core for browser-side models.

The browser (or any client) runs the pose/detector model and posts each
frame's landmarks or boxes; the server runs one session tick per message and
replies with the resulting events. Every connection owns its own session, so
state is discarded when the client disconnects.

Endpoints:
- GET  /api/status       server and session counts
- GET  /api/config       effective configuration
- GET  /api/rules        ordered rule table (?mode=letters|numbers)
- GET  /api/lexicon      ASL alphabet reference
- GET  /api/levels       practice levels
- GET  /metrics          Prometheus metrics
- WS   /ws/gestures      {"type": "frame", "hands": [...]} -> {"type": "tick", ...}
- WS   /ws/detections    {"type": "frame", "detections": [...]} -> {"type": "tick", ...}

Usage:
    aurora-engine serve --port 8765
    # or
    uvicorn aurora_engine.server:app --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field, ValidationError

from aurora_engine import __version__
from aurora_engine.classifier import GestureClassifier, Mode
from aurora_engine.config import EngineConfig
from aurora_engine.lexicon import ASL_ALPHABET, recognizable_letters
from aurora_engine.metrics import MetricsCollector
from aurora_engine.pipeline import DetectionSession, GestureSession
from aurora_engine.practice import DEFAULT_LEVELS, PracticeSession

logger = logging.getLogger("aurora_engine.server")

app = FastAPI(title="AuroraEngine", version=__version__)


# --- State ---

class ServerState:
    def __init__(self):
        self.config = EngineConfig()
        self.metrics = MetricsCollector()
        self.gesture_clients = 0
        self.detection_clients = 0
        self.started = time.time()

    def configure(self, config: EngineConfig):
        self.config = config.validate()


state = ServerState()


# --- Message models ---

class HandFrameMessage(BaseModel):
    type: str = "frame"
    timestamp: Optional[float] = None  # ms; server clock when omitted
    hands: list[Any] = Field(default_factory=list)  # bad hands are dropped per hand
    frame_size: tuple[int, int] = (640, 480)
    mode: Optional[Mode] = None


class DetectionModel(BaseModel):
    label: str = Field(alias="class")
    bbox: tuple[float, float, float, float]
    score: float = Field(ge=0.0, le=1.0)

    model_config = {"populate_by_name": True}


class DetectionFrameMessage(BaseModel):
    type: str = "frame"
    timestamp: Optional[float] = None
    detections: list[DetectionModel] = Field(default_factory=list)


class PracticeStart(BaseModel):
    type: str = "practice"
    level: int = 0
    seed: Optional[int] = None


def _now_ms() -> float:
    return time.monotonic() * 1000.0


def _error(message: str) -> dict:
    return {"type": "error", "message": message}


# --- REST API ---

@app.get("/api/status")
async def api_status():
    return {
        "version": __version__,
        "uptime": round(time.time() - state.started, 1),
        "gesture_clients": state.gesture_clients,
        "detection_clients": state.detection_clients,
        "symbols_confirmed": state.metrics.symbol_counts,
        "objects_confirmed": state.metrics.object_counts,
    }


@app.get("/api/config")
async def api_config():
    return state.config.to_dict()


@app.get("/api/rules")
async def api_rules(mode: Mode = Mode.LETTERS):
    classifier = GestureClassifier(config=state.config.features)
    return {
        "mode": mode.value,
        "rules": [r.to_dict() for r in classifier.rules(mode)],
        "composites": [r.to_dict() for r in classifier.composite_rules],
    }


@app.get("/api/lexicon")
async def api_lexicon():
    classifier = GestureClassifier(config=state.config.features)
    recognizable = {e.letter for e in recognizable_letters(classifier.vocabulary(Mode.LETTERS))}
    return {
        "alphabet": [
            {**e.to_dict(), "recognizable": e.letter in recognizable} for e in ASL_ALPHABET
        ]
    }


@app.get("/api/levels")
async def api_levels():
    return {
        "levels": [
            {"index": i, "title": lvl.title, "kind": lvl.kind, "description": lvl.description}
            for i, lvl in enumerate(DEFAULT_LEVELS)
        ]
    }


@app.get("/metrics")
async def metrics():
    return PlainTextResponse(
        state.metrics.render(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


# --- WebSocket: gestures ---

def _gesture_reply(session: GestureSession, msg: HandFrameMessage,
                   practice: Optional[PracticeSession]) -> dict[str, Any]:
    if msg.mode is not None:
        session.mode = msg.mode
    now = msg.timestamp if msg.timestamp is not None else _now_ms()
    tick = session.process(msg.hands, now, msg.frame_size)

    reply: dict[str, Any] = {
        "type": "tick",
        "timestamp": now,
        "symbol": tick.symbol,
        "progress": round(tick.progress, 1),
        "confirmed": tick.confirmed,
        "announcement": tick.announcement,
        "rejected_hands": tick.rejected_hands,
    }
    if practice is not None and tick.confirmed is not None:
        evt = practice.feed(tick.confirmed)
        reply["practice"] = {
            "expected": evt.expected,
            "correct": evt.correct,
            "target_completed": evt.target_completed,
            "level_completed": evt.level_completed,
            "progress": round(evt.progress, 3),
            "next": practice.expected,
        }
    return reply


@app.websocket("/ws/gestures")
async def gestures_ws(ws: WebSocket):
    await ws.accept()
    session = GestureSession(config=state.config, metrics=state.metrics)
    practice: Optional[PracticeSession] = None
    state.gesture_clients += 1
    state.metrics.session_opened()
    logger.info("Gesture client connected (%d total)", state.gesture_clients)

    try:
        await ws.send_json({"type": "connected", "mode": session.mode.value})
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await ws.send_json(_error("invalid JSON"))
                continue

            kind = data.get("type") if isinstance(data, dict) else None
            if kind == "ping":
                await ws.send_json({"type": "pong", "server_time": time.time()})
            elif kind == "reset":
                session.reset()
                await ws.send_json({"type": "reset"})
            elif kind == "practice":
                try:
                    start = PracticeStart.model_validate(data)
                    level = DEFAULT_LEVELS[start.level]
                except (ValidationError, IndexError) as e:
                    await ws.send_json(_error(f"invalid practice request: {e}"))
                    continue
                practice = PracticeSession(level, seed=start.seed)
                await ws.send_json({
                    "type": "practice",
                    "title": level.title,
                    "targets": practice.targets,
                    "next": practice.expected,
                })
            elif kind == "unavailable":
                session.report_unavailable(str(data.get("reason", "client reported failure")))
            elif kind == "frame":
                try:
                    msg = HandFrameMessage.model_validate(data)
                except ValidationError as e:
                    await ws.send_json(_error(f"invalid frame: {e.errors()[0]['msg']}"))
                    continue
                await ws.send_json(_gesture_reply(session, msg, practice))
            else:
                await ws.send_json(_error(f"unknown message type {kind!r}"))
    except WebSocketDisconnect:
        pass
    finally:
        state.gesture_clients -= 1
        state.metrics.session_closed()
        logger.info("Gesture client disconnected (%d total)", state.gesture_clients)


# --- WebSocket: detections ---

@app.websocket("/ws/detections")
async def detections_ws(ws: WebSocket):
    await ws.accept()
    session = DetectionSession(config=state.config, metrics=state.metrics)
    state.detection_clients += 1
    state.metrics.session_opened()
    logger.info("Detection client connected (%d total)", state.detection_clients)

    try:
        await ws.send_json({"type": "connected", "navigation": session.navigation.last_instruction})
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await ws.send_json(_error("invalid JSON"))
                continue

            kind = data.get("type") if isinstance(data, dict) else None
            if kind == "ping":
                await ws.send_json({"type": "pong", "server_time": time.time()})
            elif kind == "reset":
                session.reset()
                await ws.send_json({"type": "reset"})
            elif kind == "unavailable":
                session.report_unavailable(str(data.get("reason", "client reported failure")))
            elif kind == "frame":
                try:
                    msg = DetectionFrameMessage.model_validate(data)
                except ValidationError as e:
                    await ws.send_json(_error(f"invalid frame: {e.errors()[0]['msg']}"))
                    continue
                now = msg.timestamp if msg.timestamp is not None else _now_ms()
                tick = session.process(
                    [{"label": d.label, "bbox": d.bbox, "score": d.score} for d in msg.detections],
                    now,
                )
                await ws.send_json({
                    "type": "tick",
                    "timestamp": now,
                    "detections": [d.to_dict() for d in tick.detections],
                    "navigation": tick.navigation,
                    "navigation_changed": tick.navigation_changed,
                    "confirmed": [e.to_dict() for e in tick.newly_confirmed],
                    "announcements": tick.announcements,
                    "history": [e.to_dict() for e in session.history],
                })
            else:
                await ws.send_json(_error(f"unknown message type {kind!r}"))
    except WebSocketDisconnect:
        pass
    finally:
        state.detection_clients -= 1
        state.metrics.session_closed()
        logger.info("Detection client disconnected (%d total)", state.detection_clients)


def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="AuroraEngine WebSocket Server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8765, help="Port")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args()

    if args.config:
        state.configure(EngineConfig.from_yaml(args.config))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
