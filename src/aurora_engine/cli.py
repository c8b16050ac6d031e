"""AuroraEngine CLI.

Usage:
    aurora-engine serve       Start the WebSocket server
    aurora-engine replay      Replay a recorded session through the core
    aurora-engine config      Validate and print the effective configuration
    aurora-engine rules       Show the ordered rule table for a mode
    aurora-engine lexicon     Show the fingerspelling reference
    aurora-engine benchmark   Time gesture ticks on synthetic hands
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

import typer

from aurora_engine.classifier import GestureClassifier, Mode
from aurora_engine.config import EngineConfig
from aurora_engine.errors import ConfigError, InputUnavailableError, RecordingError

app = typer.Typer(
    name="aurora-engine",
    help="🤟 Gesture and object stabilization core for assistive vision.",
    add_completion=False,
)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _load_config(path: Optional[str]) -> EngineConfig:
    if path is None:
        return EngineConfig()
    try:
        return EngineConfig.from_yaml(path)
    except ConfigError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8765, help="Port"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    log_level: str = typer.Option("info", help="Log level"),
):
    """Start the WebSocket server."""
    import uvicorn
    from aurora_engine.server import app as fastapi_app, state

    _setup_logging(log_level)
    state.configure(_load_config(config))
    if config:
        typer.echo(f"⚙️  Loaded config: {config}")

    typer.echo(f"🚀 Starting AuroraEngine server on {host}:{port}")
    uvicorn.run(fastapi_app, host=host, port=port, log_level=log_level)


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    mode: Mode = typer.Option(Mode.LETTERS, help="Classification mode for hand recordings"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recorded session and print every event it produces."""
    from aurora_engine.loop import FrameLoop
    from aurora_engine.pipeline import DetectionSession, GestureSession
    from aurora_engine.recorder import SessionPlayer

    _setup_logging(log_level)
    engine_config = _load_config(config)

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)
    try:
        player = SessionPlayer.load(path)
    except RecordingError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"▶️  Replaying {path.name} ({player.kind}, {player.frame_count} frames, "
        f"{player.duration / 1000:.1f}s)"
    )

    events = 0

    def count(_):
        nonlocal events
        events += 1

    if player.kind == "hands":
        session = GestureSession(config=engine_config, mode=mode)
        session.on_symbol_confirmed(lambda symbol, ts: typer.echo(f"   🤚 {symbol} @ {ts:.0f}ms"))
        session.on_symbol_confirmed(lambda symbol, ts: count(symbol))
    else:
        session = DetectionSession(config=engine_config)
        session.on_object_confirmed(
            lambda e: typer.echo(f"   📦 {e.label} confirmed @ {e.timestamp:.0f}ms")
        )
        session.on_object_confirmed(count)
        session.on_navigation_instruction(lambda text: typer.echo(f"   🧭 {text}"))
    session.on_announcement(lambda text: typer.echo(f"   🔊 {text}"))

    loop = FrameLoop(player.as_source(speed if realtime else None), session)
    try:
        ticks = asyncio.run(loop.run())
    except InputUnavailableError as e:
        typer.echo(f"❌ Input unavailable: {e.reason}", err=True)
        raise typer.Exit(1)

    typer.echo(f"\n✅ Replay complete. {ticks} ticks, {events} confirmations.")


@app.command("config")
def show_config(
    path: Optional[str] = typer.Argument(None, help="YAML config to validate"),
    output: Optional[str] = typer.Option(None, "-o", help="Write the effective config here"),
):
    """Validate a config file (or the defaults) and print the effective values."""
    engine_config = _load_config(path)
    text = engine_config.to_yaml(output)
    typer.echo(text, nl=False)
    if output:
        typer.echo(f"💾 Saved to: {output}")


@app.command()
def rules(
    mode: Mode = typer.Option(Mode.LETTERS, help="Rule table to show"),
):
    """Show the ordered rule table. Earlier rules win."""
    classifier = GestureClassifier()
    typer.echo(f"📋 {mode.value} (first match wins)\n")
    for i, rule in enumerate(classifier.rules(mode), 1):
        typer.echo(f"   {i:2d}. {rule.result:6s} {rule.description}")
    typer.echo("\n🙌 two-hand composites (checked first when two hands are visible)\n")
    for rule in classifier.composite_rules:
        typer.echo(f"       {rule.result:6s} {rule.description}")


@app.command()
def lexicon():
    """Show the fingerspelling alphabet and which letters are recognized."""
    from aurora_engine.lexicon import ASL_ALPHABET, recognizable_letters

    vocabulary = GestureClassifier().vocabulary(Mode.LETTERS)
    known = {e.letter for e in recognizable_letters(vocabulary)}
    for entry in ASL_ALPHABET:
        mark = "✅" if entry.letter in known else "  "
        typer.echo(f"   {mark} {entry.letter}  {entry.emoji}  {entry.name}")
    typer.echo(f"\n{len(known)}/{len(ASL_ALPHABET)} letters recognized")


@app.command()
def benchmark(
    iterations: int = typer.Option(1000, min=1, help="Number of ticks"),
    hands: int = typer.Option(1, min=0, max=2, help="Simulated hands per frame"),
):
    """Time gesture ticks end to end on random landmarks."""
    import numpy as np
    from aurora_engine.pipeline import GestureSession

    typer.echo(f"⚡ Running benchmark: {iterations} ticks, {hands} hand(s)")

    session = GestureSession()
    rng = np.random.default_rng(42)
    frames = [
        [rng.random((21, 2)) * (640, 480) for _ in range(hands)] for _ in range(64)
    ]

    times = []
    for i in range(iterations):
        t0 = time.perf_counter()
        session.process(frames[i % len(frames)], now=i * 33.0)
        times.append(time.perf_counter() - t0)

    avg_ms = sum(times) / len(times) * 1000
    p95_ms = sorted(times)[int(len(times) * 0.95)] * 1000
    fps = 1000 / avg_ms if avg_ms > 0 else 0

    typer.echo(f"\n📊 Results:")
    typer.echo(f"   Average latency: {avg_ms:.3f} ms")
    typer.echo(f"   P95 latency:     {p95_ms:.3f} ms")
    typer.echo(f"   Throughput:      {fps:.0f} ticks/s")

    typer.echo(f"\n📈 Stage breakdown:")
    for name, stats in session.profiler.summary().items():
        typer.echo(f"   {name:16s} avg={stats['avg_ms']:.3f}ms  p95={stats['p95_ms']:.3f}ms")


def main():
    app()


if __name__ == "__main__":
    main()
