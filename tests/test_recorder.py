"""Tests for session recording and replay."""

import asyncio
import json

import numpy as np
import pytest

from aurora_engine.errors import RecordingError
from aurora_engine.hands import HandObservation
from aurora_engine.loop import DetectionInput, FrameLoop, HandInput
from aurora_engine.pipeline import DetectionSession, GestureSession
from aurora_engine.recorder import SessionPlayer, SessionRecorder
from aurora_engine.stability import Detection

from handshapes import letter


def record_hold(symbol="L", n=11):
    rec = SessionRecorder("hands")
    rec.start()
    for i in range(n):
        rec.add_hands([letter(symbol)], timestamp=i * 100.0)
    return rec


class TestRecorder:
    def test_record_and_count(self):
        rec = record_hold(n=10)
        assert rec.stop() == 10
        assert rec.frame_count == 10
        assert rec.duration == 900.0

    def test_not_recording_ignores_frames(self):
        rec = SessionRecorder("hands")
        rec.add_hands([letter("A")])
        assert rec.frame_count == 0
        assert not rec.is_recording

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            SessionRecorder("audio")

    def test_kind_mismatch(self):
        rec = SessionRecorder("hands")
        rec.start()
        with pytest.raises(ValueError):
            rec.add_detections([])

    def test_accepts_observations(self):
        rec = SessionRecorder("hands")
        rec.start()
        rec.add_hands([HandObservation.from_points(letter("B"))], timestamp=0.0)
        rec.stop()
        assert rec.frame_count == 1

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "session.json"
        rec = record_hold()
        rec.stop()
        rec.save(path)

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["kind"] == "hands"
        assert data["frame_count"] == 11

        player = SessionPlayer.load(path)
        assert player.kind == "hands"
        assert player.frame_count == 11
        assert player.duration == 1000.0
        first = next(player.play())
        assert isinstance(first, HandInput)
        np.testing.assert_allclose(first.hands[0], letter("L"))

    def test_detections_roundtrip(self, tmp_path):
        path = tmp_path / "dets.json"
        rec = SessionRecorder("detections")
        rec.start()
        rec.add_detections([Detection("chair", (1, 2, 3, 4), 0.8)], timestamp=0.0)
        rec.add_detections([{"class": "person", "bbox": [0, 0, 1, 1], "score": 0.5}], timestamp=33.0)
        rec.save(path)

        frames = list(SessionPlayer.load(path).play())
        assert all(isinstance(f, DetectionInput) for f in frames)
        assert frames[0].detections[0]["label"] == "chair"
        assert frames[1].timestamp == 33.0

    def test_save_creates_directories(self, tmp_path):
        path = tmp_path / "a" / "b" / "session.json"
        record_hold(n=2).save(path)
        assert path.exists()


class TestPlayerErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(RecordingError):
            SessionPlayer.load(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(RecordingError):
            SessionPlayer.load(path)

    def test_wrong_version(self, tmp_path):
        path = tmp_path / "old.json"
        path.write_text(json.dumps({"version": 99, "kind": "hands", "frames": []}))
        with pytest.raises(RecordingError):
            SessionPlayer.load(path)

    def test_frame_without_timestamp(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"version": 1, "kind": "hands", "frames": [{"hands": []}]}))
        with pytest.raises(RecordingError):
            SessionPlayer.load(path)


class TestReplay:
    def test_replay_reproduces_confirmations(self, tmp_path):
        path = tmp_path / "session.json"
        record_hold("Y", n=21).save(path)

        live = GestureSession()
        live_confirmed = []
        live.on_symbol_confirmed(lambda s, ts: live_confirmed.append((s, ts)))
        for i in range(21):
            live.process([letter("Y")], i * 100.0)

        replayed = GestureSession()
        replay_confirmed = []
        replayed.on_symbol_confirmed(lambda s, ts: replay_confirmed.append((s, ts)))
        source = SessionPlayer.load(path).as_source()
        asyncio.run(FrameLoop(source, replayed).run())

        assert replay_confirmed == live_confirmed == [("Y", 1000.0), ("Y", 2000.0)]

    def test_replay_detections_through_loop(self, tmp_path):
        path = tmp_path / "dets.json"
        rec = SessionRecorder("detections")
        rec.start()
        for i in range(8):
            rec.add_detections([Detection("person", (600, 0, 80, 300), 0.9)], timestamp=i * 100.0)
        rec.save(path)

        session = DetectionSession()
        asyncio.run(FrameLoop(SessionPlayer.load(path).as_source(), session).run())
        assert [e.label for e in session.history] == ["person"]

    def test_realtime_source_waits_between_frames(self):
        frames = [HandInput(timestamp=t, hands=[]) for t in (0.0, 50.0, 100.0)]
        player = SessionPlayer("hands", frames)
        loop = asyncio.new_event_loop()
        try:
            start = loop.time()
            loop.run_until_complete(FrameLoop(player.as_source(speed=10.0), GestureSession()).run())
            elapsed = loop.time() - start
        finally:
            loop.close()
        assert elapsed >= 0.009
