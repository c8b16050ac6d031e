"""Tests for detection hysteresis, locking and the confirmed-object history."""

import pytest

from aurora_engine.config import StabilityConfig
from aurora_engine.stability import (
    Detection,
    DetectionStabilityTracker,
    StabilityState,
)


def person(score, x=600.0):
    return Detection("person", (x, 100.0, 80.0, 300.0), score)


def chair(score):
    return Detection("chair", (100.0, 300.0, 120.0, 120.0), score)


class Driver:
    """Feeds frames 100ms apart and keeps the returned state."""

    def __init__(self, config=None):
        self.tracker = DetectionStabilityTracker(config)
        self.state = StabilityState()
        self.now = 0.0
        self.confirmed = []

    def frame(self, *detections):
        update = self.tracker.update(self.state, list(detections), self.now)
        self.state = update.state
        self.confirmed.extend(update.newly_confirmed)
        self.now += 100.0
        return update

    def repeat(self, n, *detections):
        update = None
        for _ in range(n):
            update = self.frame(*detections)
        return update


class TestThresholds:
    def setup_method(self):
        self.tracker = DetectionStabilityTracker()

    def test_entry_is_strict(self):
        assert not self.tracker.qualifies(0.70, 0)
        assert self.tracker.qualifies(0.71, 0)

    def test_continuation_is_inclusive(self):
        assert self.tracker.qualifies(0.45, 5)
        assert not self.tracker.qualifies(0.44, 5)

    def test_warm_counter_switches_threshold(self):
        assert self.tracker.threshold_for(4) == 0.70
        assert self.tracker.threshold_for(5) == 0.45

    def test_noise_floor_is_absent(self):
        cfg = StabilityConfig(noise_floor=0.40, continue_score=0.40 + 1e-9)
        tracker = DetectionStabilityTracker(cfg)
        assert not tracker.qualifies(0.40, 10)


class TestCounters:
    def test_new_class_needs_entry_score(self):
        d = Driver()
        update = d.frame(person(0.60))
        assert update.detections == []
        assert d.state.counter("person") == 0

    def test_counter_increments_per_frame(self):
        d = Driver()
        d.repeat(3, person(0.9))
        assert d.state.counter("person") == 3

    def test_each_qualifying_box_increments(self):
        d = Driver()
        update = d.frame(person(0.9), person(0.8, x=100.0))
        assert d.state.counter("person") == 2
        assert len(update.detections) == 2
        assert [t.counter for t in update.detections] == [2, 2]

    def test_two_boxes_lock_in_half_the_frames(self):
        d = Driver()
        frames = 0
        while not d.tracker.is_locked(d.state.counter("person")):
            d.frame(person(0.9), person(0.9, x=100.0))
            frames += 1
        assert frames == 4

    def test_sub_threshold_box_does_not_count(self):
        d = Driver()
        d.frame(person(0.9), person(0.6, x=100.0))
        assert d.state.counter("person") == 1

    def test_multiple_boxes_respect_cap(self):
        d = Driver()
        d.repeat(7, person(0.9))
        d.frame(*[person(0.9, x=float(x)) for x in range(0, 1000, 100)])
        assert d.state.counter("person") == 15

    def test_hysteresis_keeps_warm_class(self):
        d = Driver()
        d.repeat(5, person(0.9))
        update = d.frame(person(0.5))
        assert d.state.counter("person") == 6
        assert [t.score for t in update.detections] == [0.5]

    def test_cold_class_drops_mid_score(self):
        d = Driver()
        d.repeat(4, person(0.9))
        update = d.frame(person(0.5))
        assert d.state.counter("person") == 3
        assert update.detections == []

    def test_sub_threshold_detection_decays(self):
        d = Driver()
        d.repeat(8, person(0.9))
        d.frame(person(0.3))
        assert d.state.counter("person") == 7

    def test_absent_class_decays_and_is_pruned(self):
        d = Driver()
        d.repeat(2, person(0.9))
        d.frame()
        assert d.state.counter("person") == 1
        d.frame()
        assert "person" not in d.state.counters

    def test_counter_capped(self):
        d = Driver()
        d.repeat(40, person(0.9))
        assert d.state.counter("person") == 15

    def test_classes_are_independent(self):
        d = Driver()
        d.repeat(3, person(0.9), chair(0.9))
        d.repeat(2, chair(0.9))
        assert d.state.counter("person") == 1
        assert d.state.counter("chair") == 5

    def test_state_is_not_mutated(self):
        d = Driver()
        d.repeat(3, person(0.9))
        before = d.state
        d.tracker.update(before, [person(0.9)], 1000.0)
        assert before.counter("person") == 3
        with pytest.raises(TypeError):
            before.counters["person"] = 99


class TestLocking:
    def test_warm_class_locks_on_mid_scores(self):
        d = Driver()
        d.repeat(5, person(0.75))
        counters = []
        for _ in range(20):
            d.frame(person(0.5))
            counters.append(d.state.counter("person"))
        assert counters[2] == 8
        assert all(d.tracker.is_locked(c) for c in counters[2:])

    def test_low_scores_decay_lock_to_zero(self):
        d = Driver()
        d.repeat(8, person(0.9))
        counters = []
        for _ in range(10):
            d.frame(person(0.3))
            counters.append(d.state.counter("person"))
        assert counters[:8] == [7, 6, 5, 4, 3, 2, 1, 0]
        assert not any(d.tracker.is_locked(c) for c in counters)

    def test_locks_at_eight(self):
        d = Driver()
        update = d.repeat(7, person(0.9))
        assert not update.detections[0].is_locked
        update = d.frame(person(0.9))
        assert update.detections[0].is_locked
        assert update.detections[0].counter == 8

    def test_lock_survives_score_dip(self):
        d = Driver()
        d.repeat(10, person(0.9))
        update = d.frame(person(0.46))
        assert update.detections[0].is_locked

    def test_lock_lost_after_decay(self):
        d = Driver()
        d.repeat(8, person(0.9))
        d.frame()
        assert not d.tracker.is_locked(d.state.counter("person"))


class TestHistory:
    def test_confirmed_once_on_lock(self):
        d = Driver()
        d.repeat(12, person(0.9))
        assert [e.label for e in d.confirmed] == ["person"]
        assert d.confirmed[0].timestamp == 700.0
        assert d.state.history == tuple(d.confirmed)

    def test_relock_within_window_not_relogged(self):
        d = Driver()
        d.repeat(8, person(0.9))
        d.frame()
        d.frame(person(0.9))
        assert len(d.confirmed) == 1

    def test_logged_again_after_window(self):
        d = Driver()
        d.repeat(8, person(0.9))
        d.now = 10_700.0
        d.frame(person(0.9))
        assert len(d.confirmed) == 2
        assert d.state.history[0].timestamp == 10_700.0

    def test_history_is_bounded_and_newest_first(self):
        cfg = StabilityConfig(history_size=5)
        d = Driver(cfg)
        for i in range(7):
            label = f"thing{i}"
            d.repeat(8, Detection(label, (0, 0, 10, 10), 0.9))
        labels = [e.label for e in d.state.history]
        assert labels == ["thing6", "thing5", "thing4", "thing3", "thing2"]

    def test_two_boxes_confirm_once(self):
        d = Driver()
        d.repeat(4, person(0.9), person(0.9, x=100.0))
        assert [e.label for e in d.confirmed] == ["person"]
        assert d.confirmed[0].timestamp == 300.0

    def test_entries_have_unique_ids(self):
        d = Driver()
        d.repeat(8, person(0.9), chair(0.9))
        ids = {e.id for e in d.state.history}
        assert len(ids) == 2


class TestDetection:
    def test_from_dict_accepts_class_key(self):
        det = Detection.from_dict({"class": "chair", "bbox": [1, 2, 3, 4], "score": 0.5})
        assert det.label == "chair"
        assert det.bbox == (1.0, 2.0, 3.0, 4.0)

    def test_from_dict_rejects_bad_bbox(self):
        with pytest.raises(ValueError):
            Detection.from_dict({"label": "chair", "bbox": [1, 2], "score": 0.5})

    def test_from_dict_rejects_missing_label(self):
        with pytest.raises(ValueError):
            Detection.from_dict({"bbox": [1, 2, 3, 4], "score": 0.5})

    def test_center_x(self):
        assert person(0.9, x=600.0).center_x == 640.0
