"""Tests for obstacle selection and navigation instructions."""

import pytest

from aurora_engine.config import NavigationConfig
from aurora_engine.navigation import PATH_CLEAR, NavigationAdvisor, NavigationState, Zone
from aurora_engine.stability import Detection, TrackedDetection


def box(label, center_x, score=0.9, width=100.0):
    return Detection(label, (center_x - width / 2, 100.0, width, 200.0), score)


class TestZones:
    def setup_method(self):
        self.advisor = NavigationAdvisor()

    def test_thirds_of_frame(self):
        assert self.advisor.zone_of(200.0) == Zone.LEFT
        assert self.advisor.zone_of(640.0) == Zone.CENTER
        assert self.advisor.zone_of(1100.0) == Zone.RIGHT

    def test_boundaries(self):
        cfg = self.advisor.config
        left = cfg.left_boundary * cfg.frame_width
        right = cfg.right_boundary * cfg.frame_width
        assert self.advisor.zone_of(left) == Zone.LEFT
        assert self.advisor.zone_of(left + 0.01) == Zone.CENTER
        assert self.advisor.zone_of(right) == Zone.RIGHT

    def test_custom_frame_width(self):
        advisor = NavigationAdvisor(NavigationConfig(frame_width=640.0))
        assert advisor.zone_of(320.0) == Zone.CENTER
        assert advisor.zone_of(600.0) == Zone.RIGHT


class TestInstructions:
    def setup_method(self):
        self.advisor = NavigationAdvisor()

    def instruction(self, *detections):
        return self.advisor.update(NavigationState(), list(detections)).instruction

    def test_center_obstacle(self):
        assert self.instruction(box("person", 640.0)) == "PERSON AHEAD. STEER RIGHT."

    def test_left_obstacle(self):
        assert self.instruction(box("chair", 200.0)) == "CHAIR ON LEFT. PATH CLEAR ON RIGHT."

    def test_right_obstacle(self):
        assert self.instruction(box("couch", 1100.0)) == "COUCH ON RIGHT. PATH CLEAR ON LEFT."

    def test_non_obstacles_ignored(self):
        assert self.instruction(box("cup", 640.0), box("book", 200.0)) == PATH_CLEAR

    def test_empty_scene_is_clear(self):
        assert self.instruction() == PATH_CLEAR

    def test_highest_score_wins(self):
        result = self.instruction(box("chair", 200.0, 0.6), box("person", 1100.0, 0.8))
        assert result.startswith("PERSON ON RIGHT")

    def test_ties_keep_first(self):
        result = self.instruction(box("chair", 200.0, 0.8), box("person", 1100.0, 0.8))
        assert result.startswith("CHAIR")

    def test_custom_obstacle_classes(self):
        advisor = NavigationAdvisor(NavigationConfig(obstacle_classes=["bicycle"]))
        update = advisor.update(NavigationState(), [box("person", 640.0), box("bicycle", 200.0)])
        assert update.instruction == "BICYCLE ON LEFT. PATH CLEAR ON RIGHT."

    def test_accepts_tracked_detections(self):
        tracked = TrackedDetection(box("person", 640.0), counter=8, is_locked=True)
        update = self.advisor.update(NavigationState(), [tracked])
        assert update.obstacle == tracked.detection
        assert update.zone == Zone.CENTER


class TestEmission:
    def setup_method(self):
        self.advisor = NavigationAdvisor()

    def test_initial_clear_is_not_emitted(self):
        update = self.advisor.update(NavigationState(), [])
        assert update.emitted is None
        assert update.state.last_instruction == PATH_CLEAR

    def test_change_is_emitted_once(self):
        state = NavigationState()
        first = self.advisor.update(state, [box("person", 640.0)])
        assert first.emitted == "PERSON AHEAD. STEER RIGHT."
        second = self.advisor.update(first.state, [box("person", 650.0, 0.7)])
        assert second.emitted is None
        assert second.state is first.state

    def test_return_to_clear_is_emitted(self):
        first = self.advisor.update(NavigationState(), [box("person", 640.0)])
        update = self.advisor.update(first.state, [])
        assert update.emitted == PATH_CLEAR

    def test_zone_move_is_emitted(self):
        first = self.advisor.update(NavigationState(), [box("person", 640.0)])
        update = self.advisor.update(first.state, [box("person", 1100.0)])
        assert update.emitted == "PERSON ON RIGHT. PATH CLEAR ON LEFT."


class TestConfig:
    @pytest.mark.parametrize("left,right", [(0.5, 0.4), (0.0, 0.5), (0.3, 1.0)])
    def test_rejects_bad_boundaries(self, left, right):
        from aurora_engine.errors import ConfigError
        with pytest.raises(ConfigError):
            NavigationAdvisor(NavigationConfig(left_boundary=left, right_boundary=right))
