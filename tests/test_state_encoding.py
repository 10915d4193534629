"""Tests for discretising positions into Q-table state labels."""

from core.math_utils import Position
from core.opponent.state_encoding import encode_state
from core.session_state import Role


def test_dominant_horizontal_axis_sets_direction():
    ai = Position(100, 100)
    assert encode_state(ai, Position(200, 110), Role.CHASER) == "chaser_target_right_medium"
    assert encode_state(ai, Position(0, 90), Role.CHASER) == "chaser_target_left_medium"


def test_dominant_vertical_axis_sets_direction():
    ai = Position(100, 100)
    assert encode_state(ai, Position(100, 300), Role.CHASER) == "chaser_target_down_far"
    assert encode_state(ai, Position(90, 20), Role.CHASER) == "chaser_target_up_medium"


def test_equal_axes_fall_through_to_vertical():
    assert encode_state(Position(0, 0), Position(10, 10), Role.CHASER) == "chaser_target_down_close"
    assert encode_state(Position(5, 5), Position(5, 5), Role.CHASER) == "chaser_target_up_close"


def test_distance_bucket_edges():
    ai = Position(100, 100)
    assert encode_state(ai, Position(149, 100), Role.CHASER).endswith("_close")
    assert encode_state(ai, Position(150, 100), Role.CHASER).endswith("_medium")
    assert encode_state(ai, Position(249, 100), Role.CHASER).endswith("_medium")
    assert encode_state(ai, Position(250, 100), Role.CHASER).endswith("_far")


def test_runner_near_player_is_flagged_danger():
    ai = Position(100, 100)
    star = Position(300, 100)
    player = Position(150, 100)
    assert encode_state(ai, star, Role.RUNNER, player) == "runner_target_right_far_danger"


def test_runner_far_from_player_has_no_danger_suffix():
    ai = Position(100, 100)
    star = Position(300, 100)
    assert encode_state(ai, star, Role.RUNNER, Position(300, 300)) == "runner_target_right_far"
    assert encode_state(ai, star, Role.RUNNER) == "runner_target_right_far"


def test_chaser_never_gets_danger_suffix():
    ai = Position(100, 100)
    player = Position(110, 100)
    assert encode_state(ai, player, Role.CHASER, player) == "chaser_target_right_close"
