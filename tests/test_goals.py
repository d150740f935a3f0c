"""Tests for the goal calculator and half-up rounding."""
import pytest

from src.services.goals import calculate_bmr, calculate_goals
from src.services.rounding import round_half_up, round_int


def test_bmr_formula():
    assert calculate_bmr(70, 175, 25) == 1673.75


def test_reference_profile():
    g = calculate_goals(70, 175, 25, "moderate", "maintain")
    assert g.bmr == 1673.75
    assert g.tdee == 2594.3
    assert g.daily_calories == 2594
    assert g.daily_protein == 162
    assert g.daily_fat == 72
    assert g.daily_carbs == 324


def test_profile_with_bmr_1568_75():
    g = calculate_goals(59.5, 175, 25, "moderate", "maintain")
    assert g.bmr == 1568.75
    assert g.tdee == 2431.6
    assert g.daily_calories == 2432
    assert g.daily_protein == 152
    assert g.daily_fat == 68
    assert g.daily_carbs == 304


def test_goal_offsets_ordered():
    lose = calculate_goals(80, 180, 30, "light", "lose")
    keep = calculate_goals(80, 180, 30, "light", "maintain")
    gain = calculate_goals(80, 180, 30, "light", "gain")
    assert lose.daily_calories < keep.daily_calories < gain.daily_calories
    assert keep.daily_calories - lose.daily_calories == 500
    assert gain.daily_calories - keep.daily_calories == 300


def test_monotonic_in_weight_and_height():
    base = calculate_goals(70, 170, 30, "active", "maintain").daily_calories
    assert calculate_goals(75, 170, 30, "active", "maintain").daily_calories > base
    assert calculate_goals(70, 180, 30, "active", "maintain").daily_calories > base


def test_activity_multipliers():
    sedentary = calculate_goals(70, 175, 25, "sedentary", "maintain")
    very_active = calculate_goals(70, 175, 25, "very_active", "maintain")
    assert sedentary.tdee == round_half_up(1673.75 * 1.2, 1)
    assert very_active.tdee == round_half_up(1673.75 * 1.9, 1)


def test_unknown_activity_level():
    with pytest.raises(ValueError):
        calculate_goals(70, 175, 25, "couch", "maintain")


def test_unknown_goal():
    with pytest.raises(ValueError):
        calculate_goals(70, 175, 25, "moderate", "bulk")


def test_round_half_up():
    assert round_int(0.5) == 1
    assert round_int(2.5) == 3
    assert round_half_up(2431.5625, 1) == 2431.6
    assert round_half_up(1.005, 2) == 1.01
