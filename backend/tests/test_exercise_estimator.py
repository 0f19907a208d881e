"""
LearnHub Backend: Exercise Estimator Tests
============================================

What:  Keyword category selection and calorie formulas of the rule-based
       exercise estimator (75 kg user unless stated).
"""

import pytest

from learnhub.services.exercise_estimator import MIN_CALORIES, estimate_exercise


class TestEstimateExercise:

    def test_running_distance(self):
        result = estimate_exercise("running 5 km", 75)
        assert result == {
            "calories": 375,
            "category": "cardio",
            "enhancedDescription": "Running 5km (+375 cal)",
        }

    def test_running_minutes(self):
        result = estimate_exercise("jogging for 20 minutes", 75)
        assert result["category"] == "cardio"
        assert result["calories"] == 180

    def test_pushups_round_half_up(self):
        """100 × 75 × 0.0025 = 18.75 → 19."""
        result = estimate_exercise("100 pushups", 75)
        assert result["calories"] == 19
        assert result["category"] == "push"
        assert result["enhancedDescription"] == "100 pushups (+19 cal)"

    def test_walking_steps(self):
        result = estimate_exercise("walked 8000 steps", 75)
        assert result["calories"] == 240
        assert result["category"] == "cardio"

    def test_bench_press_defaults(self):
        """No numbers: 3 sets × 12 reps at 70% body weight."""
        result = estimate_exercise("bench press", 100)
        assert result["calories"] == 10
        assert result["category"] == "push"

    def test_deadlift_with_load(self):
        result = estimate_exercise("deadlift 3 sets of 5 reps at 100kg", 75)
        assert result["category"] == "pull"
        assert result["calories"] == MIN_CALORIES

    def test_weighted_squats(self):
        result = estimate_exercise("squat 60kg 3 sets 12 reps", 75)
        assert result["category"] == "legs"
        assert result["enhancedDescription"].startswith("Weighted squats 3x12")

    def test_bodyweight_squats(self):
        result = estimate_exercise("15 squats", 80)
        assert result["enhancedDescription"].startswith("15 bodyweight squats")

    @pytest.mark.parametrize(
        "text, expected",
        [("yoga 30 minutes", 180), ("intense circuit 30 minutes", 270)],
    )
    def test_general_intensity(self, text, expected):
        result = estimate_exercise(text, 75)
        assert result["category"] == "general"
        assert result["calories"] == expected

    def test_minimum_calories(self):
        result = estimate_exercise("2 pull ups", 40)
        assert result["calories"] == MIN_CALORIES

    def test_same_text_same_estimate(self):
        assert estimate_exercise("rowing 20 minutes", 70) == estimate_exercise("rowing 20 minutes", 70)
