"""
LearnHub Backend: Exercise Calorie Estimator
==============================================

What:  Rule-based calorie estimate for a free-text exercise description.
How:   Keyword match picks a category (cardio, push, pull, legs, general),
       numbers in the text fill in distance, minutes, sets, reps, load or
       steps, and a per-category factor times body weight gives calories.
       Every estimate is at least 10 kcal.

Deterministic on purpose: the workout log shows the estimate immediately and
users re-log the same description often, so the same text must give the same
number.

Examples (75 kg user):
    "running 5 km"      → cardio, 375 kcal
    "100 pushups"       → push,   19 kcal
    "walked 8000 steps" → cardio, 240 kcal
"""

import re
from typing import Callable, Dict, List, Union

from learnhub.utils import round_half_up

_NUMBER = re.compile(r"\d+")

MIN_CALORIES = 10


def _pick(numbers: List[int], predicate: Callable[[int], bool], default: float) -> float:
    # First matching number; a match of 0 counts as missing
    value = next((n for n in numbers if predicate(n)), 0)
    return value or default


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def estimate_exercise(exercise: str, user_weight: float) -> Dict[str, Union[int, str]]:
    """
    Returns {"calories", "category", "enhancedDescription"} for `exercise`.
    """
    text = exercise.lower()
    numbers = [int(n) for n in _NUMBER.findall(exercise)]
    weight = float(user_weight)

    if "run" in text or "jog" in text:
        category = "cardio"
        if "km" in text or "kilometer" in text:
            distance = _pick(numbers, lambda n: n <= 50, 5)
            calories = round_half_up(weight * distance * 1.0)
            description = f"Running {_fmt(distance)}km (+{calories} cal)"
        else:
            minutes = _pick(numbers, lambda n: n <= 120, 30)
            calories = round_half_up(weight * minutes * 0.12)
            description = f"Running {_fmt(minutes)} minutes (+{calories} cal)"

    elif any(k in text for k in ("bench press", "push up", "pushup", "shoulder press")):
        category = "push"
        if "bench press" in text:
            sets = _pick(numbers, lambda n: n <= 10, 3)
            reps = _pick(numbers, lambda n: 5 < n <= 20, 12)
            load = _pick(numbers, lambda n: n > 20, weight * 0.7)
            calories = round_half_up(sets * reps * load * 0.004)
            description = f"Bench press {_fmt(sets)} sets x {_fmt(reps)} reps (+{calories} cal)"
        elif "pushup" in text or "push up" in text:
            total_reps = _pick(numbers, lambda n: n > 0, 20)
            calories = round_half_up(total_reps * weight * 0.0025)
            description = f"{_fmt(total_reps)} pushups (+{calories} cal)"
        else:
            calories = round_half_up(weight * 2.5)
            description = f"Push workout (+{calories} cal)"

    elif any(k in text for k in ("deadlift", "pull up", "pullup", "row")):
        category = "pull"
        if "deadlift" in text:
            sets = _pick(numbers, lambda n: n <= 10, 3)
            reps = _pick(numbers, lambda n: 3 < n <= 15, 8)
            load = _pick(numbers, lambda n: n > 20, weight * 1.2)
            calories = round_half_up(sets * reps * load * 0.005)
            description = f"Deadlifts {_fmt(sets)} sets x {_fmt(reps)} reps (+{calories} cal)"
        elif "pull up" in text or "pullup" in text:
            total_reps = _pick(numbers, lambda n: n > 0, 10)
            calories = round_half_up(total_reps * weight * 0.004)
            description = f"{_fmt(total_reps)} pull-ups (+{calories} cal)"
        else:
            calories = round_half_up(weight * 3.0)
            description = f"Pull workout (+{calories} cal)"

    elif any(k in text for k in ("squat", "lunge", "leg")):
        category = "legs"
        if "squat" in text:
            if any(n > 20 for n in numbers):
                load = _pick(numbers, lambda n: n > 20, weight * 0.5)
                sets = _pick(numbers, lambda n: n <= 10, 3)
                reps = _pick(numbers, lambda n: 3 < n <= 20, 12)
                calories = round_half_up(sets * reps * load * 0.0045)
                description = f"Weighted squats {_fmt(sets)}x{_fmt(reps)} (+{calories} cal)"
            else:
                total_reps = _pick(numbers, lambda n: n > 0, 20)
                calories = round_half_up(total_reps * weight * 0.003)
                description = f"{_fmt(total_reps)} bodyweight squats (+{calories} cal)"
        else:
            calories = round_half_up(weight * 2.8)
            description = f"Leg workout (+{calories} cal)"

    elif "walk" in text:
        category = "cardio"
        if "steps" in text:
            steps = _pick(numbers, lambda n: n > 100, 5000)
            calories = round_half_up(steps * weight * 0.0004)
            description = f"Walking {_fmt(steps)} steps (+{calories} cal)"
        else:
            minutes = _pick(numbers, lambda n: n <= 120, 30)
            calories = round_half_up(weight * minutes * 0.05)
            description = f"Walking {_fmt(minutes)} minutes (+{calories} cal)"

    else:
        category = "general"
        intensity = 1.5 if ("intense" in text or "heavy" in text) else 1.0
        duration = _pick(numbers, lambda n: n <= 120, 30)
        calories = round_half_up(weight * duration * 0.08 * intensity)
        description = f"Workout session (+{calories} cal)"

    return {
        "calories": max(calories, MIN_CALORIES),
        "category": category,
        "enhancedDescription": description,
    }
