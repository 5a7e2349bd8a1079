from typing import NamedTuple
from types import MappingProxyType

from .models import ExerciseDefinition

MUSCLE_FIBER_PROFILE = MappingProxyType(
    {
        "chest": "mixed",
        "back": "mixed",
        "shoulders": "mixed",
        "biceps": "mixed",
        "triceps": "fast",
        "quads": "mixed",
        "hamstrings": "fast",
        "glutes": "mixed",
        "calves": "slow",
        "abs": "slow",
    }
)

SYSTEMIC_FATIGUE_BY_PATTERN = MappingProxyType(
    {
        "squat": 25,
        "hip_hinge": 30,
        "horizontal_push": 12,
        "horizontal_pull": 10,
        "vertical_push": 10,
        "vertical_pull": 8,
        "lunge": 15,
        "isolation": 3,
        "carry": 12,
    }
)
DEFAULT_SYSTEMIC_FATIGUE = 5

# free weights need more stabilisation
EQUIPMENT_FATIGUE_MODIFIER = MappingProxyType(
    {
        "barbell": 1.3,
        "dumbbell": 1.1,
        "kettlebell": 1.15,
        "cable": 0.8,
        "machine": 0.6,
        "bodyweight": 1.0,
    }
)


def _sfr(barbell, dumbbell, machine, cable, bodyweight, kettlebell):
    return MappingProxyType(
        {
            "barbell": barbell,
            "dumbbell": dumbbell,
            "machine": machine,
            "cable": cable,
            "bodyweight": bodyweight,
            "kettlebell": kettlebell,
        }
    )


# stimulus per unit of fatigue, pattern x equipment
BASE_SFR = MappingProxyType(
    {
        "squat": _sfr(0.7, 0.8, 1.2, 0.9, 0.6, 0.75),
        "hip_hinge": _sfr(0.5, 0.7, 1.0, 1.1, 0.5, 0.8),
        "horizontal_push": _sfr(0.8, 0.9, 1.3, 1.1, 0.7, 0.7),
        "horizontal_pull": _sfr(0.7, 0.9, 1.2, 1.2, 0.8, 0.7),
        "vertical_push": _sfr(0.8, 0.9, 1.2, 1.0, 0.6, 0.7),
        "vertical_pull": _sfr(0.7, 0.8, 1.1, 1.3, 0.9, 0.6),
        "lunge": _sfr(0.7, 0.9, 1.0, 0.8, 0.8, 0.85),
        "isolation": _sfr(0.9, 1.0, 1.4, 1.5, 0.8, 0.8),
        "carry": _sfr(0.6, 1.0, 0.5, 0.5, 0.7, 1.1),
    }
)


class LiftRelationship(NamedTuple):
    """``ratio`` is this lift's e1RM as a fraction of ``parent``'s."""

    parent: str
    ratio: float
    related: tuple[tuple[str, float], ...] = ()


EXERCISE_RELATIONSHIPS = MappingProxyType(
    {
        "Barbell Bench Press": LiftRelationship(
            "Barbell Bench Press",
            1.0,
            (
                ("Dumbbell Bench Press", 0.80),
                ("Incline Barbell Press", 0.80),
                ("Incline Dumbbell Press", 0.65),
                ("Machine Chest Press", 0.90),
                ("Close-Grip Bench Press", 0.85),
                ("Cable Fly", 0.30),
            ),
        ),
        "Dumbbell Bench Press": LiftRelationship(
            "Barbell Bench Press", 0.80, (("Incline Dumbbell Press", 0.85),)
        ),
        "Incline Barbell Press": LiftRelationship("Barbell Bench Press", 0.80),
        "Incline Dumbbell Press": LiftRelationship("Barbell Bench Press", 0.65),
        "Conventional Deadlift": LiftRelationship(
            "Conventional Deadlift",
            1.0,
            (("Romanian Deadlift", 0.65), ("Barbell Row", 0.55)),
        ),
        "Barbell Row": LiftRelationship(
            "Conventional Deadlift",
            0.55,
            (("Dumbbell Row", 0.45), ("T-Bar Row", 0.90), ("Cable Row", 0.75)),
        ),
        "Dumbbell Row": LiftRelationship("Barbell Row", 0.45),
        "Lat Pulldown": LiftRelationship("Pull-Up", 0.85, (("Cable Row", 1.0),)),
        "Barbell Back Squat": LiftRelationship(
            "Barbell Back Squat",
            1.0,
            (
                ("Front Squat", 0.80),
                ("Leg Press", 1.8),
                ("Hack Squat", 1.2),
                ("Bulgarian Split Squat", 0.35),
                ("Goblet Squat", 0.35),
            ),
        ),
        "Leg Press": LiftRelationship("Barbell Back Squat", 1.8, (("Hack Squat", 0.70),)),
        "Romanian Deadlift": LiftRelationship(
            "Conventional Deadlift", 0.65, (("Dumbbell RDL", 0.80),)
        ),
        "Standing Overhead Press": LiftRelationship(
            "Barbell Bench Press", 0.60, (("Seated Dumbbell Shoulder Press", 0.80),)
        ),
        "Barbell Curl": LiftRelationship(
            "Barbell Row",
            0.35,
            (
                ("Dumbbell Curl", 0.45),
                ("Hammer Curl", 0.50),
                ("Cable Curl", 0.90),
                ("Preacher Curl", 0.80),
                ("Incline Dumbbell Curl", 0.40),
            ),
        ),
        "Tricep Pushdown": LiftRelationship(
            "Close-Grip Bench Press",
            0.40,
            (("Overhead Tricep Extension", 0.70), ("Skull Crusher", 0.60)),
        ),
        "Lateral Raise": LiftRelationship(
            "Standing Overhead Press",
            0.15,
            (("Cable Lateral Raise", 0.80), ("Reverse Fly", 0.90)),
        ),
        "Leg Extension": LiftRelationship("Barbell Back Squat", 0.35),
        "Lying Leg Curl": LiftRelationship(
            "Romanian Deadlift", 0.40, (("Seated Leg Curl", 0.95),)
        ),
        "Hip Thrust": LiftRelationship("Barbell Back Squat", 1.1),
        "Standing Calf Raise": LiftRelationship(
            "Barbell Back Squat", 0.50, (("Seated Calf Raise", 0.60),)
        ),
    }
)

# first substring hit wins, so longer phrases sit before their suffixes
LIFT_NAME_PATTERNS: tuple[tuple[str, str], ...] = (
    ("bench press", "Barbell Bench Press"),
    ("incline press", "Incline Barbell Press"),
    ("incline bench", "Incline Barbell Press"),
    ("overhead press", "Standing Overhead Press"),
    ("shoulder press", "Standing Overhead Press"),
    ("military press", "Standing Overhead Press"),
    ("front squat", "Barbell Back Squat"),
    ("squat", "Barbell Back Squat"),
    ("leg press", "Leg Press"),
    ("rdl", "Romanian Deadlift"),
    ("romanian", "Romanian Deadlift"),
    ("deadlift", "Conventional Deadlift"),
    ("dumbbell row", "Dumbbell Row"),
    ("row", "Barbell Row"),
    ("pulldown", "Lat Pulldown"),
    ("lat pull", "Lat Pulldown"),
    ("hammer curl", "Barbell Curl"),
    ("leg curl", "Lying Leg Curl"),
    ("hamstring curl", "Lying Leg Curl"),
    ("curl", "Barbell Curl"),
    ("pushdown", "Tricep Pushdown"),
    ("tricep push", "Tricep Pushdown"),
    ("leg extension", "Leg Extension"),
    ("lateral raise", "Lateral Raise"),
    ("side raise", "Lateral Raise"),
    ("calf raise", "Standing Calf Raise"),
    ("hip thrust", "Hip Thrust"),
    ("glute bridge", "Hip Thrust"),
)

STANDARD_LIFT_KEYS = MappingProxyType(
    {
        "Barbell Bench Press": "bench_press",
        "Barbell Back Squat": "squat",
        "Conventional Deadlift": "deadlift",
        "Standing Overhead Press": "overhead_press",
        "Barbell Row": "barbell_row",
    }
)


def _standards(bench: float, squat: float, deadlift: float, ohp: float, row: float):
    return MappingProxyType(
        {
            "bench_press": bench,
            "squat": squat,
            "deadlift": deadlift,
            "overhead_press": ohp,
            "barbell_row": row,
        }
    )


# bodyweight multiples by experience x FFMI bracket
STRENGTH_STANDARDS = MappingProxyType(
    {
        "novice": MappingProxyType(
            {
                "below_average": _standards(0.50, 0.70, 0.90, 0.35, 0.45),
                "average": _standards(0.60, 0.80, 1.00, 0.40, 0.50),
                "above_average": _standards(0.65, 0.85, 1.10, 0.45, 0.55),
                "excellent": _standards(0.70, 0.90, 1.15, 0.50, 0.60),
                "elite": _standards(0.75, 0.95, 1.20, 0.55, 0.65),
            }
        ),
        "intermediate": MappingProxyType(
            {
                "below_average": _standards(0.85, 1.10, 1.40, 0.55, 0.70),
                "average": _standards(1.00, 1.25, 1.60, 0.65, 0.80),
                "above_average": _standards(1.10, 1.40, 1.75, 0.70, 0.90),
                "excellent": _standards(1.25, 1.55, 1.90, 0.80, 1.00),
                "elite": _standards(1.35, 1.70, 2.05, 0.85, 1.10),
            }
        ),
        "advanced": MappingProxyType(
            {
                "below_average": _standards(1.25, 1.50, 1.85, 0.75, 0.95),
                "average": _standards(1.40, 1.75, 2.10, 0.85, 1.10),
                "above_average": _standards(1.55, 1.90, 2.30, 0.95, 1.20),
                "excellent": _standards(1.75, 2.10, 2.50, 1.05, 1.35),
                "elite": _standards(2.00, 2.35, 2.80, 1.20, 1.50),
            }
        ),
    }
)


def _ex(name, muscle, secondary, pattern, equipment, difficulty, fatigue):
    return ExerciseDefinition(
        name=name,
        primary_muscle=muscle,
        secondary_muscles=tuple(secondary),
        pattern=pattern,
        equipment=equipment,
        difficulty=difficulty,
        fatigue_rating=fatigue,
    )


EXERCISE_CATALOG: tuple[ExerciseDefinition, ...] = (
    _ex("Barbell Bench Press", "chest", ["triceps", "shoulders"], "horizontal_push", "barbell", "intermediate", 2),
    _ex("Dumbbell Bench Press", "chest", ["triceps", "shoulders"], "horizontal_push", "dumbbell", "beginner", 2),
    _ex("Incline Barbell Press", "chest", ["triceps", "shoulders"], "horizontal_push", "barbell", "intermediate", 2),
    _ex("Incline Dumbbell Press", "chest", ["triceps", "shoulders"], "horizontal_push", "dumbbell", "beginner", 2),
    _ex("Machine Chest Press", "chest", ["triceps"], "horizontal_push", "machine", "beginner", 1),
    _ex("Cable Fly", "chest", [], "isolation", "cable", "beginner", 1),
    _ex("Dip", "chest", ["triceps", "shoulders"], "horizontal_push", "bodyweight", "intermediate", 2),
    _ex("Push-Up", "chest", ["triceps", "shoulders"], "horizontal_push", "bodyweight", "beginner", 1),
    _ex("Barbell Row", "back", ["biceps", "shoulders"], "horizontal_pull", "barbell", "intermediate", 2),
    _ex("Dumbbell Row", "back", ["biceps"], "horizontal_pull", "dumbbell", "beginner", 2),
    _ex("Cable Row", "back", ["biceps"], "horizontal_pull", "cable", "beginner", 1),
    _ex("Lat Pulldown", "back", ["biceps"], "vertical_pull", "cable", "beginner", 1),
    _ex("Pull-Up", "back", ["biceps"], "vertical_pull", "bodyweight", "intermediate", 2),
    _ex("Chin-Up", "back", ["biceps"], "vertical_pull", "bodyweight", "intermediate", 2),
    _ex("T-Bar Row", "back", ["biceps"], "horizontal_pull", "barbell", "intermediate", 2),
    _ex("Conventional Deadlift", "back", ["hamstrings", "glutes"], "hip_hinge", "barbell", "advanced", 3),
    _ex("Standing Overhead Press", "shoulders", ["triceps"], "vertical_push", "barbell", "intermediate", 2),
    _ex("Seated Dumbbell Shoulder Press", "shoulders", ["triceps"], "vertical_push", "dumbbell", "beginner", 2),
    _ex("Machine Shoulder Press", "shoulders", ["triceps"], "vertical_push", "machine", "beginner", 1),
    _ex("Arnold Press", "shoulders", ["triceps"], "vertical_push", "dumbbell", "intermediate", 2),
    _ex("Lateral Raise", "shoulders", [], "isolation", "dumbbell", "beginner", 1),
    _ex("Cable Lateral Raise", "shoulders", [], "isolation", "cable", "beginner", 1),
    _ex("Face Pull", "shoulders", ["back"], "horizontal_pull", "cable", "beginner", 1),
    _ex("Reverse Fly", "shoulders", ["back"], "isolation", "dumbbell", "beginner", 1),
    _ex("Front Raise", "shoulders", [], "isolation", "dumbbell", "beginner", 1),
    _ex("Barbell Back Squat", "quads", ["glutes", "hamstrings"], "squat", "barbell", "intermediate", 3),
    _ex("Front Squat", "quads", ["glutes"], "squat", "barbell", "advanced", 3),
    _ex("Leg Press", "quads", ["glutes"], "squat", "machine", "beginner", 2),
    _ex("Hack Squat", "quads", ["glutes"], "squat", "machine", "beginner", 2),
    _ex("Bulgarian Split Squat", "quads", ["glutes"], "lunge", "dumbbell", "intermediate", 2),
    _ex("Walking Lunge", "quads", ["glutes"], "lunge", "dumbbell", "beginner", 2),
    _ex("Goblet Squat", "quads", ["glutes"], "squat", "dumbbell", "beginner", 2),
    _ex("Leg Extension", "quads", [], "isolation", "machine", "beginner", 1),
    _ex("Romanian Deadlift", "hamstrings", ["glutes", "back"], "hip_hinge", "barbell", "intermediate", 2),
    _ex("Dumbbell RDL", "hamstrings", ["glutes"], "hip_hinge", "dumbbell", "beginner", 2),
    _ex("Lying Leg Curl", "hamstrings", [], "isolation", "machine", "beginner", 1),
    _ex("Seated Leg Curl", "hamstrings", [], "isolation", "machine", "beginner", 1),
    _ex("Good Morning", "hamstrings", ["back", "glutes"], "hip_hinge", "barbell", "advanced", 2),
    _ex("Hip Thrust", "glutes", ["hamstrings"], "hip_hinge", "barbell", "beginner", 2),
    _ex("Cable Pull-Through", "glutes", ["hamstrings"], "hip_hinge", "cable", "beginner", 1),
    _ex("Glute Bridge", "glutes", ["hamstrings"], "hip_hinge", "bodyweight", "beginner", 1),
    _ex("Kettlebell Swing", "glutes", ["hamstrings", "back"], "hip_hinge", "kettlebell", "intermediate", 2),
    _ex("Barbell Curl", "biceps", [], "isolation", "barbell", "beginner", 1),
    _ex("Dumbbell Curl", "biceps", [], "isolation", "dumbbell", "beginner", 1),
    _ex("Hammer Curl", "biceps", [], "isolation", "dumbbell", "beginner", 1),
    _ex("Preacher Curl", "biceps", [], "isolation", "barbell", "beginner", 1),
    _ex("Cable Curl", "biceps", [], "isolation", "cable", "beginner", 1),
    _ex("Incline Dumbbell Curl", "biceps", [], "isolation", "dumbbell", "beginner", 1),
    _ex("Close-Grip Bench Press", "triceps", ["chest"], "horizontal_push", "barbell", "intermediate", 2),
    _ex("Tricep Pushdown", "triceps", [], "isolation", "cable", "beginner", 1),
    _ex("Overhead Tricep Extension", "triceps", [], "isolation", "cable", "beginner", 1),
    _ex("Skull Crusher", "triceps", [], "isolation", "barbell", "intermediate", 1),
    _ex("Dumbbell Tricep Kickback", "triceps", [], "isolation", "dumbbell", "beginner", 1),
    _ex("Standing Calf Raise", "calves", [], "isolation", "machine", "beginner", 1),
    _ex("Seated Calf Raise", "calves", [], "isolation", "machine", "beginner", 1),
    _ex("Leg Press Calf Raise", "calves", [], "isolation", "machine", "beginner", 1),
    _ex("Cable Crunch", "abs", [], "isolation", "cable", "beginner", 1),
    _ex("Hanging Leg Raise", "abs", [], "isolation", "bodyweight", "intermediate", 1),
    _ex("Ab Wheel Rollout", "abs", [], "isolation", "bodyweight", "intermediate", 1),
    _ex("Plank", "abs", [], "isolation", "bodyweight", "beginner", 1),
)


def sfr_for(pattern: str, equipment: str) -> float:
    return BASE_SFR.get(pattern, {}).get(equipment, 1.0)


def systemic_fatigue_for(pattern: str, equipment: str) -> float:
    base = SYSTEMIC_FATIGUE_BY_PATTERN.get(pattern, DEFAULT_SYSTEMIC_FATIGUE)
    return base * EQUIPMENT_FATIGUE_MODIFIER.get(equipment, 1.0)


def match_lift(exercise_name: str) -> str | None:
    """Canonical lift an unlisted exercise name most likely refers to."""
    lowered = exercise_name.lower()
    for pattern, lift in LIFT_NAME_PATTERNS:
        if pattern in lowered:
            return lift
    return None
