from .math_tools import MathTools
from .recovery_profile import RecoveryProfileCalculator
from .fatigue_budget import FatigueBudgetCalculator
from .volume_allocator import VolumeAllocator
from .periodization import PeriodizationPlanner
from .rep_range import RepRangeCalculator
from .weight_recommendation import WeightRecommendationResolver
from .session_builder import SessionBuilder, session_for_day
from .deload_detector import DeloadDetector
from .program_engine import generate_program
from .weight_converter import WeightConverter

__all__ = [
    "MathTools",
    "RecoveryProfileCalculator",
    "FatigueBudgetCalculator",
    "VolumeAllocator",
    "PeriodizationPlanner",
    "RepRangeCalculator",
    "WeightRecommendationResolver",
    "SessionBuilder",
    "session_for_day",
    "DeloadDetector",
    "generate_program",
    "WeightConverter",
]
