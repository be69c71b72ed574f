# vocab_practice/models/enums.py
from enum import Enum

class QuestionType(str, Enum):
    """Enumeration of the practice question variants."""
    MATCHING = "matching"
    FILL_BLANK = "fill-blank"
    MULTIPLE_CHOICE = "multiple-choice"

    @property
    def mistake_code(self) -> str:
        """Spelling the collector uses for the question type of a mistake."""
        return self.value.replace("-", "_")

class PerformanceRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs-improvement"

class DeviceType(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
