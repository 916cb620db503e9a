"""Re-export all models so Base.metadata sees them."""

from journeyboard.db.models.journey import JourneyModel
from journeyboard.db.models.person import PersonModel
from journeyboard.db.models.person_history import PersonHistoryModel
from journeyboard.db.models.stage import StageModel

__all__ = [
    "JourneyModel",
    "PersonHistoryModel",
    "PersonModel",
    "StageModel",
]
