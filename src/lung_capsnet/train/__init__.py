"""Training pipeline and utilities."""

from .callbacks import ChampionEarlyStopping, HistoryRecorder
from .history import TrainingHistory
from .module import LitCapsuleClassifier
from .pipeline import TrainingResult, train_capsnet
from .state_tracker import ChampionTracker

__all__ = [
    "ChampionEarlyStopping",
    "ChampionTracker",
    "HistoryRecorder",
    "LitCapsuleClassifier",
    "TrainingHistory",
    "TrainingResult",
    "train_capsnet",
]
