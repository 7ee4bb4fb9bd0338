"""Visualization of training progress and evaluation results."""

from .training_report import (
    plot_confusion_matrix,
    plot_roc_curve,
    plot_training_history,
    save_training_report,
)

__all__ = [
    "plot_confusion_matrix",
    "plot_roc_curve",
    "plot_training_history",
    "save_training_report",
]
