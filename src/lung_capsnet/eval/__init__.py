"""Evaluation metrics for nodule classification."""

from .classification import (
    CLASS_NAMES,
    ClassificationResults,
    compute_classification_metrics,
    evaluate_classifier,
    format_classification_report,
)

__all__ = [
    "CLASS_NAMES",
    "ClassificationResults",
    "compute_classification_metrics",
    "evaluate_classifier",
    "format_classification_report",
]
