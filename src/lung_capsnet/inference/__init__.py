"""Inference helpers for trained classifiers."""

from .predict import PatchPrediction, load_classifier, predict_patch

__all__ = [
    "PatchPrediction",
    "load_classifier",
    "predict_patch",
]
