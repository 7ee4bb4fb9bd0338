"""Binary classification metrics for benign/malignant nodule predictions.

This module computes the evaluation summary reported after training:
precision, recall and F1 for the malignant class, the 2x2 confusion matrix,
and the ROC curve with its area.

Example:
    >>> results = evaluate_classifier(model, val_loader)
    >>> print(format_classification_report(results))
    >>> results.confusion_matrix
    array([[40,  3],
           [ 5, 12]])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import torch
import torch.nn as nn
from numpy.typing import NDArray
from sklearn.metrics import (
    auc,
    classification_report,
    confusion_matrix,
    precision_recall_fscore_support,
    roc_curve,
)
from torch.utils.data import DataLoader

logger = logging.getLogger(__name__)

CLASS_NAMES = ("Benign", "Malignant")


@dataclass
class ClassificationResults:
    """Evaluation summary for a binary classifier.

    Attributes:
        precision: Precision of the malignant class
        recall: Recall of the malignant class
        f1: F1 score of the malignant class
        confusion_matrix: 2x2 matrix, rows = true class, columns = predicted
        fpr: ROC false positive rates
        tpr: ROC true positive rates
        roc_auc: Area under the ROC curve (nan if only one class is present)
        targets: True labels
        predictions: Predicted labels
        probabilities: Malignant-class probabilities
    """

    precision: float
    recall: float
    f1: float
    confusion_matrix: NDArray[np.int64]
    fpr: NDArray[np.float64]
    tpr: NDArray[np.float64]
    roc_auc: float
    targets: NDArray[np.int64]
    predictions: NDArray[np.int64]
    probabilities: NDArray[np.float64]

    @property
    def accuracy(self) -> float:
        total = int(self.confusion_matrix.sum())
        return float(np.trace(self.confusion_matrix) / total) if total else float("nan")

    def to_dict(self) -> dict[str, Any]:
        """Scalar metrics and the confusion matrix as JSON-friendly values."""
        return {
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "roc_auc": self.roc_auc,
            "confusion_matrix": self.confusion_matrix.tolist(),
            "num_samples": int(self.targets.size),
        }


def compute_classification_metrics(
    targets: Sequence[int] | NDArray,
    predictions: Sequence[int] | NDArray,
    probabilities: Sequence[float] | NDArray,
) -> ClassificationResults:
    """Compute binary metrics with class 1 (malignant) as the positive class.

    Args:
        targets: True labels in {0, 1}
        predictions: Predicted labels in {0, 1}
        probabilities: Predicted malignant probabilities in [0, 1]

    Returns:
        ClassificationResults

    Raises:
        ValueError: If inputs are empty or differ in length
    """
    y_true = np.asarray(targets, dtype=np.int64)
    y_pred = np.asarray(predictions, dtype=np.int64)
    y_prob = np.asarray(probabilities, dtype=np.float64)

    if y_true.size == 0:
        raise ValueError("Cannot compute metrics on an empty set")
    if not y_true.shape == y_pred.shape == y_prob.shape:
        msg = (
            f"Length mismatch: targets {y_true.shape}, predictions {y_pred.shape}, "
            f"probabilities {y_prob.shape}"
        )
        raise ValueError(msg)

    precision, recall, f1, _ = precision_recall_fscore_support(
        y_true, y_pred, average="binary", pos_label=1, zero_division=0
    )
    cm = confusion_matrix(y_true, y_pred, labels=[0, 1])

    if np.unique(y_true).size < 2:
        logger.warning("Only one class present in targets; ROC AUC is undefined")
        fpr = np.array([0.0, 1.0])
        tpr = np.array([0.0, 1.0])
        roc_auc = float("nan")
    else:
        fpr, tpr, _ = roc_curve(y_true, y_prob, pos_label=1)
        roc_auc = float(auc(fpr, tpr))

    return ClassificationResults(
        precision=float(precision),
        recall=float(recall),
        f1=float(f1),
        confusion_matrix=cm,
        fpr=fpr,
        tpr=tpr,
        roc_auc=roc_auc,
        targets=y_true,
        predictions=y_pred,
        probabilities=y_prob,
    )


@torch.no_grad()
def evaluate_classifier(
    model: nn.Module,
    dataloader: DataLoader,
    device: torch.device | str | None = None,
) -> ClassificationResults:
    """Run a classifier over a loader and compute metrics.

    The model is put in eval mode; the malignant probability is the softmax of
    logit column 1 and the predicted label is the argmax.

    Args:
        model: Module returning ``(logits, reconstruction)`` or plain logits
        dataloader: Yields ``(images, labels)`` batches
        device: Device to evaluate on. Default: the model's device

    Returns:
        ClassificationResults
    """
    if device is None:
        device = next(model.parameters()).device
    model = model.to(device)
    model.eval()

    all_targets: list[NDArray] = []
    all_predictions: list[NDArray] = []
    all_probabilities: list[NDArray] = []

    for images, labels in dataloader:
        outputs = model(images.to(device))
        logits = outputs[0] if isinstance(outputs, tuple) else outputs
        probs = torch.softmax(logits.float(), dim=1)
        all_probabilities.append(probs[:, 1].cpu().numpy())
        all_predictions.append(logits.argmax(dim=1).cpu().numpy())
        all_targets.append(torch.as_tensor(labels).cpu().numpy())

    if not all_targets:
        raise ValueError("Dataloader yielded no batches")

    return compute_classification_metrics(
        np.concatenate(all_targets),
        np.concatenate(all_predictions),
        np.concatenate(all_probabilities),
    )


def format_classification_report(results: ClassificationResults) -> str:
    """Text report (per-class precision/recall/F1 and support) plus AUC."""
    report = classification_report(
        results.targets,
        results.predictions,
        labels=[0, 1],
        target_names=list(CLASS_NAMES),
        digits=4,
        zero_division=0,
    )
    return f"{report}\nROC AUC: {results.roc_auc:.4f}\n"
