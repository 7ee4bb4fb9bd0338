"""Training curves, confusion matrix and ROC plots.

Each ``plot_*`` function returns a matplotlib figure; ``save_training_report``
renders all three to fixed filenames under the reporting output directory.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
from numpy.typing import NDArray  # noqa: E402

from ..config import ReportingConfig  # noqa: E402
from ..eval import CLASS_NAMES, ClassificationResults  # noqa: E402

if TYPE_CHECKING:
    from ..train.history import TrainingHistory

logger = logging.getLogger(__name__)


def plot_training_history(history: TrainingHistory, title: str = "Training Metrics") -> plt.Figure:
    """Plot loss, accuracy and learning rate per epoch.

    Args:
        history: Recorded epoch metrics
        title: Figure title

    Returns:
        Matplotlib figure with three panels
    """
    epochs = np.arange(1, len(history) + 1)

    fig, (ax_loss, ax_acc, ax_lr) = plt.subplots(1, 3, figsize=(18, 5))

    ax_loss.plot(epochs, history.train_loss, "o-", label="Train", linewidth=2, markersize=4)
    ax_loss.plot(epochs, history.val_loss, "s-", label="Validation", linewidth=2, markersize=4)
    ax_loss.set_xlabel("Epoch", fontsize=12)
    ax_loss.set_ylabel("Loss", fontsize=12)
    ax_loss.set_title("Loss", fontsize=14, fontweight="bold")
    ax_loss.legend(fontsize=10)
    ax_loss.grid(True, alpha=0.3)

    ax_acc.plot(epochs, history.train_accuracy, "o-", label="Train", linewidth=2, markersize=4)
    ax_acc.plot(epochs, history.val_accuracy, "s-", label="Validation", linewidth=2, markersize=4)
    ax_acc.set_xlabel("Epoch", fontsize=12)
    ax_acc.set_ylabel("Accuracy", fontsize=12)
    ax_acc.set_title("Accuracy", fontsize=14, fontweight="bold")
    ax_acc.set_ylim([0, 1])
    ax_acc.legend(fontsize=10)
    ax_acc.grid(True, alpha=0.3)

    ax_lr.plot(epochs, history.learning_rate, "-", color="tab:green", linewidth=2)
    ax_lr.set_xlabel("Epoch", fontsize=12)
    ax_lr.set_ylabel("Learning Rate", fontsize=12)
    ax_lr.set_title("Learning Rate", fontsize=14, fontweight="bold")
    ax_lr.ticklabel_format(axis="y", style="sci", scilimits=(0, 0))
    ax_lr.grid(True, alpha=0.3)

    fig.suptitle(title, fontsize=16, fontweight="bold")
    plt.tight_layout()
    return fig


def plot_confusion_matrix(
    cm: NDArray[np.int64],
    class_names: tuple[str, ...] = CLASS_NAMES,
    title: str = "Confusion Matrix",
) -> plt.Figure:
    """Plot an annotated confusion matrix (rows true, columns predicted).

    Raises:
        ValueError: If ``cm`` is not square or does not match ``class_names``
    """
    cm = np.asarray(cm)
    if cm.ndim != 2 or cm.shape[0] != cm.shape[1]:
        msg = f"Confusion matrix must be square, got shape {cm.shape}"
        raise ValueError(msg)
    if cm.shape[0] != len(class_names):
        msg = f"Expected {len(class_names)} classes, got matrix of shape {cm.shape}"
        raise ValueError(msg)

    fig, ax = plt.subplots(figsize=(6, 5))
    image = ax.imshow(cm, interpolation="nearest", cmap="Blues")
    fig.colorbar(image, ax=ax)

    ticks = np.arange(len(class_names))
    ax.set_xticks(ticks)
    ax.set_yticks(ticks)
    ax.set_xticklabels(class_names)
    ax.set_yticklabels(class_names)
    ax.set_xlabel("Predicted", fontsize=12)
    ax.set_ylabel("True", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")

    threshold = cm.max() / 2.0 if cm.size else 0.0
    for i in range(cm.shape[0]):
        for j in range(cm.shape[1]):
            ax.text(
                j,
                i,
                str(cm[i, j]),
                ha="center",
                va="center",
                color="white" if cm[i, j] > threshold else "black",
                fontsize=14,
            )

    plt.tight_layout()
    return fig


def plot_roc_curve(
    fpr: NDArray[np.float64],
    tpr: NDArray[np.float64],
    roc_auc: float,
    title: str = "ROC Curve",
) -> plt.Figure:
    """Plot the ROC curve with its AUC in the legend."""
    fig, ax = plt.subplots(figsize=(6, 5))
    ax.plot([0, 1], [0, 1], "k--", label="Chance", linewidth=1)
    ax.plot(fpr, tpr, "-", color="tab:orange", label=f"ROC (AUC = {roc_auc:.3f})", linewidth=2)
    ax.set_xlim([0, 1])
    ax.set_ylim([0, 1.05])
    ax.set_xlabel("False Positive Rate", fontsize=12)
    ax.set_ylabel("True Positive Rate", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(loc="lower right", fontsize=10)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def save_training_report(
    history: TrainingHistory,
    results: ClassificationResults,
    config: ReportingConfig | None = None,
) -> dict[str, Path]:
    """Render and save all report figures.

    Args:
        history: Recorded epoch metrics
        results: Final evaluation results
        config: Output directory, filenames and dpi. Default: ``ReportingConfig()``

    Returns:
        Mapping of figure name ("metrics", "confusion", "roc") to saved path
    """
    cfg = config or ReportingConfig()
    output_dir = Path(cfg.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    figures = {
        "metrics": (plot_training_history(history), cfg.metrics_plot),
        "confusion": (plot_confusion_matrix(results.confusion_matrix), cfg.confusion_plot),
        "roc": (plot_roc_curve(results.fpr, results.tpr, results.roc_auc), cfg.roc_plot),
    }

    paths: dict[str, Path] = {}
    for name, (fig, filename) in figures.items():
        path = output_dir / filename
        fig.savefig(path, dpi=cfg.dpi, bbox_inches="tight")
        plt.close(fig)
        paths[name] = path
        logger.info("Saved %s plot to %s", name, path)

    return paths
