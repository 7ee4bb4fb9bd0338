"""Offline prediction with a trained capsule classifier.

Produces the ``{"class_label", "confidence"}`` record the upload UI renders
for a single nodule patch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import torch
from numpy.typing import NDArray

from ..config import AugmentationConfig, ModelConfig
from ..data.augment import build_eval_transform, rescale_to_uint8
from ..eval import CLASS_NAMES
from ..model import CapsuleClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchPrediction:
    """Predicted class name and its softmax probability."""

    class_label: str
    confidence: float

    def __post_init__(self) -> None:
        if self.class_label not in CLASS_NAMES:
            msg = f"class_label must be one of {CLASS_NAMES}, got {self.class_label!r}"
            raise ValueError(msg)
        if not 0.0 <= self.confidence <= 1.0:
            msg = f"confidence must be in [0, 1], got {self.confidence}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {"class_label": self.class_label, "confidence": self.confidence}


def load_classifier(
    path: str | Path,
    model_config: ModelConfig | None = None,
    map_location: str | torch.device = "cpu",
) -> CapsuleClassifier:
    """Load champion weights saved by training into a fresh classifier.

    Args:
        path: Checkpoint written with ``torch.save(state_dict, path)``
        model_config: Architecture the weights were trained with
        map_location: Device to map tensors onto

    Returns:
        Classifier in eval mode

    Raises:
        FileNotFoundError: If the checkpoint does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Checkpoint not found: {path}")

    model = CapsuleClassifier.from_config(model_config or ModelConfig())
    state_dict = torch.load(path, map_location=map_location, weights_only=True)
    model.load_state_dict(state_dict)
    model.eval()
    logger.info("Loaded classifier weights from %s", path)
    return model


@torch.no_grad()
def predict_patch(
    model: CapsuleClassifier,
    patch: NDArray[np.floating],
    augmentation: AugmentationConfig | None = None,
) -> PatchPrediction:
    """Classify one 2D patch.

    The patch goes through the same preprocessing as validation data: uint8
    min/max stretch, resize, normalization.

    Args:
        model: Trained classifier
        patch: 2D standardized patch
        augmentation: Normalization parameters. Default: ``AugmentationConfig()``

    Returns:
        PatchPrediction with the argmax class and its probability

    Raises:
        ValueError: If ``patch`` is not 2D
    """
    patch = np.asarray(patch)
    if patch.ndim != 2:
        raise ValueError(f"Expected a 2D patch, got {patch.ndim}D")

    transform = build_eval_transform(augmentation, image_size=model.image_size)
    tensor = transform(image=rescale_to_uint8(patch))["image"]
    if tensor.ndim == 2:
        tensor = tensor.unsqueeze(0)

    device = next(model.parameters()).device
    model.eval()
    logits, _ = model(tensor.float().unsqueeze(0).to(device))
    probs = torch.softmax(logits.float(), dim=1)[0]
    index = int(probs.argmax())

    return PatchPrediction(class_label=CLASS_NAMES[index], confidence=float(probs[index]))
