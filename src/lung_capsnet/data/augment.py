"""2D augmentation pipelines for nodule patches."""

from __future__ import annotations

import albumentations as A
import numpy as np
from albumentations.pytorch import ToTensorV2

from ..config import AugmentationConfig

__all__ = [
    "build_eval_transform",
    "build_train_transform",
    "rescale_to_uint8",
]


def rescale_to_uint8(patch: np.ndarray, epsilon: float = 1e-8) -> np.ndarray:
    """Stretch a float patch onto the 8-bit range using its own min and max.

    The stretch is per patch, not per dataset: the darkest pixel maps to 0 and
    the brightest to (almost) 255.
    """

    patch = np.asarray(patch, dtype=np.float32)
    low, high = float(patch.min()), float(patch.max())
    scaled = (patch - low) / (high - low + epsilon) * 255.0
    return np.clip(scaled, 0, 255).astype(np.uint8)


def _normalize(cfg: AugmentationConfig) -> A.Normalize:
    return A.Normalize(
        mean=cfg.normalize_mean,
        std=cfg.normalize_std,
        max_pixel_value=255.0,
    )


def build_train_transform(
    config: AugmentationConfig | None = None,
    image_size: int = 32,
) -> A.Compose:
    """Randomized training pipeline; every step fires with its own probability."""

    cfg = config or AugmentationConfig()

    return A.Compose(
        [
            A.Resize(image_size, image_size),
            A.Rotate(limit=cfg.rotate_limit, p=cfg.rotate_prob),
            A.HorizontalFlip(p=cfg.horizontal_flip_prob),
            A.VerticalFlip(p=cfg.vertical_flip_prob),
            A.Affine(
                translate_percent=(-cfg.shift_limit, cfg.shift_limit),
                scale=tuple(cfg.scale_range),
                rotate=(-cfg.rotate_limit, cfg.rotate_limit),
                p=cfg.affine_prob,
            ),
            A.GaussNoise(std_range=tuple(cfg.noise_std_range), p=cfg.gaussian_noise_prob),
            A.RandomBrightnessContrast(
                brightness_limit=cfg.brightness_limit,
                contrast_limit=cfg.contrast_limit,
                p=cfg.brightness_contrast_prob,
            ),
            A.ElasticTransform(
                alpha=cfg.elastic_alpha,
                sigma=cfg.elastic_sigma,
                p=cfg.elastic_prob,
            ),
            _normalize(cfg),
            ToTensorV2(),
        ]
    )


def build_eval_transform(
    config: AugmentationConfig | None = None,
    image_size: int = 32,
) -> A.Compose:
    """Deterministic evaluation pipeline: resize and normalize only."""

    cfg = config or AugmentationConfig()

    return A.Compose(
        [
            A.Resize(image_size, image_size),
            _normalize(cfg),
            ToTensorV2(),
        ]
    )
