"""Stratified splitting, class weighting and data loader construction.

Class imbalance is handled twice, independently: a ``WeightedRandomSampler``
balances what each mini-batch sees, and inverse-frequency class weights
balance each sample's contribution to the margin loss.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import torch
from sklearn.model_selection import train_test_split
from sklearn.utils.class_weight import compute_class_weight
from torch.utils.data import DataLoader, Dataset, WeightedRandomSampler

from ..config import DataConfig

__all__ = [
    "build_dataloaders",
    "compute_class_weights",
    "compute_sample_weights",
    "stratified_split",
]


def stratified_split(
    images: Sequence[np.ndarray],
    labels: Sequence[int],
    val_split: float = 0.2,
    seed: int = 42,
) -> tuple[list[np.ndarray], list[np.ndarray], list[int], list[int]]:
    """Split patches into train/validation sets preserving the class ratio.

    Returns:
        ``(train_images, val_images, train_labels, val_labels)``.

    Raises:
        ValueError: If there are no samples to split.
    """

    if len(images) == 0:
        raise ValueError("Cannot split an empty dataset")
    if len(images) != len(labels):
        msg = f"images and labels differ in length: {len(images)} vs {len(labels)}"
        raise ValueError(msg)

    train_images, val_images, train_labels, val_labels = train_test_split(
        list(images),
        list(labels),
        test_size=val_split,
        stratify=list(labels),
        random_state=seed,
    )
    return train_images, val_images, list(train_labels), list(val_labels)


def compute_class_weights(labels: Sequence[int], num_classes: int = 2) -> torch.Tensor:
    """Inverse-frequency weights ``n / (num_classes * count_c)`` per class.

    Classes absent from ``labels`` get weight 1.0.
    """

    label_array = np.asarray(labels, dtype=np.int64)
    weights = np.ones(num_classes, dtype=np.float64)
    present = np.unique(label_array)
    if present.size:
        balanced = compute_class_weight("balanced", classes=present, y=label_array)
        weights[present] = balanced * present.size / num_classes
    return torch.tensor(weights, dtype=torch.float32)


def compute_sample_weights(labels: Sequence[int]) -> torch.Tensor:
    """Per-sample weight ``1 / count[label]`` for balanced resampling."""

    label_array = np.asarray(labels, dtype=np.int64)
    counts = np.bincount(label_array)
    return torch.tensor(1.0 / counts[label_array], dtype=torch.double)


def build_dataloaders(
    train_dataset: Dataset,
    val_dataset: Dataset,
    train_labels: Sequence[int],
    config: DataConfig | None = None,
    seed: int = 42,
) -> tuple[DataLoader, DataLoader]:
    """Create training and validation loaders.

    The training loader draws with replacement through a seeded
    ``WeightedRandomSampler`` when ``balanced_sampling`` is enabled, and
    shuffles otherwise. The validation loader keeps dataset order.
    """

    cfg = config or DataConfig()
    generator = torch.Generator().manual_seed(seed)

    if cfg.balanced_sampling:
        sampler = WeightedRandomSampler(
            compute_sample_weights(train_labels),
            num_samples=len(train_labels),
            replacement=True,
            generator=generator,
        )
        shuffle = False
    else:
        sampler = None
        shuffle = True

    train_loader = DataLoader(
        train_dataset,
        batch_size=cfg.batch_size,
        sampler=sampler,
        shuffle=shuffle,
        generator=None if sampler is not None else generator,
        # BatchNorm cannot train on a single-sample batch
        drop_last=len(train_labels) > cfg.batch_size,
        num_workers=cfg.num_workers,
        pin_memory=cfg.pin_memory,
        persistent_workers=cfg.num_workers > 0,
    )
    val_loader = DataLoader(
        val_dataset,
        batch_size=cfg.batch_size,
        shuffle=False,
        num_workers=cfg.num_workers,
        pin_memory=cfg.pin_memory,
        persistent_workers=cfg.num_workers > 0,
    )
    return train_loader, val_loader
