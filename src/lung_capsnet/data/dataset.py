"""Dataset wrapping sampled nodule patches with train/eval transforms."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from typing import Literal

import numpy as np
import torch
from torch.utils.data import Dataset

from ..config import AugmentationConfig
from .augment import build_eval_transform, build_train_transform, rescale_to_uint8

DatasetMode = Literal["train", "eval"]
Transform = Callable[..., dict]


class NodulePatchDataset(Dataset):
    """Indexable collection of ``(image tensor, label)`` pairs.

    Patches are stored as the sampler produced them (standardized floats) and
    transformed lazily on access: each patch is first stretched to ``uint8``
    with its own min/max, then passed through an albumentations pipeline that
    ends in mean/std normalization and tensor conversion.

    Args:
        images: 2D float patches.
        labels: Integer labels aligned with ``images``.
        mode: ``"train"`` for the randomized pipeline, ``"eval"`` for the
            deterministic one.
        transform: Explicit pipeline overriding the mode default.
        label_transforms: Optional per-label pipelines; a sample whose label
            is a key here uses that pipeline instead of the mode pipeline.
        augmentation: Augmentation parameters for the default pipelines.
        image_size: Output spatial size.
    """

    def __init__(
        self,
        images: Sequence[np.ndarray],
        labels: Sequence[int],
        *,
        mode: DatasetMode = "train",
        transform: Transform | None = None,
        label_transforms: Mapping[int, Transform] | None = None,
        augmentation: AugmentationConfig | None = None,
        image_size: int = 32,
    ) -> None:
        if mode not in ("train", "eval"):
            msg = f"mode must be 'train' or 'eval', got {mode!r}"
            raise ValueError(msg)
        if len(images) != len(labels):
            msg = f"images and labels differ in length: {len(images)} vs {len(labels)}"
            raise ValueError(msg)

        self.images = list(images)
        self.labels = [int(label) for label in labels]
        self.mode = mode
        if transform is None:
            builder = build_train_transform if mode == "train" else build_eval_transform
            transform = builder(augmentation, image_size=image_size)
        self.transform = transform
        self.label_transforms = dict(label_transforms or {})

    def __len__(self) -> int:
        return len(self.images)

    def __getitem__(self, index: int) -> tuple[torch.Tensor, int]:
        label = self.labels[index]
        image = rescale_to_uint8(self.images[index])
        transform = self.label_transforms.get(label, self.transform)
        tensor = transform(image=image)["image"]
        if not isinstance(tensor, torch.Tensor):
            tensor = torch.from_numpy(np.ascontiguousarray(tensor))
        if tensor.ndim == 2:
            tensor = tensor.unsqueeze(0)
        return tensor.float(), label

    @property
    def class_counts(self) -> dict[int, int]:
        return dict(sorted(Counter(self.labels).items()))


__all__ = ["DatasetMode", "NodulePatchDataset"]
