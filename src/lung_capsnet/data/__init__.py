"""Nodule sampling, augmentation, and loading."""

from .augment import build_eval_transform, build_train_transform, rescale_to_uint8
from .dataset import DatasetMode, NodulePatchDataset
from .sampler import SamplerStats, VolumeSampler, crop_around, normalize_patch
from .scans import (
    AnnotationRecord,
    NoduleSummary,
    ScanRecord,
    query_lidc_scans,
    summarize_nodule,
)
from .split import (
    build_dataloaders,
    compute_class_weights,
    compute_sample_weights,
    stratified_split,
)

__all__ = [
    # Scan records
    "AnnotationRecord",
    "NoduleSummary",
    "ScanRecord",
    "query_lidc_scans",
    "summarize_nodule",
    # Sampling
    "SamplerStats",
    "VolumeSampler",
    "crop_around",
    "normalize_patch",
    # Augmentations
    "build_eval_transform",
    "build_train_transform",
    "rescale_to_uint8",
    # Dataset
    "DatasetMode",
    "NodulePatchDataset",
    # Splitting and loaders
    "build_dataloaders",
    "compute_class_weights",
    "compute_sample_weights",
    "stratified_split",
]
