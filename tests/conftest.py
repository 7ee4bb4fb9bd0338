"""Shared fixtures: in-memory stand-ins for pylidc scans and annotations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pytest


@dataclass
class FakeAnnotation:
    malignancy: Any
    centroid: tuple[float, float, float]


@dataclass
class FakeScan:
    id: Any
    volume: np.ndarray
    clusters: list[list[FakeAnnotation]] = field(default_factory=list)
    volume_calls: int = 0

    def to_volume(self) -> np.ndarray:
        self.volume_calls += 1
        return self.volume

    def cluster_annotations(self) -> list[list[FakeAnnotation]]:
        return self.clusters


def make_volume(shape: tuple[int, int, int] = (64, 64, 64), seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(-500.0, 200.0, size=shape).astype(np.float32)


def nodule(malignancy: Any, centroid: tuple[float, float, float] = (32.0, 32.0, 32.0), readers: int = 3):
    return [FakeAnnotation(malignancy=malignancy, centroid=centroid) for _ in range(readers)]


@pytest.fixture
def make_scan():
    """Factory building a FakeScan with one cluster per malignancy rating."""

    def _make(scan_id: Any, ratings: list[Any], shape=(64, 64, 64), seed: int = 0) -> FakeScan:
        return FakeScan(
            id=scan_id,
            volume=make_volume(shape, seed=seed),
            clusters=[nodule(rating) for rating in ratings],
        )

    return _make


@pytest.fixture
def balanced_scans(make_scan):
    """Eight scans with one benign and one malignant nodule each."""
    scans = []
    for idx in range(8):
        scan = make_scan(f"LIDC-{idx:04d}", [1, 5], seed=idx)
        scan.clusters[1] = nodule(5, centroid=(20.0, 40.0, 30.0))
        scans.append(scan)
    return scans
