"""Scan and annotation records consumed by the nodule sampler.

The sampler only needs a small slice of what a LIDC-IDRI scan exposes: a
voxel volume and the radiologist annotations grouped per nodule. Anything
matching :class:`ScanRecord` works; :func:`query_lidc_scans` yields the real
thing from a configured pylidc database.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np

__all__ = [
    "AnnotationRecord",
    "NoduleSummary",
    "ScanRecord",
    "query_lidc_scans",
    "summarize_nodule",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class AnnotationRecord(Protocol):
    """Single radiologist reading of a nodule."""

    malignancy: Any
    centroid: Sequence[float]


@runtime_checkable
class ScanRecord(Protocol):
    """CT scan exposing its voxel volume and clustered nodule annotations."""

    id: Any

    def to_volume(self) -> np.ndarray: ...

    def cluster_annotations(self) -> Sequence[Sequence[AnnotationRecord]]: ...


@dataclass(frozen=True, slots=True)
class NoduleSummary:
    """Consensus view of one annotation cluster."""

    malignancy: float
    centroid: tuple[float, float, float]
    label: int

    @property
    def is_malignant(self) -> bool:
        return self.label == 1


def summarize_nodule(
    cluster: Sequence[AnnotationRecord],
    threshold: float = 3.0,
) -> NoduleSummary | None:
    """Reduce an annotation cluster to a mean malignancy score and centroid.

    Args:
        cluster: Annotations of the same nodule from different readers.
        threshold: Mean malignancy at or above which the nodule is labelled
            malignant (1); below it the nodule is benign (0).

    Returns:
        ``NoduleSummary``, or ``None`` when no annotation carries a
        malignancy rating.
    """

    ratings = [float(ann.malignancy) for ann in cluster if ann.malignancy is not None]
    if not ratings:
        return None

    malignancy = float(np.mean(ratings))
    centroid = np.mean([np.asarray(ann.centroid, dtype=np.float64) for ann in cluster], axis=0)
    label = 1 if malignancy >= threshold else 0

    return NoduleSummary(
        malignancy=malignancy,
        centroid=(float(centroid[0]), float(centroid[1]), float(centroid[2])),
        label=label,
    )


def query_lidc_scans(limit: int | None = None) -> Iterator[ScanRecord]:
    """Yield scans from the pylidc database configured in ``~/.pylidcrc``.

    Args:
        limit: Optional cap on the number of scans fetched from the database.

    Yields:
        ``pylidc.Scan`` instances, which satisfy :class:`ScanRecord`.
    """

    # pylidc is an optional extra; importing it reads the user's DICOM config.
    import pylidc as pl

    query = pl.query(pl.Scan)
    if limit is not None:
        query = query.limit(limit)

    logger.info("Querying LIDC-IDRI scans (limit=%s)", limit)
    yield from query
