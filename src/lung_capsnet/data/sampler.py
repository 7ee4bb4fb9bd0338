"""Extraction of 2D nodule patches from annotated CT volumes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass

import numpy as np
from skimage.transform import resize

from ..config import SamplerConfig
from .scans import ScanRecord, summarize_nodule

__all__ = ["SamplerStats", "VolumeSampler", "crop_around", "normalize_patch"]

logger = logging.getLogger(__name__)


@dataclass
class SamplerStats:
    """Running counters over everything a sampler has seen."""

    scans_processed: int = 0
    nodules_total: int = 0
    benign: int = 0
    malignant: int = 0
    discarded: int = 0
    scans_failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def crop_around(
    volume: np.ndarray,
    center: tuple[int, int, int],
    half_extent: int,
) -> np.ndarray:
    """Crop a cube of ``2 * half_extent`` voxels per axis, clipped to bounds."""

    slices = tuple(
        slice(max(c - half_extent, 0), min(c + half_extent, dim))
        for c, dim in zip(center, volume.shape)
    )
    return volume[slices]


def normalize_patch(patch: np.ndarray, epsilon: float = 1e-8) -> np.ndarray:
    """Standardize a patch to zero mean and unit variance."""

    patch = patch.astype(np.float32)
    return ((patch - patch.mean()) / (patch.std() + epsilon)).astype(np.float32)


class VolumeSampler:
    """Turn annotated scans into fixed-size, standardized nodule patches.

    Every nodule cluster yields at most one ``patch_size x patch_size`` image:
    a cube of random half-extent is cropped around the consensus centroid,
    its central slice along the last axis is resized with anti-aliasing and
    standardized. Clusters that cannot be turned into a patch are counted as
    discarded and skipped; extraction is best-effort and never raises for a
    single bad nodule.

    Args:
        config: Sampling parameters. Defaults to ``SamplerConfig()``.
        rng: Generator used for crop-size draws. Pass a seeded generator for
            reproducible runs.
    """

    def __init__(
        self,
        config: SamplerConfig | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.config = config or SamplerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._stats = SamplerStats()
        self._seen: set = set()

    @property
    def stats(self) -> SamplerStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = SamplerStats()
        self._seen.clear()

    def sample(
        self,
        scans: Iterable[ScanRecord],
        max_scans: int | None = None,
    ) -> tuple[list[np.ndarray], list[int]]:
        """Extract patches and binary labels from ``scans``.

        Args:
            scans: Scan records; a scan whose ``id`` was already processed is
                skipped.
            max_scans: Upper bound on distinct scans processed, including scans
                that fail to load. Falls back to ``config.max_scans``; ``None``
                means no limit.

        Returns:
            Aligned lists of float32 patches and labels (0 benign, 1 malignant).
        """

        limit = max_scans if max_scans is not None else self.config.max_scans
        images: list[np.ndarray] = []
        labels: list[int] = []
        processed = 0

        for scan in scans:
            if limit is not None and processed >= limit:
                break
            if scan.id in self._seen:
                logger.debug("Skipping already processed scan %s", scan.id)
                continue
            self._seen.add(scan.id)
            processed += 1

            try:
                volume = np.asarray(scan.to_volume())
                clusters = scan.cluster_annotations()
            except Exception:
                logger.warning("Skipping scan %s: volume or annotations unavailable", scan.id, exc_info=True)
                self._stats.scans_failed += 1
                continue
            logger.debug("Scan %s: volume %s, %d nodules", scan.id, volume.shape, len(clusters))

            for cluster in clusters:
                self._stats.nodules_total += 1
                try:
                    result = self._extract(volume, cluster)
                except Exception:
                    logger.debug("Nodule extraction failed in scan %s", scan.id, exc_info=True)
                    result = None

                if result is None:
                    self._stats.discarded += 1
                    continue

                patch, label = result
                images.append(patch)
                labels.append(label)
                if label == 1:
                    self._stats.malignant += 1
                else:
                    self._stats.benign += 1

            self._stats.scans_processed += 1

        logger.info(
            "Sampled %d patches from %d scans (benign=%d, malignant=%d, discarded=%d, failed scans=%d)",
            len(images),
            processed,
            self._stats.benign,
            self._stats.malignant,
            self._stats.discarded,
            self._stats.scans_failed,
        )
        return images, labels

    def _extract(self, volume: np.ndarray, cluster) -> tuple[np.ndarray, int] | None:
        cfg = self.config

        summary = summarize_nodule(cluster, threshold=cfg.malignancy_threshold)
        if summary is None:
            logger.debug("Discarding nodule without malignancy rating")
            return None
        if not np.all(np.isfinite(summary.centroid)):
            logger.debug("Discarding nodule with non-finite centroid %s", summary.centroid)
            return None

        center = tuple(int(round(c)) for c in summary.centroid)
        half_extent = int(self.rng.integers(cfg.min_cube_size, cfg.max_cube_size))
        patch = crop_around(volume, center, half_extent)
        if patch.ndim != 3:
            logger.debug("Discarding nodule with crop shape %s", patch.shape)
            return None

        central = patch[:, :, patch.shape[2] // 2]
        resized = resize(
            central.astype(np.float32),
            (cfg.patch_size, cfg.patch_size),
            anti_aliasing=True,
        )
        return normalize_patch(resized, cfg.epsilon), summary.label
