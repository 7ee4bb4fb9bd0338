"""Tests for splitting, class weighting and loader construction."""

from __future__ import annotations

import numpy as np
import pytest
import torch
from torch.utils.data import WeightedRandomSampler

from lung_capsnet.config import DataConfig
from lung_capsnet.data import (
    NodulePatchDataset,
    build_dataloaders,
    compute_class_weights,
    compute_sample_weights,
    stratified_split,
)


def _images(count: int) -> list[np.ndarray]:
    rng = np.random.default_rng(0)
    return [rng.normal(size=(32, 32)).astype(np.float32) for _ in range(count)]


class TestStratifiedSplit:
    """Test suite for stratified_split."""

    def test_preserves_ratio(self):
        """Test both splits keep the class ratio."""
        labels = [0] * 16 + [1] * 4

        _, _, train_labels, val_labels = stratified_split(_images(20), labels, val_split=0.25)

        assert len(val_labels) == 5
        assert val_labels.count(1) == 1
        assert train_labels.count(1) == 3

    def test_reproducible(self):
        """Test the same seed yields the same split."""
        labels = [0, 1] * 10
        first = stratified_split(_images(20), labels, seed=3)
        second = stratified_split(_images(20), labels, seed=3)
        assert first[2] == second[2]
        assert first[3] == second[3]

    def test_empty(self):
        """Test splitting nothing raises."""
        with pytest.raises(ValueError, match="empty"):
            stratified_split([], [])

    def test_length_mismatch(self):
        """Test misaligned inputs raise."""
        with pytest.raises(ValueError, match="differ in length"):
            stratified_split(_images(3), [0, 1])


class TestClassWeights:
    """Test suite for compute_class_weights and compute_sample_weights."""

    def test_balanced_labels_give_unit_weights(self):
        """Test equal class counts give weight 1.0 for every class."""
        weights = compute_class_weights([0, 1, 0, 1])
        assert torch.allclose(weights, torch.ones(2))
        assert weights.dtype == torch.float32

    def test_inverse_frequency(self):
        """Test weights equal n / (k * count)."""
        weights = compute_class_weights([0, 0, 0, 1])
        assert torch.allclose(weights, torch.tensor([4 / 6, 2.0]))

    def test_missing_class(self):
        """Test an absent class gets weight 1.0."""
        weights = compute_class_weights([0, 0, 0])
        assert weights[1] == 1.0

    def test_sample_weights(self):
        """Test per-sample weights are 1 / count of their class."""
        weights = compute_sample_weights([0, 0, 0, 1])
        assert torch.allclose(weights, torch.tensor([1 / 3, 1 / 3, 1 / 3, 1.0], dtype=torch.double))

    def test_sample_weights_balance_classes(self):
        """Test each class carries the same total sampling mass."""
        labels = [0] * 9 + [1] * 3
        weights = compute_sample_weights(labels)
        labels_t = torch.tensor(labels)
        assert torch.isclose(weights[labels_t == 0].sum(), weights[labels_t == 1].sum())


class TestBuildDataloaders:
    """Test suite for build_dataloaders."""

    def _datasets(self):
        labels = [0] * 6 + [1] * 2
        train = NodulePatchDataset(_images(8), labels, mode="train")
        val = NodulePatchDataset(_images(4), [0, 1, 0, 1], mode="eval")
        return train, val, labels

    def test_balanced_sampler(self):
        """Test the training loader uses a weighted sampler with replacement."""
        train, val, labels = self._datasets()

        train_loader, _ = build_dataloaders(train, val, labels, DataConfig(batch_size=4))

        assert isinstance(train_loader.sampler, WeightedRandomSampler)
        assert train_loader.sampler.replacement
        assert train_loader.sampler.num_samples == 8

    def test_shuffle_without_balancing(self):
        """Test plain shuffling when balanced sampling is disabled."""
        train, val, labels = self._datasets()

        train_loader, _ = build_dataloaders(
            train, val, labels, DataConfig(batch_size=4, balanced_sampling=False)
        )

        assert not isinstance(train_loader.sampler, WeightedRandomSampler)

    def test_validation_order(self):
        """Test the validation loader keeps dataset order."""
        train, val, labels = self._datasets()

        _, val_loader = build_dataloaders(train, val, labels, DataConfig(batch_size=4))
        _, batch_labels = next(iter(val_loader))

        assert batch_labels.tolist() == [0, 1, 0, 1]

    def test_batch_shapes(self):
        """Test batches are (B, 1, 32, 32) images and (B,) labels."""
        train, val, labels = self._datasets()

        train_loader, _ = build_dataloaders(train, val, labels, DataConfig(batch_size=4))
        images, batch_labels = next(iter(train_loader))

        assert images.shape == (4, 1, 32, 32)
        assert batch_labels.shape == (4,)
