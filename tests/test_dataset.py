"""Tests for NodulePatchDataset."""

from __future__ import annotations

import numpy as np
import pytest
import torch

from lung_capsnet.data import NodulePatchDataset


def _images(count: int) -> list[np.ndarray]:
    rng = np.random.default_rng(0)
    return [rng.normal(size=(32, 32)).astype(np.float32) for _ in range(count)]


class TestNodulePatchDataset:
    """Test suite for NodulePatchDataset."""

    def test_len(self):
        """Test length equals number of patches."""
        dataset = NodulePatchDataset(_images(5), [0, 1, 0, 1, 1])
        assert len(dataset) == 5

    def test_getitem(self):
        """Test items are (float tensor [1, 32, 32], int label)."""
        dataset = NodulePatchDataset(_images(2), [0, 1], mode="eval")

        image, label = dataset[1]

        assert image.shape == (1, 32, 32)
        assert image.dtype == torch.float32
        assert label == 1
        assert isinstance(label, int)

    def test_eval_mode_deterministic(self):
        """Test eval mode returns identical tensors for repeated access."""
        dataset = NodulePatchDataset(_images(1), [0], mode="eval")
        assert torch.equal(dataset[0][0], dataset[0][0])

    def test_eval_range(self):
        """Test eval tensors lie in [-1, 1]."""
        dataset = NodulePatchDataset(_images(3), [0, 1, 0], mode="eval")
        for index in range(len(dataset)):
            image, _ = dataset[index]
            assert float(image.min()) >= -1.0
            assert float(image.max()) <= 1.0

    def test_train_mode_shape(self):
        """Test augmented items keep the output shape."""
        dataset = NodulePatchDataset(_images(2), [0, 1], mode="train")
        image, _ = dataset[0]
        assert image.shape == (1, 32, 32)

    def test_invalid_mode(self):
        """Test unknown modes raise."""
        with pytest.raises(ValueError, match="mode"):
            NodulePatchDataset(_images(1), [0], mode="test")

    def test_length_mismatch(self):
        """Test misaligned images and labels raise."""
        with pytest.raises(ValueError, match="differ in length"):
            NodulePatchDataset(_images(2), [0])

    def test_custom_transform(self):
        """Test an explicit transform overrides the mode default."""

        def constant(image):
            return {"image": torch.zeros(1, 32, 32)}

        dataset = NodulePatchDataset(_images(1), [1], transform=constant)
        assert torch.equal(dataset[0][0], torch.zeros(1, 32, 32))

    def test_label_transforms(self):
        """Test a per-label transform applies only to that label."""

        def ones(image):
            return {"image": torch.ones(1, 32, 32)}

        dataset = NodulePatchDataset(
            _images(2), [0, 1], mode="eval", label_transforms={1: ones}
        )

        assert torch.equal(dataset[1][0], torch.ones(1, 32, 32))
        assert not torch.equal(dataset[0][0], torch.ones(1, 32, 32))

    def test_numpy_transform_output(self):
        """Test a transform returning a 2D array is converted to a tensor."""

        def as_array(image):
            return {"image": image.astype(np.float32)}

        dataset = NodulePatchDataset(_images(1), [0], transform=as_array)
        image, _ = dataset[0]

        assert isinstance(image, torch.Tensor)
        assert image.shape == (1, 32, 32)

    def test_class_counts(self):
        """Test class counts per label."""
        dataset = NodulePatchDataset(_images(5), [1, 0, 1, 1, 0])
        assert dataset.class_counts == {0: 2, 1: 3}
