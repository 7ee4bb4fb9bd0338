"""Tests for offline prediction helpers."""

from __future__ import annotations

import numpy as np
import pytest
import torch

from lung_capsnet.config import ModelConfig
from lung_capsnet.inference import PatchPrediction, load_classifier, predict_patch
from lung_capsnet.model import CapsuleClassifier

SMALL_MODEL = ModelConfig(
    conv_channels=8,
    num_capsules=4,
    capsule_dim=4,
    hidden_dims=(16, 8),
    decoder_dims=(32, 64),
)


class TestPatchPrediction:
    """Test suite for PatchPrediction."""

    def test_to_dict(self):
        """Test the record the upload UI renders."""
        prediction = PatchPrediction(class_label="Malignant", confidence=0.87)
        assert prediction.to_dict() == {"class_label": "Malignant", "confidence": 0.87}

    def test_invalid_label(self):
        """Test unknown class names raise."""
        with pytest.raises(ValueError, match="class_label"):
            PatchPrediction(class_label="Unknown", confidence=0.5)

    def test_invalid_confidence(self):
        """Test confidence outside [0, 1] raises."""
        with pytest.raises(ValueError, match="confidence"):
            PatchPrediction(class_label="Benign", confidence=1.5)


class TestLoadClassifier:
    """Test suite for load_classifier."""

    def test_roundtrip(self, tmp_path):
        """Test saved champion weights load into a fresh model."""
        model = CapsuleClassifier.from_config(SMALL_MODEL)
        path = tmp_path / "best_capsnet_model.pth"
        torch.save(model.state_dict(), path)

        loaded = load_classifier(path, SMALL_MODEL)

        assert not loaded.training
        for key, value in model.state_dict().items():
            assert torch.equal(loaded.state_dict()[key], value)

    def test_missing_file(self, tmp_path):
        """Test a missing checkpoint raises."""
        with pytest.raises(FileNotFoundError):
            load_classifier(tmp_path / "missing.pth")


class TestPredictPatch:
    """Test suite for predict_patch."""

    def test_prediction(self):
        """Test a label name and a probability are returned."""
        torch.manual_seed(0)
        model = CapsuleClassifier.from_config(SMALL_MODEL)
        patch = np.random.default_rng(0).normal(size=(32, 32)).astype(np.float32)

        prediction = predict_patch(model, patch)

        assert prediction.class_label in ("Benign", "Malignant")
        assert 0.5 <= prediction.confidence <= 1.0

    def test_deterministic(self):
        """Test repeated predictions agree."""
        model = CapsuleClassifier.from_config(SMALL_MODEL)
        patch = np.random.default_rng(1).normal(size=(40, 40))

        assert predict_patch(model, patch) == predict_patch(model, patch)

    def test_rejects_volume(self):
        """Test 3D input raises."""
        model = CapsuleClassifier.from_config(SMALL_MODEL)
        with pytest.raises(ValueError, match="2D"):
            predict_patch(model, np.zeros((4, 32, 32)))
