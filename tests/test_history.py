"""Tests for TrainingHistory."""

from __future__ import annotations

import csv
import json

from lung_capsnet.train import TrainingHistory


def _history() -> TrainingHistory:
    history = TrainingHistory()
    history.append(0.9, 0.8, 0.55, 0.6, 1e-3)
    history.append(0.7, 0.75, 0.65, 0.62, 9e-4)
    return history


class TestTrainingHistory:
    """Test suite for TrainingHistory."""

    def test_append(self):
        """Test every series grows by one per epoch."""
        history = _history()

        assert len(history) == 2
        assert history.train_loss == [0.9, 0.7]
        assert history.learning_rate == [1e-3, 9e-4]

    def test_to_dict_keys(self):
        """Test dictionary keys match the recorded series."""
        assert list(_history().to_dict()) == [
            "train_loss",
            "val_loss",
            "train_accuracy",
            "val_accuracy",
            "learning_rate",
        ]

    def test_from_dict_roundtrip(self):
        """Test reconstruction from a dictionary."""
        history = _history()
        assert TrainingHistory.from_dict(history.to_dict()) == history

    def test_export_json_and_csv(self, tmp_path):
        """Test export writes JSON and a CSV with one row per epoch."""
        json_path = _history().export(tmp_path / "reports" / "training_history.json")

        assert json.loads(json_path.read_text())["val_loss"] == [0.8, 0.75]

        with json_path.with_suffix(".csv").open() as f:
            rows = list(csv.reader(f))
        assert rows[0] == [
            "epoch",
            "train_loss",
            "val_loss",
            "train_accuracy",
            "val_accuracy",
            "learning_rate",
        ]
        assert len(rows) == 3
        assert rows[1][0] == "1"

    def test_export_empty(self, tmp_path):
        """Test an empty history exports a header-only CSV."""
        json_path = TrainingHistory().export(tmp_path / "history.json")

        assert json.loads(json_path.read_text())["train_loss"] == []
        assert json_path.with_suffix(".csv").read_text().strip().startswith("epoch")
