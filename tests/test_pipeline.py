"""End-to-end training run on in-memory scans."""

from __future__ import annotations

import json
import math

import pytest
import torch

from lung_capsnet.config import (
    DataConfig,
    HardwareConfig,
    ModelConfig,
    OptimizerConfig,
    SchedulerConfig,
    TrainConfig,
)
from lung_capsnet.train import TrainingResult, train_capsnet

SMALL_MODEL = ModelConfig(
    conv_channels=8,
    num_capsules=4,
    capsule_dim=4,
    hidden_dims=(16, 8),
    decoder_dims=(32, 64),
)

TRAINER_KWARGS = {
    "enable_progress_bar": False,
    "enable_model_summary": False,
    "num_sanity_val_steps": 0,
}


def _config(epochs: int = 3) -> TrainConfig:
    return TrainConfig(
        epochs=epochs,
        early_stopping_patience=15,
        data=DataConfig(batch_size=4, val_split=0.25),
        model=SMALL_MODEL,
        optimizer=OptimizerConfig(lr=1e-3),
        scheduler=SchedulerConfig(restart_period=2, min_lr=1e-6),
        hardware=HardwareConfig(accelerator="cpu", devices=1, seed=7),
    )


@pytest.fixture
def run(tmp_path, balanced_scans, capsys) -> tuple[TrainingResult, str]:
    result = train_capsnet(_config(), balanced_scans, output_dir=tmp_path, trainer_kwargs=TRAINER_KWARGS)
    return result, capsys.readouterr().out


@pytest.fixture
def result(run) -> TrainingResult:
    return run[0]


class TestTrainCapsnet:
    """Test suite for train_capsnet."""

    def test_sampler_stats(self, result):
        """Test every nodule was sampled and labelled."""
        stats = result.sampler_stats
        assert stats.scans_processed == 8
        assert stats.benign == 8
        assert stats.malignant == 8
        assert stats.discarded == 0

    def test_history_length(self, result):
        """Test one history row per epoch, all losses finite."""
        history = result.history
        assert len(history) == 3
        assert all(math.isfinite(loss) for loss in history.train_loss)
        assert all(math.isfinite(loss) for loss in history.val_loss)

    def test_history_learning_rate(self, result):
        """Test each row holds the rate the epoch trained with, including the warm restart."""
        rates = result.history.learning_rate
        assert rates[0] == pytest.approx(1e-3)
        assert rates[1] == pytest.approx(1e-6 + (1e-3 - 1e-6) / 2)
        assert rates[2] == pytest.approx(1e-3)

    def test_report_printed(self, run):
        """Test the classification report goes to standard output."""
        _, stdout = run
        assert "Benign" in stdout
        assert "Malignant" in stdout
        assert "ROC AUC" in stdout

    def test_champion_checkpoint(self, result, tmp_path):
        """Test the champion is saved and loaded into the returned model."""
        expected = tmp_path / "checkpoints" / "best_capsnet_model.pth"
        assert result.checkpoint_path == expected
        assert expected.exists()
        assert result.best_epoch is not None

        saved = torch.load(expected, weights_only=True)
        for key, value in result.model.state_dict().items():
            assert torch.equal(saved[key], value.cpu())

    def test_evaluation(self, result):
        """Test the validation split is evaluated."""
        assert result.evaluation is not None
        assert result.evaluation.confusion_matrix.sum() == 4

    def test_report_artifacts(self, result, tmp_path):
        """Test plots, history and summary are written under the reports directory."""
        reports = tmp_path / "reports"
        assert (reports / "training_metrics.png").exists()
        assert (reports / "confusion_matrix.png").exists()
        assert (reports / "roc_curve.png").exists()
        assert (reports / "training_history.json").exists()
        assert (reports / "training_history.csv").exists()
        assert set(result.report_paths) == {"metrics", "confusion", "roc"}

        summary = json.loads((reports / "training_summary.json").read_text())
        assert summary["epochs_completed"] == len(result.history)
        assert summary["sampler"]["malignant"] == 8
        assert summary["evaluation"]["num_samples"] == 4
        assert summary["early_stopping"]["patience"] == 15
        assert summary["early_stopping"]["best_epoch"] == result.best_epoch

    def test_no_patches(self, tmp_path):
        """Test an empty scan list raises."""
        with pytest.raises(ValueError, match="No nodule patches"):
            train_capsnet(_config(), [], output_dir=tmp_path, trainer_kwargs=TRAINER_KWARGS)
