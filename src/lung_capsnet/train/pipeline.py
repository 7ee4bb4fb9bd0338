"""End-to-end training run: sample, split, fit, evaluate, report."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import lightning as L
import numpy as np

from ..config import TrainConfig
from ..data import (
    NodulePatchDataset,
    SamplerStats,
    ScanRecord,
    VolumeSampler,
    build_dataloaders,
    compute_class_weights,
    stratified_split,
)
from ..eval import ClassificationResults, evaluate_classifier, format_classification_report
from ..model import CapsuleClassifier
from ..viz import save_training_report
from .callbacks import ChampionEarlyStopping, HistoryRecorder
from .history import TrainingHistory
from .module import LitCapsuleClassifier

logger = logging.getLogger(__name__)

SUMMARY_FILE = "training_summary.json"


@dataclass
class TrainingResult:
    """Outcome of ``train_capsnet``.

    ``model`` always holds the champion weights, not the last epoch's.
    """

    model: CapsuleClassifier
    history: TrainingHistory
    best_val_loss: float
    best_epoch: int | None
    checkpoint_path: Path | None
    sampler_stats: SamplerStats
    evaluation: ClassificationResults | None = None
    report_paths: dict[str, Path] | None = None


def _resolve(output_dir: str | Path | None, path: str | Path) -> Path:
    path = Path(path)
    if output_dir is None or path.is_absolute():
        return path
    return Path(output_dir) / path


def train_capsnet(
    config: TrainConfig,
    scans: Iterable[ScanRecord],
    output_dir: str | Path | None = None,
    trainer_kwargs: dict[str, Any] | None = None,
) -> TrainingResult:
    """Train a capsule classifier on nodules sampled from ``scans``.

    Args:
        config: Complete training configuration
        scans: Scan records to sample nodule patches from
        output_dir: Base directory for relative checkpoint and report paths.
            Default: None (paths are used as configured)
        trainer_kwargs: Extra ``L.Trainer`` arguments, overriding the defaults

    Returns:
        TrainingResult with the champion model, history and evaluation

    Raises:
        ValueError: If sampling produced no usable patches
    """
    seed = config.hardware.seed
    L.seed_everything(seed, workers=True)

    sampler = VolumeSampler(config.sampler, rng=np.random.default_rng(seed))
    images, labels = sampler.sample(scans)
    if not images:
        raise ValueError("No nodule patches were sampled; nothing to train on")

    train_images, val_images, train_labels, val_labels = stratified_split(
        images, labels, val_split=config.data.val_split, seed=seed
    )
    logger.info("Split: %d train / %d validation patches", len(train_labels), len(val_labels))

    image_size = config.model.image_size
    train_dataset = NodulePatchDataset(
        train_images,
        train_labels,
        mode="train",
        augmentation=config.augmentation,
        image_size=image_size,
    )
    val_dataset = NodulePatchDataset(
        val_images,
        val_labels,
        mode="eval",
        augmentation=config.augmentation,
        image_size=image_size,
    )
    train_loader, val_loader = build_dataloaders(
        train_dataset, val_dataset, train_labels, config.data, seed=seed
    )

    class_weights = compute_class_weights(train_labels, num_classes=config.model.num_classes)
    logger.info("Class weights: %s", class_weights.tolist())

    module = LitCapsuleClassifier(
        model_config=config.model,
        loss_config=config.loss,
        optimizer_config=config.optimizer,
        scheduler_config=config.scheduler,
        class_weights=class_weights,
    )

    checkpoint_path = _resolve(output_dir, config.checkpoint.path)
    champion = ChampionEarlyStopping(
        patience=config.early_stopping_patience,
        checkpoint_path=checkpoint_path,
    )
    recorder = HistoryRecorder()

    trainer_args: dict[str, Any] = {
        "max_epochs": config.epochs,
        "accelerator": config.hardware.accelerator,
        "devices": config.hardware.devices,
        "precision": config.hardware.precision,
        "deterministic": config.hardware.deterministic,
        "logger": False,
        "enable_checkpointing": False,
        "callbacks": [champion, recorder],
    }
    trainer_args.update(trainer_kwargs or {})

    trainer = L.Trainer(**trainer_args)
    trainer.fit(module, train_dataloaders=train_loader, val_dataloaders=val_loader)

    model = module.model
    evaluation = evaluate_classifier(model, val_loader)
    report = format_classification_report(evaluation)
    print(report)
    logger.info("Validation classification report:\n%s", report)

    reporting = config.reporting
    report_dir = _resolve(output_dir, reporting.output_dir)
    history = recorder.history
    history.export(report_dir / reporting.history_file)

    report_paths: dict[str, Path] = {}
    if len(history) > 0:
        report_paths = save_training_report(
            history, evaluation, replace(reporting, output_dir=str(report_dir))
        )

    tracker = champion.tracker
    result = TrainingResult(
        model=model,
        history=history,
        best_val_loss=tracker.best_loss,
        best_epoch=tracker.best_epoch,
        checkpoint_path=checkpoint_path if tracker.champion_state is not None else None,
        sampler_stats=sampler.stats,
        evaluation=evaluation,
        report_paths=report_paths,
    )
    _export_summary(result, report_dir / SUMMARY_FILE, early_stopping=tracker.get_state())
    return result


def _export_summary(
    result: TrainingResult,
    summary_path: Path,
    early_stopping: dict[str, Any] | None = None,
) -> None:
    if early_stopping is not None and not np.isfinite(early_stopping["best_loss"]):
        early_stopping = {**early_stopping, "best_loss": None}
    summary = {
        "epochs_completed": len(result.history),
        "best_epoch": result.best_epoch,
        "best_val_loss": result.best_val_loss if np.isfinite(result.best_val_loss) else None,
        "checkpoint_path": str(result.checkpoint_path) if result.checkpoint_path else None,
        "sampler": result.sampler_stats.as_dict(),
        "evaluation": result.evaluation.to_dict() if result.evaluation else None,
        "early_stopping": early_stopping,
    }
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    summary_path.write_text(json.dumps(summary, indent=2, default=float), encoding="utf-8")
    logger.info("Saved training summary to %s", summary_path)
