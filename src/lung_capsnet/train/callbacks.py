"""Lightning callbacks for champion selection and history recording.

This module provides two callbacks:
- ``ChampionEarlyStopping`` keeps the best-by-validation-loss weights,
  stops training once validation loss stalls for ``patience`` epochs and
  restores the champion when fitting ends.
- ``HistoryRecorder`` appends one ``TrainingHistory`` row per epoch.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path

import lightning as L
import torch
from lightning.pytorch.callbacks import Callback

from .history import TrainingHistory
from .state_tracker import ChampionTracker

logger = logging.getLogger(__name__)


def _tracked_module(pl_module: L.LightningModule) -> torch.nn.Module:
    """The network whose weights form the champion (``pl_module.model`` if present)."""
    return getattr(pl_module, "model", pl_module)


def _metric(trainer: L.Trainer, key: str) -> float:
    value = trainer.callback_metrics.get(key)
    return math.nan if value is None else float(value)


def _current_lr(trainer: L.Trainer) -> float:
    return float(trainer.optimizers[0].param_groups[0]["lr"]) if trainer.optimizers else math.nan


class ChampionEarlyStopping(Callback):
    """Best-weights snapshot plus patience-based early stopping.

    The monitored metric is read after every validation run (the sanity check
    is skipped). A strictly lower value replaces the champion snapshot and
    resets the stall counter; otherwise the counter grows and training stops
    once it reaches ``patience``. At the end of fitting the champion weights
    are loaded back into the module, so the returned model is always the
    champion rather than the last epoch, and saved to ``checkpoint_path``.

    Args:
        patience: Non-improving epochs before stopping. Default: 15
        checkpoint_path: Where to ``torch.save`` the champion state dict.
            Default: None (not saved)
        monitor: Metric key to minimize. Default: "val/loss"

    Example:
        >>> champion = ChampionEarlyStopping(patience=15, checkpoint_path="best.pth")
        >>> trainer = L.Trainer(callbacks=[champion])
        >>> trainer.fit(module, train_loader, val_loader)
        >>> champion.tracker.best_epoch
        12
    """

    def __init__(
        self,
        patience: int = 15,
        checkpoint_path: str | Path | None = None,
        monitor: str = "val/loss",
    ) -> None:
        super().__init__()
        self.tracker = ChampionTracker(patience=patience)
        self.checkpoint_path = Path(checkpoint_path) if checkpoint_path is not None else None
        self.monitor = monitor

    def on_fit_start(self, _trainer: L.Trainer, _pl_module: L.LightningModule) -> None:
        self.tracker.reset()

    def on_validation_end(self, trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        if trainer.sanity_checking:
            return

        value = trainer.callback_metrics.get(self.monitor)
        if value is None:
            logger.warning("Metric '%s' not found; champion not updated", self.monitor)
            return

        epoch = trainer.current_epoch
        loss = float(value)
        if self.tracker.update(loss, _tracked_module(pl_module).state_dict(), epoch):
            logger.info("Epoch %d: new best %s %.4f", epoch, self.monitor, loss)
        else:
            logger.debug(
                "Epoch %d: no improvement (%d/%d)",
                epoch,
                self.tracker.stall_count,
                self.tracker.patience,
            )

        if self.tracker.should_stop:
            logger.info(
                "Early stopping at epoch %d: %s did not improve for %d epochs (best %.4f at epoch %s)",
                epoch,
                self.monitor,
                self.tracker.patience,
                self.tracker.best_loss,
                self.tracker.best_epoch,
            )
            trainer.should_stop = True

    def on_fit_end(self, _trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        champion = self.tracker.champion_state
        if champion is None:
            logger.warning("No champion recorded; keeping the live weights")
            return

        _tracked_module(pl_module).load_state_dict(champion)
        logger.info(
            "Restored champion weights from epoch %s (%s %.4f)",
            self.tracker.best_epoch,
            self.monitor,
            self.tracker.best_loss,
        )

        if self.checkpoint_path is not None:
            self.checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
            torch.save(champion, self.checkpoint_path)
            logger.info("Saved champion checkpoint to %s", self.checkpoint_path)


class HistoryRecorder(Callback):
    """Appends epoch loss, accuracy and learning rate to a ``TrainingHistory``.

    Attributes:
        history: The history being filled
    """

    def __init__(self, history: TrainingHistory | None = None) -> None:
        super().__init__()
        self.history = history if history is not None else TrainingHistory()
        self._epoch_lr = math.nan

    def on_train_epoch_start(self, trainer: L.Trainer, _pl_module: L.LightningModule) -> None:
        # Epoch-interval schedulers step before on_train_epoch_end
        self._epoch_lr = _current_lr(trainer)

    def on_train_epoch_end(self, trainer: L.Trainer, _pl_module: L.LightningModule) -> None:
        learning_rate = self._epoch_lr
        self.history.append(
            train_loss=_metric(trainer, "train/loss"),
            val_loss=_metric(trainer, "val/loss"),
            train_accuracy=_metric(trainer, "train/accuracy"),
            val_accuracy=_metric(trainer, "val/accuracy"),
            learning_rate=learning_rate,
        )
        logger.info(
            "Epoch %d: train loss %.4f acc %.4f | val loss %.4f acc %.4f | lr %.2e",
            trainer.current_epoch,
            self.history.train_loss[-1],
            self.history.train_accuracy[-1],
            self.history.val_loss[-1],
            self.history.val_accuracy[-1],
            learning_rate,
        )
