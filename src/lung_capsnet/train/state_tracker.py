"""Champion tracking for best-by-validation-loss weights.

This module provides a lightweight tracker that keeps a snapshot of the best
weights seen so far, separate from the live parameters that keep changing
every optimization step, together with the stall counter that drives early
stopping.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

import torch


class ChampionTracker:
    """Tracks the best validation loss and the weights that achieved it.

    An epoch improves on the champion only if its validation loss is strictly
    lower than the best seen so far. Every non-improving epoch increments the
    stall counter; an improvement resets it and replaces the snapshot.

    Attributes:
        patience: Number of consecutive non-improving epochs that stops training
        best_loss: Best validation loss seen (``inf`` before the first update)
        best_epoch: Epoch of the current champion, or None
        stall_count: Consecutive non-improving epochs since the last improvement

    Example:
        >>> tracker = ChampionTracker(patience=2)
        >>> tracker.update(0.50, model.state_dict(), epoch=0)
        True
        >>> tracker.update(0.55, model.state_dict(), epoch=1)
        False
        >>> tracker.update(0.60, model.state_dict(), epoch=2)
        False
        >>> tracker.should_stop
        True
    """

    def __init__(self, patience: int = 15) -> None:
        if patience < 1:
            raise ValueError(f"patience must be >= 1, got {patience}")

        self.patience = patience
        self.best_loss: float = math.inf
        self.best_epoch: int | None = None
        self.stall_count: int = 0
        self._champion: dict[str, torch.Tensor] | None = None

    @property
    def should_stop(self) -> bool:
        """Whether the stall counter has reached ``patience``."""
        return self.stall_count >= self.patience

    @property
    def champion_state(self) -> dict[str, torch.Tensor] | None:
        """Snapshot of the champion weights (CPU tensors), or None."""
        return self._champion

    def update(self, val_loss: float, state_dict: Mapping[str, torch.Tensor], epoch: int) -> bool:
        """Record one epoch's validation loss.

        Args:
            val_loss: Validation loss of the epoch
            state_dict: Live weights at the end of the epoch
            epoch: Epoch number (0-indexed)

        Returns:
            True if the epoch became the new champion
        """
        if math.isfinite(val_loss) and val_loss < self.best_loss:
            self.best_loss = float(val_loss)
            self.best_epoch = epoch
            self.stall_count = 0
            self._champion = {
                key: value.detach().to("cpu", copy=True) for key, value in state_dict.items()
            }
            return True

        self.stall_count += 1
        return False

    def reset(self) -> None:
        """Forget the champion and the stall counter."""
        self.best_loss = math.inf
        self.best_epoch = None
        self.stall_count = 0
        self._champion = None

    def get_state(self) -> dict[str, float | int | None]:
        """Get the tracker state as a dictionary."""
        return {
            "best_loss": self.best_loss,
            "best_epoch": self.best_epoch,
            "stall_count": self.stall_count,
            "patience": self.patience,
        }
