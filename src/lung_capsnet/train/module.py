"""PyTorch Lightning module for capsule-network nodule classification.

This module implements the training and validation logic using
PyTorch Lightning's LightningModule interface.
"""

from __future__ import annotations

import math
from typing import Any

import lightning as L
import torch
from torch.optim import Adam, AdamW
from torch.optim.lr_scheduler import CosineAnnealingWarmRestarts

from ..config import LossConfig, ModelConfig, OptimizerConfig, SchedulerConfig
from ..loss import CapsuleLoss, MarginLoss
from ..model import CapsuleClassifier


class LitCapsuleClassifier(L.LightningModule):
    """PyTorch Lightning module for benign/malignant nodule classification.

    Wraps ``CapsuleClassifier`` with ``CapsuleLoss`` and handles:
    - Forward pass through the capsule network
    - Class-weighted margin loss plus reconstruction loss
    - Per-epoch loss/accuracy logging for training and validation
    - AdamW (or Adam) with cosine annealing warm restarts stepped per epoch

    Args:
        model_config: Capsule network architecture. Default: ``ModelConfig()``
        loss_config: Margin/reconstruction loss parameters. Default: ``LossConfig()``
        optimizer_config: Optimizer parameters. Default: ``OptimizerConfig()``
        scheduler_config: Warm-restart schedule. Default: ``SchedulerConfig()``
        class_weights: Per-class loss weights of shape (num_classes,). Ignored
            when ``loss_config.use_class_weights`` is False. Default: None

    Example:
        >>> weights = compute_class_weights(train_labels)
        >>> module = LitCapsuleClassifier(class_weights=weights)
        >>> trainer = L.Trainer(max_epochs=100)
        >>> trainer.fit(module, train_loader, val_loader)
    """

    def __init__(
        self,
        model_config: ModelConfig | None = None,
        loss_config: LossConfig | None = None,
        optimizer_config: OptimizerConfig | None = None,
        scheduler_config: SchedulerConfig | None = None,
        class_weights: torch.Tensor | None = None,
    ) -> None:
        super().__init__()

        self.model_config = model_config or ModelConfig()
        self.loss_config = loss_config or LossConfig()
        self.optimizer_config = optimizer_config or OptimizerConfig()
        self.scheduler_config = scheduler_config or SchedulerConfig()

        if class_weights is not None and class_weights.shape != (self.model_config.num_classes,):
            msg = (
                f"class_weights must have shape ({self.model_config.num_classes},), "
                f"got {tuple(class_weights.shape)}"
            )
            raise ValueError(msg)

        self.save_hyperparameters(ignore=["class_weights"])

        self.model = CapsuleClassifier.from_config(self.model_config)
        self.loss_fn = CapsuleLoss(
            margin=MarginLoss(
                m_plus=self.loss_config.m_plus,
                m_minus=self.loss_config.m_minus,
                lambda_=self.loss_config.lambda_,
            ),
            reconstruction_weight=self.loss_config.reconstruction_weight,
        )

        if class_weights is not None and self.loss_config.use_class_weights:
            class_weights = class_weights.detach().float().clone()
        else:
            class_weights = None
        self.class_weights: torch.Tensor | None
        self.register_buffer("class_weights", class_weights)
        self._epoch_lr = math.nan

    def forward(self, x: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
        """Forward pass returning ``(logits, reconstruction)``."""
        return self.model(x)  # type: ignore[no-any-return]

    def _shared_step(self, batch: tuple[torch.Tensor, torch.Tensor], stage: str) -> torch.Tensor:
        images, labels = batch
        logits, reconstruction = self(images)
        losses = self.loss_fn(logits, labels, reconstruction, images, self.class_weights)
        accuracy = (logits.argmax(dim=1) == labels).float().mean()

        batch_size = images.shape[0]
        self.log(f"{stage}/loss", losses["total"], on_step=False, on_epoch=True, prog_bar=True, batch_size=batch_size)
        self.log(f"{stage}/accuracy", accuracy, on_step=False, on_epoch=True, prog_bar=True, batch_size=batch_size)
        self.log(f"{stage}/loss_margin", losses["margin"], on_step=False, on_epoch=True, batch_size=batch_size)
        self.log(
            f"{stage}/loss_reconstruction",
            losses["reconstruction"],
            on_step=False,
            on_epoch=True,
            batch_size=batch_size,
        )
        return losses["total"]

    def training_step(self, batch: tuple[torch.Tensor, torch.Tensor], _batch_idx: int) -> torch.Tensor:
        """Training step.

        Args:
            batch: ``(images [B, 1, H, W], labels [B])``
            _batch_idx: Index of the batch

        Returns:
            Total training loss
        """
        return self._shared_step(batch, "train")

    def validation_step(self, batch: tuple[torch.Tensor, torch.Tensor], _batch_idx: int) -> torch.Tensor:
        """Validation step; same metrics as training, no weight updates."""
        return self._shared_step(batch, "val")

    def configure_optimizers(self) -> dict[str, Any]:  # type: ignore[override]
        """Configure optimizer and learning rate scheduler.

        Returns:
            Dictionary with optimizer and scheduler configuration
        """
        opt_cfg = self.optimizer_config
        optimizer_cls = AdamW if opt_cfg.type == "adamw" else Adam
        optimizer = optimizer_cls(
            self.parameters(),
            lr=opt_cfg.lr,
            weight_decay=opt_cfg.weight_decay,
            betas=tuple(opt_cfg.betas),
            eps=opt_cfg.eps,
        )

        sched_cfg = self.scheduler_config
        scheduler = CosineAnnealingWarmRestarts(
            optimizer,
            T_0=sched_cfg.restart_period,
            T_mult=sched_cfg.period_multiplier,
            eta_min=sched_cfg.min_lr,
        )

        return {
            "optimizer": optimizer,
            "lr_scheduler": {
                "scheduler": scheduler,
                "interval": "epoch",
                "frequency": 1,
            },
        }

    def on_train_epoch_start(self) -> None:
        """Record the learning rate this epoch trains with."""
        # The epoch-interval scheduler has already stepped by on_train_epoch_end
        self._epoch_lr = float(self.trainer.optimizers[0].param_groups[0]["lr"])

    def on_train_epoch_end(self) -> None:
        """Hook called at the end of each training epoch."""
        self.log("train/lr", self._epoch_lr, on_step=False, on_epoch=True)
