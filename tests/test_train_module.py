"""Tests for the PyTorch Lightning training module."""

from __future__ import annotations

import pytest
import torch
from torch.optim import Adam, AdamW
from torch.optim.lr_scheduler import CosineAnnealingWarmRestarts

from lung_capsnet.config import LossConfig, ModelConfig, OptimizerConfig, SchedulerConfig
from lung_capsnet.train import LitCapsuleClassifier

SMALL_MODEL = ModelConfig(
    conv_channels=8,
    num_capsules=4,
    capsule_dim=4,
    hidden_dims=(16, 8),
    decoder_dims=(32, 64),
)


def _batch(size: int = 4) -> tuple[torch.Tensor, torch.Tensor]:
    images = torch.rand(size, 1, 32, 32) * 2 - 1
    labels = torch.tensor([0, 1] * (size // 2))
    return images, labels


class TestLitCapsuleClassifier:
    """Test suite for LitCapsuleClassifier."""

    def test_init_defaults(self):
        """Test default construction."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL)

        assert module.class_weights is None
        assert module.loss_fn.reconstruction_weight == 0.0005
        assert module.loss_fn.margin.m_plus == 0.9

    def test_class_weights_buffer(self):
        """Test class weights are registered as a buffer."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL, class_weights=torch.tensor([0.75, 1.5]))

        buffers = dict(module.named_buffers())
        assert torch.equal(buffers["class_weights"], torch.tensor([0.75, 1.5]))

    def test_class_weights_disabled(self):
        """Test weights are dropped when the loss config disables them."""
        module = LitCapsuleClassifier(
            model_config=SMALL_MODEL,
            loss_config=LossConfig(use_class_weights=False),
            class_weights=torch.tensor([0.75, 1.5]),
        )
        assert module.class_weights is None

    def test_invalid_class_weights_shape(self):
        """Test class weights must match the number of classes."""
        with pytest.raises(ValueError, match="class_weights"):
            LitCapsuleClassifier(model_config=SMALL_MODEL, class_weights=torch.ones(3))

    def test_forward(self):
        """Test forward returns logits and reconstruction."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL)
        images, _ = _batch()

        logits, reconstruction = module(images)

        assert logits.shape == (4, 2)
        assert reconstruction.shape == (4, 1, 32, 32)

    def test_training_step(self):
        """Test training step returns a differentiable scalar."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL, class_weights=torch.ones(2))

        loss = module.training_step(_batch(), 0)

        assert loss.dim() == 0
        assert loss.requires_grad
        loss.backward()

    def test_validation_step(self):
        """Test validation step returns a finite scalar."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL)
        module.eval()

        with torch.no_grad():
            loss = module.validation_step(_batch(), 0)

        assert torch.isfinite(loss)

    def test_configure_optimizers(self):
        """Test AdamW with per-epoch cosine warm restarts."""
        module = LitCapsuleClassifier(
            model_config=SMALL_MODEL,
            optimizer_config=OptimizerConfig(lr=2e-3, weight_decay=1e-4),
            scheduler_config=SchedulerConfig(restart_period=7, min_lr=1e-5),
        )

        config = module.configure_optimizers()

        optimizer = config["optimizer"]
        scheduler = config["lr_scheduler"]["scheduler"]
        assert isinstance(optimizer, AdamW)
        assert optimizer.param_groups[0]["lr"] == 2e-3
        assert optimizer.param_groups[0]["weight_decay"] == 1e-4
        assert isinstance(scheduler, CosineAnnealingWarmRestarts)
        assert scheduler.T_0 == 7
        assert scheduler.eta_min == 1e-5
        assert config["lr_scheduler"]["interval"] == "epoch"
        assert config["lr_scheduler"]["frequency"] == 1

    def test_adam_optimizer(self):
        """Test plain Adam can be selected."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL, optimizer_config=OptimizerConfig(type="adam"))
        optimizer = module.configure_optimizers()["optimizer"]
        assert isinstance(optimizer, Adam)
        assert not isinstance(optimizer, AdamW)

    def test_warm_restart_schedule(self):
        """Test the learning rate returns to its initial value after a restart period."""
        module = LitCapsuleClassifier(
            model_config=SMALL_MODEL,
            scheduler_config=SchedulerConfig(restart_period=3),
        )
        config = module.configure_optimizers()
        optimizer = config["optimizer"]
        scheduler = config["lr_scheduler"]["scheduler"]

        rates = []
        for _ in range(4):
            rates.append(optimizer.param_groups[0]["lr"])
            optimizer.step()
            scheduler.step()

        assert rates[1] < rates[0]
        assert rates[2] < rates[1]
        assert rates[3] == pytest.approx(rates[0])

    def test_hyperparameters_saved(self):
        """Test configs are stored as hyperparameters."""
        module = LitCapsuleClassifier(model_config=SMALL_MODEL)
        assert "model_config" in module.hparams
        assert "class_weights" not in module.hparams
