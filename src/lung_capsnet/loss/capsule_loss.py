"""Combined margin + reconstruction objective for the capsule classifier."""

from __future__ import annotations

import torch
import torch.nn as nn
import torch.nn.functional as F

from .margin import MarginLoss


class CapsuleLoss(nn.Module):
    """Margin loss plus a small-weighted reconstruction MSE.

    total = margin(labels, logits, class_weights)
            + reconstruction_weight * MSE(reconstruction, images)

    Args:
        margin: Margin loss instance. Default: ``MarginLoss()``
        reconstruction_weight: Scale of the reconstruction term. Default: 0.0005

    Shape:
        - logits: (B, C)
        - labels: (B,)
        - reconstruction: (B, 1, H, W)
        - images: (B, 1, H, W)
        - Output: dict with scalar 'total', 'margin' and 'reconstruction'
          (the reconstruction entry is unweighted)

    Examples:
        >>> loss_fn = CapsuleLoss()
        >>> logits, reconstruction = model(images)
        >>> losses = loss_fn(logits, labels, reconstruction, images)
        >>> losses["total"].backward()
    """

    def __init__(self, margin: MarginLoss | None = None, reconstruction_weight: float = 0.0005) -> None:
        super().__init__()

        if reconstruction_weight < 0:
            msg = f"reconstruction_weight must be non-negative, got {reconstruction_weight}"
            raise ValueError(msg)

        self.margin = margin if margin is not None else MarginLoss()
        self.reconstruction_weight = reconstruction_weight

    def forward(
        self,
        logits: torch.Tensor,
        labels: torch.Tensor,
        reconstruction: torch.Tensor,
        images: torch.Tensor,
        class_weights: torch.Tensor | None = None,
    ) -> dict[str, torch.Tensor]:
        if reconstruction.shape != images.shape:
            msg = (
                f"Reconstruction shape {tuple(reconstruction.shape)} does not match "
                f"image shape {tuple(images.shape)}"
            )
            raise ValueError(msg)

        margin_loss = self.margin(labels, logits, class_weights)
        reconstruction_loss = F.mse_loss(reconstruction, images)
        total = margin_loss + self.reconstruction_weight * reconstruction_loss

        return {
            "total": total,
            "margin": margin_loss,
            "reconstruction": reconstruction_loss,
        }
