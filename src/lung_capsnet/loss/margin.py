"""Class-weighted margin loss for capsule classification."""

from __future__ import annotations

import torch
import torch.nn as nn
import torch.nn.functional as F


class MarginLoss(nn.Module):
    """Squared-hinge margin loss over per-class predictions.

    For every class k with one-hot target T_k and prediction p_k:

        L_k = T_k * max(0, m_plus - p_k)^2
              + lambda_ * (1 - T_k) * max(0, p_k - m_minus)^2

    Predictions are clamped to [0, 1] before the hinge terms. The classifier
    emits raw logits, so clamping saturates any logit outside that range;
    this matches how the trained models were produced and is kept as-is.

    Without class weights the loss is the mean of L_k over classes and batch.
    With class weights, each sample's class-mean loss is scaled by the weight
    of its true class before averaging over the batch.

    Args:
        m_plus: Upper margin the true class should exceed. Default: 0.9
        m_minus: Lower margin false classes should stay under. Default: 0.1
        lambda_: Down-weighting of the false-class term. Default: 0.5

    Shape:
        - labels: (B,) integer class indices
        - predictions: (B, C)
        - class_weights: (C,) or None
        - Output: scalar

    Examples:
        >>> loss_fn = MarginLoss()
        >>> labels = torch.tensor([0, 1, 1])
        >>> predictions = torch.tensor([[0.95, 0.05], [0.2, 0.7], [0.0, 1.0]])
        >>> loss = loss_fn(labels, predictions)

        >>> # Balance an imbalanced batch
        >>> weights = torch.tensor([0.75, 1.5])
        >>> loss = loss_fn(labels, predictions, class_weights=weights)
    """

    def __init__(self, m_plus: float = 0.9, m_minus: float = 0.1, lambda_: float = 0.5) -> None:
        super().__init__()

        if not 0.0 <= m_minus < m_plus <= 1.0:
            msg = f"Margins must satisfy 0 <= m_minus < m_plus <= 1, got {m_minus}, {m_plus}"
            raise ValueError(msg)
        if lambda_ < 0:
            raise ValueError(f"lambda_ must be non-negative, got {lambda_}")

        self.m_plus = m_plus
        self.m_minus = m_minus
        self.lambda_ = lambda_

    def forward(
        self,
        labels: torch.Tensor,
        predictions: torch.Tensor,
        class_weights: torch.Tensor | None = None,
    ) -> torch.Tensor:
        """Compute the margin loss.

        Args:
            labels: Ground-truth class indices (B,)
            predictions: Per-class predictions (B, C)
            class_weights: Optional per-class weights (C,)

        Returns:
            Scalar loss value

        Raises:
            ValueError: If shapes are inconsistent
        """
        if predictions.dim() != 2:
            raise ValueError(f"Expected predictions of shape (B, C), got {tuple(predictions.shape)}")
        if labels.shape != predictions.shape[:1]:
            msg = (
                f"Labels shape {tuple(labels.shape)} does not match batch size "
                f"{predictions.shape[0]}"
            )
            raise ValueError(msg)

        num_classes = predictions.shape[1]
        if class_weights is not None and class_weights.shape != (num_classes,):
            msg = f"class_weights must have shape ({num_classes},), got {tuple(class_weights.shape)}"
            raise ValueError(msg)

        targets = F.one_hot(labels.long(), num_classes=num_classes).to(predictions.dtype)
        probs = predictions.clamp(0.0, 1.0)

        present = targets * F.relu(self.m_plus - probs) ** 2
        absent = self.lambda_ * (1.0 - targets) * F.relu(probs - self.m_minus) ** 2
        per_class = present + absent

        if class_weights is None:
            return per_class.mean()

        sample_weights = class_weights.to(predictions)[labels.long()]
        return (per_class.mean(dim=1) * sample_weights).mean()
