"""Loss functions for capsule-network nodule classification."""

from .capsule_loss import CapsuleLoss
from .margin import MarginLoss

__all__ = [
    "CapsuleLoss",
    "MarginLoss",
]
