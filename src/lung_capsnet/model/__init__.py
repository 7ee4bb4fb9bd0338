"""Model architectures and neural network components."""

from .capsnet import (
    CapsuleClassifier,
    PrimaryCapsules,
    dynamic_routing,
    initialize_weights,
    squash,
)

__all__ = [
    "CapsuleClassifier",
    "PrimaryCapsules",
    "dynamic_routing",
    "initialize_weights",
    "squash",
]
