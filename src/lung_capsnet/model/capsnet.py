"""Capsule network with dynamic routing for 2D nodule classification."""

from __future__ import annotations

import torch
import torch.nn as nn
import torch.nn.functional as F

from ..config import ModelConfig


def squash(s: torch.Tensor, dim: int = -1, eps: float = 1e-8) -> torch.Tensor:
    """Squashing nonlinearity.

    Scales each vector along ``dim`` by ``|s|^2 / (1 + |s|^2)`` while keeping
    its direction, so output norms lie in ``[0, 1)``.

    Args:
        s: Input capsule vectors
        dim: Axis holding the capsule components
        eps: Added to the squared norm under the square root, so the zero
            vector maps to zero with finite gradients

    Returns:
        Tensor of the same shape as ``s``
    """
    squared_norm = (s**2).sum(dim=dim, keepdim=True)
    scale = squared_norm / (1.0 + squared_norm)
    return scale * s / torch.sqrt(squared_norm + eps)


def dynamic_routing(u_hat: torch.Tensor, iterations: int = 3) -> torch.Tensor:
    """Routing-by-agreement between input and output capsules.

    Args:
        u_hat: Input capsule projections of shape (B, N_in, N_out, D)
        iterations: Number of routing iterations (>= 1)

    Returns:
        Output capsule vectors of shape (B, N_out, D)

    Raises:
        ValueError: If ``u_hat`` is not 4D or ``iterations`` < 1
    """
    if u_hat.dim() != 4:
        msg = f"Expected 4D input (B, N_in, N_out, D), got {u_hat.dim()}D"
        raise ValueError(msg)
    if iterations < 1:
        raise ValueError(f"iterations must be >= 1, got {iterations}")

    logits = torch.zeros(u_hat.shape[:3], dtype=u_hat.dtype, device=u_hat.device)

    for iteration in range(iterations):
        coupling = F.softmax(logits, dim=2)
        s = (coupling.unsqueeze(-1) * u_hat).sum(dim=1)
        v = squash(s, dim=-1)
        if iteration < iterations - 1:
            # Agreement: dot product of each projection with its output capsule
            logits = logits + (u_hat * v.unsqueeze(1)).sum(dim=-1)

    return v


class PrimaryCapsules(nn.Module):
    """Strided convolution reshaped into a grid of capsule vectors.

    Every spatial location of the convolution output becomes one input
    capsule slot holding ``num_capsules`` vectors of ``capsule_dim``
    components.

    Architecture: Conv2d -> BatchNorm2d -> PReLU -> Dropout2d -> reshape
    """

    def __init__(
        self,
        in_channels: int = 256,
        num_capsules: int = 12,
        capsule_dim: int = 16,
        kernel_size: int = 9,
        stride: int = 2,
        dropout: float = 0.3,
    ) -> None:
        """Initialize primary capsule layer.

        Args:
            in_channels: Number of input feature channels
            num_capsules: Output capsules per spatial location
            capsule_dim: Components per capsule vector
            kernel_size: Convolution kernel size
            stride: Convolution stride
            dropout: Channel-wise dropout rate
        """
        super().__init__()
        self.num_capsules = num_capsules
        self.capsule_dim = capsule_dim

        self.conv = nn.Sequential(
            nn.Conv2d(
                in_channels,
                num_capsules * capsule_dim,
                kernel_size=kernel_size,
                stride=stride,
                padding=0,
            ),
            nn.BatchNorm2d(num_capsules * capsule_dim),
            nn.PReLU(),
            nn.Dropout2d(p=dropout),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Project features to capsules.

        Args:
            x: Feature map [B, C, H, W]

        Returns:
            Capsule projections [B, H' * W', num_capsules, capsule_dim]
        """
        out = self.conv(x)
        batch, _, height, width = out.shape
        out = out.view(batch, self.num_capsules, self.capsule_dim, height * width)
        return out.permute(0, 3, 1, 2).contiguous()


def initialize_weights(module: nn.Module) -> None:
    """Kaiming-normal (fan-out) conv/linear weights, unit-scale norms, zero biases."""
    for m in module.modules():
        if isinstance(m, (nn.Conv2d, nn.Linear)):
            nn.init.kaiming_normal_(m.weight, mode="fan_out", nonlinearity="relu")
            if m.bias is not None:
                nn.init.zeros_(m.bias)
        elif isinstance(m, (nn.BatchNorm1d, nn.BatchNorm2d)):
            nn.init.ones_(m.weight)
            nn.init.zeros_(m.bias)


class CapsuleClassifier(nn.Module):
    """Capsule network classifier with a reconstruction decoder.

    Pipeline:
        1. Conv stem (k=9, no padding) to ``conv_channels`` feature maps
        2. Primary capsules (k=9, stride 2)
        3. Dynamic routing into ``num_capsules`` output capsules
        4. MLP head on the flattened capsules -> class logits
        5. MLP decoder on the same vector -> sigmoid image reconstruction

    For the default 32x32 input the stem yields 24x24 maps and the primary
    layer an 8x8 grid, i.e. 64 input capsules routed into 12 output
    capsules of 16 components.

    Args:
        in_channels: Input image channels. Default: 1
        conv_channels: Stem output channels. Default: 256
        kernel_size: Kernel size of both convolutions. Default: 9
        num_capsules: Output capsules. Default: 12
        capsule_dim: Capsule vector length. Default: 16
        routing_iterations: Dynamic routing iterations. Default: 3
        conv_dropout: Dropout2d rate after both convolutions. Default: 0.3
        hidden_dims: Classification head hidden sizes. Default: (256, 128)
        hidden_dropouts: Dropout after each hidden layer. Default: (0.5, 0.4)
        decoder_dims: Decoder hidden sizes. Default: (512, 1024)
        num_classes: Number of output classes. Default: 2
        image_size: Input (and reconstruction) side length. Default: 32

    Example:
        >>> model = CapsuleClassifier()
        >>> logits, reconstruction = model(torch.randn(4, 1, 32, 32))
        >>> logits.shape, reconstruction.shape
        (torch.Size([4, 2]), torch.Size([4, 1, 32, 32]))
    """

    def __init__(
        self,
        in_channels: int = 1,
        conv_channels: int = 256,
        kernel_size: int = 9,
        num_capsules: int = 12,
        capsule_dim: int = 16,
        routing_iterations: int = 3,
        conv_dropout: float = 0.3,
        hidden_dims: tuple[int, ...] = (256, 128),
        hidden_dropouts: tuple[float, ...] = (0.5, 0.4),
        decoder_dims: tuple[int, ...] = (512, 1024),
        num_classes: int = 2,
        image_size: int = 32,
    ) -> None:
        super().__init__()

        if routing_iterations < 1:
            raise ValueError(f"routing_iterations must be >= 1, got {routing_iterations}")
        if len(hidden_dims) != len(hidden_dropouts):
            raise ValueError("hidden_dims and hidden_dropouts must have the same length")

        self.in_channels = in_channels
        self.image_size = image_size
        self.num_capsules = num_capsules
        self.capsule_dim = capsule_dim
        self.routing_iterations = routing_iterations

        self.stem = nn.Sequential(
            nn.Conv2d(in_channels, conv_channels, kernel_size=kernel_size, stride=1, padding=0),
            nn.BatchNorm2d(conv_channels),
            nn.PReLU(),
            nn.Dropout2d(p=conv_dropout),
        )
        self.primary_capsules = PrimaryCapsules(
            in_channels=conv_channels,
            num_capsules=num_capsules,
            capsule_dim=capsule_dim,
            kernel_size=kernel_size,
            stride=2,
            dropout=conv_dropout,
        )

        capsule_features = num_capsules * capsule_dim

        head_layers: list[nn.Module] = []
        in_features = capsule_features
        for hidden, dropout in zip(hidden_dims, hidden_dropouts):
            head_layers += [
                nn.Linear(in_features, hidden),
                nn.BatchNorm1d(hidden),
                nn.PReLU(),
                nn.Dropout(p=dropout),
            ]
            in_features = hidden
        head_layers.append(nn.Linear(in_features, num_classes))
        self.classifier = nn.Sequential(*head_layers)

        decoder_layers: list[nn.Module] = []
        in_features = capsule_features
        for hidden in decoder_dims:
            decoder_layers += [nn.Linear(in_features, hidden), nn.ReLU(inplace=True)]
            in_features = hidden
        decoder_layers += [
            nn.Linear(in_features, in_channels * image_size * image_size),
            nn.Sigmoid(),
        ]
        self.decoder = nn.Sequential(*decoder_layers)

        initialize_weights(self)

    @classmethod
    def from_config(cls, config: ModelConfig) -> "CapsuleClassifier":
        """Build a classifier from a ``ModelConfig``."""
        return cls(
            in_channels=config.in_channels,
            conv_channels=config.conv_channels,
            kernel_size=config.kernel_size,
            num_capsules=config.num_capsules,
            capsule_dim=config.capsule_dim,
            routing_iterations=config.routing_iterations,
            conv_dropout=config.conv_dropout,
            hidden_dims=tuple(config.hidden_dims),
            hidden_dropouts=tuple(config.hidden_dropouts),
            decoder_dims=tuple(config.decoder_dims),
            num_classes=config.num_classes,
            image_size=config.image_size,
        )

    def capsules(self, x: torch.Tensor) -> torch.Tensor:
        """Compute routed output capsules [B, num_capsules, capsule_dim]."""
        if x.dim() != 4:
            msg = f"Expected 4D input (B, C, H, W), got {x.dim()}D"
            raise ValueError(msg)
        features = self.stem(x)
        u_hat = self.primary_capsules(features)
        return dynamic_routing(u_hat, self.routing_iterations)

    def forward(self, x: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
        """Forward pass.

        Args:
            x: Input patches [B, C, H, W]

        Returns:
            Tuple of class logits [B, num_classes] and reconstructions
            [B, C, H, W]
        """
        flat = self.capsules(x).flatten(start_dim=1)
        logits = self.classifier(flat)
        reconstruction = self.decoder(flat).view(
            -1, self.in_channels, self.image_size, self.image_size
        )
        return logits, reconstruction
