"""Base configuration classes and utilities."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


@dataclass
class SamplerConfig:
    """Nodule patch extraction configuration."""

    max_scans: int | None = None
    min_cube_size: int = 10
    max_cube_size: int = 50
    patch_size: int = 32
    malignancy_threshold: float = 3.0
    epsilon: float = 1e-8

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.max_scans is not None and self.max_scans < 1:
            raise ValueError("max_scans must be >= 1 or None")
        if self.min_cube_size < 1:
            raise ValueError("min_cube_size must be >= 1")
        if self.max_cube_size <= self.min_cube_size:
            raise ValueError("max_cube_size must be > min_cube_size")
        if self.patch_size < 1:
            raise ValueError("patch_size must be >= 1")
        if self.epsilon <= 0:
            raise ValueError("epsilon must be > 0")


@dataclass
class AugmentationConfig:
    """Training-time 2D augmentation configuration."""

    rotate_prob: float = 0.5
    rotate_limit: int = 15
    horizontal_flip_prob: float = 0.5
    vertical_flip_prob: float = 0.5
    affine_prob: float = 0.5
    shift_limit: float = 0.1
    scale_range: tuple[float, float] = (0.9, 1.1)
    gaussian_noise_prob: float = 0.3
    noise_std_range: tuple[float, float] = (0.02, 0.1)
    brightness_contrast_prob: float = 0.5
    brightness_limit: float = 0.2
    contrast_limit: float = 0.2
    elastic_prob: float = 0.2
    elastic_alpha: float = 1.0
    elastic_sigma: float = 50.0
    normalize_mean: float = 0.5
    normalize_std: float = 0.5

    def __post_init__(self):
        """Validate configuration."""
        probs = [
            self.rotate_prob,
            self.horizontal_flip_prob,
            self.vertical_flip_prob,
            self.affine_prob,
            self.gaussian_noise_prob,
            self.brightness_contrast_prob,
            self.elastic_prob,
        ]
        for prob in probs:
            if not 0 <= prob <= 1:
                raise ValueError("All probabilities must be in [0, 1]")
        if self.normalize_std <= 0:
            raise ValueError("normalize_std must be > 0")
        if self.scale_range[0] <= 0 or self.scale_range[0] > self.scale_range[1]:
            raise ValueError("scale_range must be positive and ordered")


@dataclass
class DataConfig:
    """Data splitting and loading configuration."""

    batch_size: int = 32
    num_workers: int = 0
    val_split: float = 0.2
    balanced_sampling: bool = True
    pin_memory: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.num_workers < 0:
            raise ValueError("num_workers must be >= 0")
        if not 0 < self.val_split < 1:
            raise ValueError("val_split must be in (0, 1)")


@dataclass
class ModelConfig:
    """Capsule network architecture configuration."""

    in_channels: int = 1
    conv_channels: int = 256
    kernel_size: int = 9
    num_capsules: int = 12
    capsule_dim: int = 16
    routing_iterations: int = 3
    conv_dropout: float = 0.3
    hidden_dims: tuple[int, ...] = (256, 128)
    hidden_dropouts: tuple[float, ...] = (0.5, 0.4)
    decoder_dims: tuple[int, ...] = (512, 1024)
    num_classes: int = 2
    image_size: int = 32

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.in_channels < 1:
            raise ValueError("in_channels must be >= 1")
        if self.num_capsules < 1 or self.capsule_dim < 1:
            raise ValueError("num_capsules and capsule_dim must be >= 1")
        if self.routing_iterations < 1:
            raise ValueError("routing_iterations must be >= 1")
        if not 0 <= self.conv_dropout < 1:
            raise ValueError("conv_dropout must be in [0, 1)")
        if len(self.hidden_dims) != len(self.hidden_dropouts):
            raise ValueError("hidden_dims and hidden_dropouts must have the same length")
        if any(not 0 <= p < 1 for p in self.hidden_dropouts):
            raise ValueError("hidden_dropouts must be in [0, 1)")
        if self.num_classes < 2:
            raise ValueError("num_classes must be >= 2")
        # Two unpadded convolutions must leave at least one capsule location.
        if self.image_size < 2 * self.kernel_size - 1:
            raise ValueError("image_size too small for kernel_size")


@dataclass
class LossConfig:
    """Margin and reconstruction loss configuration."""

    m_plus: float = 0.9
    m_minus: float = 0.1
    lambda_: float = 0.5
    reconstruction_weight: float = 0.0005
    use_class_weights: bool = True

    def __post_init__(self):
        """Validate configuration."""
        if not 0 <= self.m_minus < self.m_plus <= 1:
            raise ValueError("margins must satisfy 0 <= m_minus < m_plus <= 1")
        if self.lambda_ < 0:
            raise ValueError("lambda_ must be >= 0")
        if self.reconstruction_weight < 0:
            raise ValueError("reconstruction_weight must be >= 0")


@dataclass
class OptimizerConfig:
    """Optimizer configuration."""

    type: str = "adamw"
    lr: float = 0.001
    weight_decay: float = 0.00001
    betas: tuple[float, float] = (0.9, 0.999)
    eps: float = 1e-8

    def __post_init__(self):
        """Validate configuration."""
        if self.type not in ["adam", "adamw"]:
            raise ValueError("type must be 'adam' or 'adamw'")
        if self.lr <= 0:
            raise ValueError("lr must be > 0")
        if self.weight_decay < 0:
            raise ValueError("weight_decay must be >= 0")


@dataclass
class SchedulerConfig:
    """Cosine annealing with warm restarts."""

    restart_period: int = 10
    period_multiplier: int = 1
    min_lr: float = 1e-6

    def __post_init__(self):
        """Validate configuration."""
        if self.restart_period < 1:
            raise ValueError("restart_period must be >= 1")
        if self.period_multiplier < 1:
            raise ValueError("period_multiplier must be >= 1")
        if self.min_lr < 0:
            raise ValueError("min_lr must be >= 0")


@dataclass
class CheckpointConfig:
    """Champion checkpoint configuration."""

    checkpoint_dir: str = "checkpoints"
    filename: str = "best_capsnet_model.pth"

    @property
    def path(self) -> Path:
        return Path(self.checkpoint_dir) / self.filename


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_dir: str = "logs"
    log_file: str | None = "train.log"
    console_log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.console_log_level not in valid_levels:
            raise ValueError(f"console_log_level must be one of {valid_levels}")


@dataclass
class ReportingConfig:
    """Reporting artifact locations."""

    output_dir: str = "reports"
    metrics_plot: str = "training_metrics.png"
    confusion_plot: str = "confusion_matrix.png"
    roc_plot: str = "roc_curve.png"
    history_file: str = "training_history.json"
    dpi: int = 100

    def __post_init__(self):
        """Validate configuration."""
        if self.dpi < 1:
            raise ValueError("dpi must be >= 1")


@dataclass
class HardwareConfig:
    """Hardware configuration."""

    accelerator: str = "auto"  # 'auto', 'cpu', 'gpu', 'cuda', 'mps'
    devices: int | str = "auto"
    precision: str = "32"
    deterministic: bool = False
    seed: int = 42

    def __post_init__(self):
        """Validate configuration."""
        valid_accelerators = ["auto", "cpu", "gpu", "cuda", "mps"]
        if self.accelerator not in valid_accelerators:
            raise ValueError(f"accelerator must be one of {valid_accelerators}")
        valid_precisions = ["32", "16-mixed", "bf16-mixed"]
        if self.precision not in valid_precisions:
            raise ValueError(f"precision must be one of {valid_precisions}")


class ConfigLoader:
    """Utility class for loading and merging configurations."""

    @staticmethod
    def load_yaml(config_path: str | Path) -> dict[str, Any]:
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Dictionary containing configuration
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config = yaml.safe_load(f)

        return config or {}

    @staticmethod
    def save_yaml(config: dict[str, Any], save_path: str | Path) -> None:
        """Save configuration to YAML file.

        Args:
            config: Configuration dictionary
            save_path: Path to save configuration
        """
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)

        with open(save_path, "w") as f:
            yaml.safe_dump(_to_plain(config), f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override config into base config.

        Args:
            base: Base configuration dictionary
            override: Override configuration dictionary

        Returns:
            Merged configuration dictionary
        """
        merged = base.copy()

        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = ConfigLoader.merge_configs(merged[key], value)
            else:
                merged[key] = value

        return merged


def _to_plain(value: Any) -> Any:
    # safe_dump rejects tuples
    if isinstance(value, dict):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value
