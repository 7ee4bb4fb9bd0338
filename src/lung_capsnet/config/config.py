"""Main configuration class for lung-capsnet."""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .base import (
    AugmentationConfig,
    CheckpointConfig,
    ConfigLoader,
    DataConfig,
    HardwareConfig,
    LoggingConfig,
    LossConfig,
    ModelConfig,
    OptimizerConfig,
    ReportingConfig,
    SamplerConfig,
    SchedulerConfig,
)


@dataclass
class TrainConfig:
    """Complete training configuration."""

    # Core settings
    epochs: int = 100
    early_stopping_patience: int = 15

    # Component configurations
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    augmentation: AugmentationConfig = field(default_factory=AugmentationConfig)
    data: DataConfig = field(default_factory=DataConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    loss: LossConfig = field(default_factory=LossConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    checkpoint: CheckpointConfig = field(default_factory=CheckpointConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    hardware: HardwareConfig = field(default_factory=HardwareConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.epochs < 1:
            raise ValueError("epochs must be >= 1")
        if self.early_stopping_patience < 1:
            raise ValueError("early_stopping_patience must be >= 1")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return asdict(self)

    def save(self, save_path: str | Path) -> None:
        """Save configuration to YAML file.

        Args:
            save_path: Path to save configuration
        """
        ConfigLoader.save_yaml(self.to_dict(), save_path)


_SECTIONS: dict[str, type] = {
    "sampler": SamplerConfig,
    "augmentation": AugmentationConfig,
    "data": DataConfig,
    "model": ModelConfig,
    "loss": LossConfig,
    "optimizer": OptimizerConfig,
    "scheduler": SchedulerConfig,
    "checkpoint": CheckpointConfig,
    "logging": LoggingConfig,
    "reporting": ReportingConfig,
    "hardware": HardwareConfig,
}

_TUPLE_FIELDS = {
    "augmentation": ("scale_range", "noise_std_range"),
    "model": ("hidden_dims", "hidden_dropouts", "decoder_dims"),
    "optimizer": ("betas",),
}


@dataclass
class Config:
    """Top-level configuration: training settings plus run identity."""

    train: TrainConfig = field(default_factory=TrainConfig)
    experiment_name: str = "default"
    output_dir: str = "outputs"

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Config":
        """Create configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config object
        """
        config_dict = ConfigLoader.load_yaml(config_path)
        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "Config":
        """Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            Config object
        """
        experiment_name = config_dict.get("experiment_name", "default")
        output_dir = config_dict.get("output_dir", "outputs")

        train_dict = config_dict.get("train", {}) or {}
        train_config = cls._parse_train_config(train_dict)

        return cls(
            train=train_config,
            experiment_name=experiment_name,
            output_dir=output_dir,
        )

    @staticmethod
    def _parse_train_config(train_dict: dict[str, Any]) -> TrainConfig:
        """Parse training configuration from dictionary.

        Args:
            train_dict: Training configuration dictionary

        Returns:
            TrainConfig object
        """
        sections: dict[str, Any] = {}
        for name, section_cls in _SECTIONS.items():
            section_dict = dict(train_dict.get(name) or {})
            # YAML has no tuples
            for key in _TUPLE_FIELDS.get(name, ()):
                if key in section_dict and section_dict[key] is not None:
                    section_dict[key] = tuple(section_dict[key])
            # Handle learning_rate -> lr mapping
            if name == "optimizer" and "learning_rate" in train_dict:
                section_dict["lr"] = train_dict["learning_rate"]
            sections[name] = section_cls(**section_dict)

        return TrainConfig(
            epochs=train_dict.get("epochs", 100),
            early_stopping_patience=train_dict.get("early_stopping_patience", 15),
            **sections,
        )

    def merge_from_file(self, override_path: str | Path) -> "Config":
        """Merge configuration with overrides from another file.

        Args:
            override_path: Path to override configuration file

        Returns:
            New Config object with merged configuration
        """
        override_dict = ConfigLoader.load_yaml(override_path)
        return self.merge_from_dict(override_dict)

    def merge_from_dict(self, override_dict: dict[str, Any]) -> "Config":
        """Merge configuration with overrides from dictionary.

        Args:
            override_dict: Override configuration dictionary

        Returns:
            New Config object with merged configuration
        """
        merged_dict = ConfigLoader.merge_configs(asdict(self), override_dict)
        return Config.from_dict(merged_dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        return asdict(self)

    def save(self, save_path: str | Path) -> None:
        """Save configuration to YAML file.

        Args:
            save_path: Path to save configuration
        """
        ConfigLoader.save_yaml(self.to_dict(), save_path)

    def __repr__(self) -> str:
        """String representation of configuration."""
        return f"Config(experiment_name='{self.experiment_name}')"
