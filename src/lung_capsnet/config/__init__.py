"""Configuration management."""

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
from .config import Config, TrainConfig
from .defaults import get_default_train_config, get_fast_dev_config

__all__ = [
    # Main config classes
    "Config",
    "TrainConfig",
    # Component configs
    "SamplerConfig",
    "AugmentationConfig",
    "DataConfig",
    "ModelConfig",
    "LossConfig",
    "OptimizerConfig",
    "SchedulerConfig",
    "CheckpointConfig",
    "LoggingConfig",
    "ReportingConfig",
    "HardwareConfig",
    # Utilities
    "ConfigLoader",
    # Default configs
    "get_default_train_config",
    "get_fast_dev_config",
]
