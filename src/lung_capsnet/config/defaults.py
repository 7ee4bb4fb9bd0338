"""Default configuration templates."""

from typing import Any


def get_default_train_config() -> dict[str, Any]:
    """Get default training configuration.

    Returns:
        Default training configuration dictionary
    """
    return {
        "experiment_name": "capsnet_lidc",
        "output_dir": "outputs",
        "train": {
            "epochs": 100,
            "early_stopping_patience": 15,
            "sampler": {
                "max_scans": None,
                "min_cube_size": 10,
                "max_cube_size": 50,
                "patch_size": 32,
                "malignancy_threshold": 3.0,
                "epsilon": 1e-8,
            },
            "augmentation": {
                "rotate_prob": 0.5,
                "rotate_limit": 15,
                "horizontal_flip_prob": 0.5,
                "vertical_flip_prob": 0.5,
                "affine_prob": 0.5,
                "shift_limit": 0.1,
                "scale_range": [0.9, 1.1],
                "gaussian_noise_prob": 0.3,
                "noise_std_range": [0.02, 0.1],
                "brightness_contrast_prob": 0.5,
                "brightness_limit": 0.2,
                "contrast_limit": 0.2,
                "elastic_prob": 0.2,
                "elastic_alpha": 1.0,
                "elastic_sigma": 50.0,
                "normalize_mean": 0.5,
                "normalize_std": 0.5,
            },
            "data": {
                "batch_size": 32,
                "num_workers": 0,
                "val_split": 0.2,
                "balanced_sampling": True,
                "pin_memory": False,
            },
            "model": {
                "in_channels": 1,
                "conv_channels": 256,
                "kernel_size": 9,
                "num_capsules": 12,
                "capsule_dim": 16,
                "routing_iterations": 3,
                "conv_dropout": 0.3,
                "hidden_dims": [256, 128],
                "hidden_dropouts": [0.5, 0.4],
                "decoder_dims": [512, 1024],
                "num_classes": 2,
                "image_size": 32,
            },
            "loss": {
                "m_plus": 0.9,
                "m_minus": 0.1,
                "lambda_": 0.5,
                "reconstruction_weight": 0.0005,
                "use_class_weights": True,
            },
            "optimizer": {
                "type": "adamw",
                "lr": 0.001,
                "weight_decay": 0.00001,
                "betas": [0.9, 0.999],
                "eps": 1e-8,
            },
            "scheduler": {
                "restart_period": 10,
                "period_multiplier": 1,
                "min_lr": 1e-6,
            },
            "checkpoint": {
                "checkpoint_dir": "checkpoints",
                "filename": "best_capsnet_model.pth",
            },
            "logging": {
                "log_dir": "logs",
                "log_file": "train.log",
                "console_log_level": "INFO",
            },
            "reporting": {
                "output_dir": "reports",
                "metrics_plot": "training_metrics.png",
                "confusion_plot": "confusion_matrix.png",
                "roc_plot": "roc_curve.png",
                "history_file": "training_history.json",
                "dpi": 100,
            },
            "hardware": {
                "accelerator": "auto",
                "devices": "auto",
                "precision": "32",
                "deterministic": False,
                "seed": 42,
            },
        },
    }


def get_fast_dev_config() -> dict[str, Any]:
    """Get fast development configuration for quick testing.

    Returns:
        Fast development configuration dictionary
    """
    config = get_default_train_config()
    config["experiment_name"] = "fast_dev"
    config["train"]["epochs"] = 2
    config["train"]["early_stopping_patience"] = 1
    config["train"]["sampler"]["max_scans"] = 10
    config["train"]["data"]["batch_size"] = 4
    config["train"]["data"]["num_workers"] = 0
    config["train"]["hardware"]["accelerator"] = "cpu"
    config["train"]["hardware"]["devices"] = 1
    return config
