"""Main training script."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from ..config import Config, get_default_train_config
from ..data import query_lidc_scans
from ..utils import setup_logger
from .pipeline import train_capsnet


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train the capsule-network nodule classifier on LIDC-IDRI")
    parser.add_argument("--config", type=str, default=None, help="YAML config file (defaults built in)")
    parser.add_argument("--max-scans", type=int, default=None, help="Limit on distinct scans to sample")
    parser.add_argument("--epochs", type=int, default=None, help="Maximum number of epochs")
    parser.add_argument("--output-dir", type=str, default=None, help="Base directory for all artifacts")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Console/file log level",
    )
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Build the run configuration from defaults, an optional file and CLI overrides."""
    config = Config.from_dict(get_default_train_config())
    if args.config:
        config = config.merge_from_file(args.config)

    overrides: dict = {"train": {}}
    if args.max_scans is not None:
        overrides["train"]["sampler"] = {"max_scans": args.max_scans}
    if args.epochs is not None:
        overrides["train"]["epochs"] = args.epochs
    if args.log_level is not None:
        overrides["train"]["logging"] = {"console_log_level": args.log_level}
    if args.output_dir is not None:
        overrides["output_dir"] = args.output_dir
    return config.merge_from_dict(overrides)


def main(argv: Sequence[str] | None = None) -> None:
    """Main training entry point."""
    args = build_parser().parse_args(argv)
    config = load_config(args)
    train_config = config.train

    output_dir = Path(config.output_dir) / config.experiment_name
    log_cfg = train_config.logging
    log_file = output_dir / log_cfg.log_dir / log_cfg.log_file if log_cfg.log_file else None
    logger = setup_logger("lung_capsnet", log_file=log_file, level=log_cfg.console_log_level)

    logger.info("Starting experiment '%s' in %s", config.experiment_name, output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    config.save(output_dir / "config.yaml")

    scans = query_lidc_scans(limit=train_config.sampler.max_scans)
    result = train_capsnet(train_config, scans, output_dir=output_dir)

    logger.info(
        "Finished: best val loss %.4f at epoch %s, champion saved to %s",
        result.best_val_loss,
        result.best_epoch,
        result.checkpoint_path,
    )
    logging.shutdown()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
