"""Per-epoch training history and its JSON/CSV export."""

from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path

HISTORY_KEYS = ("train_loss", "val_loss", "train_accuracy", "val_accuracy", "learning_rate")


@dataclass
class TrainingHistory:
    """Append-only record of epoch metrics.

    All lists grow together, one entry per completed epoch.
    """

    train_loss: list[float] = field(default_factory=list)
    val_loss: list[float] = field(default_factory=list)
    train_accuracy: list[float] = field(default_factory=list)
    val_accuracy: list[float] = field(default_factory=list)
    learning_rate: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.train_loss)

    def append(
        self,
        train_loss: float,
        val_loss: float,
        train_accuracy: float,
        val_accuracy: float,
        learning_rate: float,
    ) -> None:
        self.train_loss.append(float(train_loss))
        self.val_loss.append(float(val_loss))
        self.train_accuracy.append(float(train_accuracy))
        self.val_accuracy.append(float(val_accuracy))
        self.learning_rate.append(float(learning_rate))

    def to_dict(self) -> dict[str, list[float]]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, list[float]]) -> "TrainingHistory":
        return cls(**{key: [float(v) for v in data.get(key, [])] for key in HISTORY_KEYS})

    def export(self, json_path: str | Path) -> Path:
        """Write the history as JSON, plus a CSV with one row per epoch beside it.

        Returns:
            Path of the JSON file
        """
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        history = self.to_dict()
        json_path.write_text(json.dumps(history, indent=2), encoding="utf-8")

        csv_path = json_path.with_suffix(".csv")
        with csv_path.open("w", newline="", encoding="utf-8") as csv_file:
            writer = csv.writer(csv_file)
            writer.writerow(["epoch", *HISTORY_KEYS])
            for idx in range(len(self)):
                writer.writerow([idx + 1, *(history[key][idx] for key in HISTORY_KEYS)])

        return json_path
