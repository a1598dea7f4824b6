from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Protocol

from .outcomes import AttemptOutcome

HEADER = ("Timestamp", "Trial", "PointIndex", "Price", "Success", "FailedAttempts", "TimeTaken")


class OutcomeLog(Protocol):
    def log(self, outcome: AttemptOutcome) -> None: ...
    def close(self) -> None: ...


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def default_log_path(directory: Path, experiment: str) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return directory / f"{experiment}_{stamp}.csv"


class CsvTrialLog:
    """Appends one timestamped row per outcome; the header goes into empty files only."""

    def __init__(self, path: Path) -> None:
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        fresh = not path.exists() or path.stat().st_size == 0
        self._fh = path.open("a", newline="", encoding="utf-8")
        self._writer = csv.writer(self._fh)
        if fresh:
            self._writer.writerow(HEADER)
            self._fh.flush()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._fh.closed

    def log(self, outcome: AttemptOutcome) -> None:
        self._writer.writerow(
            (
                _timestamp(),
                int(outcome.trial_index),
                int(outcome.target_index),
                f"{outcome.value:.2f}",
                "true" if outcome.success else "false",
                int(outcome.failed_attempts),
                int(outcome.elapsed_ms),
            )
        )
        self._fh.flush()

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()

    def __enter__(self) -> "CsvTrialLog":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class MemoryTrialLog:
    """OutcomeLog that keeps rows in memory (headless runs, tests)."""

    def __init__(self) -> None:
        self.rows: list[AttemptOutcome] = []
        self.closed = False

    def log(self, outcome: AttemptOutcome) -> None:
        self.rows.append(outcome)

    def close(self) -> None:
        self.closed = True
