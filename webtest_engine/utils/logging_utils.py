"""Logger setup and per-run evidence persistence."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .file_ops import append_jsonl, safe_filename, write_text

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"


def configure_logger(level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure and return the ``webtest_engine`` package logger.

    Safe to call repeatedly; handlers are only attached once.
    """
    logger = logging.getLogger("webtest_engine")
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    logger.setLevel(numeric_level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(log_dir) / "webtest.log")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class RunArtifacts:
    """Creates a timestamped run folder and persists screenshots, step logs and the report."""

    def __init__(
        self,
        *,
        root: Path | str | None = None,
        prefix: str | None = None,
        base_dir: Path | str | None = None,
    ) -> None:
        if base_dir is not None:
            self.base_dir = Path(base_dir)
        else:
            run_root = Path(root) if root is not None else Path("test-output")
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
            self.base_dir = run_root / f"{prefix or 'run'}_{timestamp}"
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.screenshots_dir = self.base_dir / "screenshots"
        self.steps_file = self.base_dir / "steps.jsonl"
        self.report_file = self.base_dir / "report.json"

    def screenshot_path(self, name: str) -> Path:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        return self.screenshots_dir / safe_filename(name)

    def log_step(self, task_id: str, index: int, entry: Dict[str, Any]) -> None:
        """Append one executed step to steps.jsonl."""

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "task": task_id,
            "idx": index,
            **entry,
        }
        append_jsonl(self.steps_file, payload)

    def write_report(self, payload: Dict[str, Any]) -> Path:
        write_text(self.report_file, json.dumps(payload, ensure_ascii=False, indent=2, default=str))
        return self.report_file

    def to_dict(self) -> Dict[str, str]:
        return {
            "base_dir": str(self.base_dir),
            "screenshots_dir": str(self.screenshots_dir),
            "steps_file": str(self.steps_file),
            "report_file": str(self.report_file),
        }


__all__ = ["LOG_FORMAT", "RunArtifacts", "configure_logger"]
