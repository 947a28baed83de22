"""
Module: config

Purpose:
    Configuration dataclass for the exam core. Immutable configuration
    with validation on construction, loadable from a JSON file.

Key Classes:
    - ExamConfig: Defaults shared by the controller and its engines

Key Functions:
    - load_config(): Read ExamConfig from JSON, falling back to defaults

Dependencies:
    - dataclasses (std)
    - json (std)

Used By:
    - controller.ExamController
    - cli: --config option
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from qbank_toolkit.access import DEFAULT_CODE_BYTES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExamConfig:
    """
    Exam core configuration (immutable).

    Attributes:
        default_time_limit: Session duration when a bare paper id is used
        grade_on_expiry: Auto-submit (grade) an overdue session when its
            expiry is detected; otherwise it is parked as EXPIRED
        access_code_bytes: Entropy of issued access codes
        store_path: Root directory of the JSON file store, if used

    Example:
        >>> config = ExamConfig(default_time_limit=timedelta(minutes=90))
        >>> config.grade_on_expiry
        True
    """

    default_time_limit: timedelta = timedelta(minutes=60)
    grade_on_expiry: bool = True
    access_code_bytes: int = DEFAULT_CODE_BYTES
    store_path: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.default_time_limit <= timedelta(0):
            raise ValueError(f"default_time_limit must be positive: {self.default_time_limit}")
        if self.access_code_bytes < 4:
            raise ValueError(f"access_code_bytes must be at least 4: {self.access_code_bytes}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_time_limit_minutes": self.default_time_limit.total_seconds() / 60,
            "grade_on_expiry": self.grade_on_expiry,
            "access_code_bytes": self.access_code_bytes,
            "store_path": str(self.store_path) if self.store_path else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExamConfig:
        known = {"default_time_limit_minutes", "grade_on_expiry", "access_code_bytes", "store_path"}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {unknown}")

        kwargs: Dict[str, Any] = {}
        if "default_time_limit_minutes" in data:
            kwargs["default_time_limit"] = timedelta(minutes=float(data["default_time_limit_minutes"]))
        if "grade_on_expiry" in data:
            kwargs["grade_on_expiry"] = bool(data["grade_on_expiry"])
        if "access_code_bytes" in data:
            kwargs["access_code_bytes"] = int(data["access_code_bytes"])
        if data.get("store_path"):
            kwargs["store_path"] = Path(data["store_path"])
        return cls(**kwargs)


def load_config(path: Optional[Path]) -> ExamConfig:
    """
    Load configuration from a JSON file.

    Any problem (missing file, invalid JSON, bad values) results in
    the defaults, with a warning logged.

    Args:
        path: JSON config file, or None for defaults

    Returns:
        ExamConfig
    """
    if path is None:
        return ExamConfig()

    if not path.exists():
        logger.warning(f"Config file not found, using defaults: {path}")
        return ExamConfig()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("config root must be an object")
        config = ExamConfig.from_dict(data)
    except (json.JSONDecodeError, ValueError, TypeError) as e:
        logger.warning(f"Invalid config {path.name}, using defaults: {e}")
        return ExamConfig()

    logger.debug(f"Loaded config from {path}")
    return config
