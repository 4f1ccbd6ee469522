"""
Atomic file writing for CLI reports.

The payload is written to a temporary file beside the target and renamed over
it, so a reader never observes a partially written report.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict

import structlog

logger = structlog.get_logger(__name__)


def _replace(temp_file_path: Path, target_path: Path) -> None:
    try:
        os.replace(str(temp_file_path), str(target_path))
        logger.debug("Atomic write completed", target=str(target_path), method="os.replace")
    except OSError as rename_error:
        logger.warning(
            "Atomic rename failed, falling back to shutil.move", error=str(rename_error), target=str(target_path)
        )
        try:
            shutil.move(str(temp_file_path), str(target_path))
        except (OSError, shutil.Error) as move_error:
            raise OSError(
                f"Failed to atomically write {target_path}: "
                f"rename failed ({rename_error}), move failed ({move_error})"
            ) from move_error


def atomic_write_text(target_path: Path | str, content: str, encoding: str = "utf-8") -> None:
    """
    Atomically write text content to a file.

    Raises:
        OSError: If both the rename and the fallback move fail
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_file_path = None

    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=target_path.parent,
            prefix=f".{target_path.name}.",
            suffix=".tmp",
            delete=False,
            encoding=encoding,
        ) as temp_file:
            temp_file_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        _replace(temp_file_path, target_path)
    finally:
        if temp_file_path is not None and temp_file_path.exists():
            try:
                temp_file_path.unlink()
            except OSError as cleanup_error:
                logger.warning(
                    "Failed to clean up temporary file", temp_file=str(temp_file_path), error=str(cleanup_error)
                )


def atomic_write_json(target_path: Path | str, data: Dict[str, Any] | list[Any]) -> None:
    """
    Atomically write JSON data to a file.

    Raises:
        ValueError: If data cannot be serialized to JSON
        OSError: If writing fails
    """
    try:
        json_content = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.error("Failed to serialize data to JSON", error=str(e))
        raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    atomic_write_text(target_path, json_content)
