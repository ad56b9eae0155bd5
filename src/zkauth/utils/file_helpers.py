"""File utilities shared by the config file and the account store.

Both files hold secrets (the session signing secret, user salts), so every
write goes through atomic_write_json: owner-only permissions, temp file in
the same directory, fsync, rename.
"""

from __future__ import annotations

__all__ = [
    "atomic_write_json",
    "get_app_dir",
    "load_validated_json",
    "set_secure_permissions",
]

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel, ValidationError

from zkauth.constants import APP_NAME

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_app_dir() -> Path:
    """Per-user zkauth directory (e.g. ~/.config/zkauth on Linux)."""
    return Path(click.get_app_dir(APP_NAME))


def set_secure_permissions(path: Path, *, is_directory: bool = False) -> None:
    """chmod 0700 (directory) or 0600 (file). No-op on Windows or on failure."""
    if sys.platform == "win32":
        return
    try:
        path.chmod(0o700 if is_directory else 0o600)
    except OSError:
        pass


def _describe_validation_error(error: ValidationError) -> str:
    return "\n".join(
        f"  - {'.'.join(str(part) for part in item['loc']) or '(root)'}: {item['msg']}"
        for item in error.errors()
    )


def load_validated_json(
    file_path: Path,
    model_class: type[ModelT],
    file_type: str = "file",
    recovery_hint: str | None = None,
) -> ModelT:
    """Read file_path and validate it as model_class.

    Args:
        file_path: JSON file to read.
        model_class: Pydantic model the document must satisfy.
        file_type: Noun used in error messages ("config", "account store").
        recovery_hint: Appended to every error message when given.

    Raises:
        FileNotFoundError: The file does not exist.
        ValueError: The file is unreadable, not JSON, or fails validation.
    """
    hint = f"\n{recovery_hint}" if recovery_hint else ""

    try:
        raw = file_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise FileNotFoundError(f"{file_type.capitalize()} file not found at {file_path}.{hint}") from e
    except OSError as e:
        raise ValueError(f"Could not read {file_type} file {file_path}: {e}{hint}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {file_path}: {e}{hint}") from e

    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        raise ValueError(
            f"Invalid {file_type} in {file_path}:\n{_describe_validation_error(e)}{hint}"
        ) from e


def atomic_write_json(path: Path, data: Any) -> None:
    """Replace path with the JSON rendering of data, never leaving it partial.

    Raises:
        OSError: Directory creation, write, or rename failed. The target is
            untouched in that case and the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    set_secure_permissions(path.parent, is_directory=True)

    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        set_secure_permissions(temp_path)
        temp_path.replace(path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
