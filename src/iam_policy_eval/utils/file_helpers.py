"""File helpers shared by the policy, context and config loaders."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from iam_policy_eval.constants import CONFIG_DIR

__all__ = [
    "format_validation_errors",
    "get_app_dir",
    "load_json_file",
    "load_validated_json",
    "require_file_exists",
]

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_app_dir() -> Path:
    """Get the OS-appropriate config directory.

    - macOS: ~/Library/Application Support/iam-policy-eval
    - Linux: ~/.config/iam-policy-eval (XDG compliant)

    Returns:
        Path to the config directory.
    """
    return Path(CONFIG_DIR)


def require_file_exists(path: Path, *, file_type: str) -> None:
    """Raise FileNotFoundError with a readable message if path is missing."""
    if not path.is_file():
        raise FileNotFoundError(f"{file_type.capitalize()} file not found at {path}")


def load_json_file(path: Path, *, file_type: str, encoding: str = "utf-8") -> Any:
    """Read and decode a JSON file.

    Args:
        path: File to read.
        file_type: Human-readable file kind for error messages.
        encoding: File encoding.

    Returns:
        The decoded JSON value.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be read or is not valid JSON.
    """
    require_file_exists(path, file_type=file_type)
    try:
        with path.open(encoding=encoding) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_type} file {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ValueError(f"Could not read {file_type} file {path}: {e}") from e


def format_validation_errors(error: ValidationError) -> str:
    """Render pydantic errors as one "  - loc: msg" line each."""
    lines = []
    for detail in error.errors():
        loc = ".".join(str(x) for x in detail["loc"])
        lines.append(f"  - {loc}: {detail['msg']}")
    return "\n".join(lines)


def load_validated_json(
    path: Path,
    model: type[ModelT],
    *,
    file_type: str,
    recovery_hint: str | None = None,
    encoding: str = "utf-8",
) -> ModelT:
    """Load a JSON file and validate it against a pydantic model.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is unreadable, not JSON, or fails validation.
    """
    data = load_json_file(path, file_type=file_type, encoding=encoding)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        message = f"Invalid {file_type} in {path}:\n{format_validation_errors(e)}"
        if recovery_hint:
            message += f"\n\n{recovery_hint}"
        raise ValueError(message) from e
