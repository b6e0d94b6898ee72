"""Parsing of structured action inputs.

SECURITY: Spec files are size-checked before they are read, and YAML is
only ever parsed with safe_load.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .errors import InputError

logger = logging.getLogger(__name__)


def parse_json_input(field: str, raw: str) -> Any:
    """Parse a JSON-valued input.

    Args:
        field: Name of the input, used in the error message.
        raw: The raw input string.

    Raises:
        InputError: If ``raw`` is not valid JSON.
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON for {field}: {e.msg}: {raw}", field=field) from e


def load_spec_file(path: Path) -> dict[str, Any]:
    """Load a virtual service spec from a YAML or JSON file.

    Args:
        path: Path to the spec document.

    Returns:
        The parsed spec mapping.

    Raises:
        InputError: If the file is missing, too large, unparseable, or does
            not contain a mapping.
    """
    if not path.is_file():
        raise InputError(f"Spec file not found: {path}", field="spec-file")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise InputError(f"Cannot stat spec file {path}: {e}", field="spec-file") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise InputError(
            f"Spec file {path} is {file_size} bytes, "
            f"exceeding the limit of {MAX_SPEC_FILE_SIZE_BYTES} bytes",
            field="spec-file",
        )

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Cannot read spec file {path}: {e}", field="spec-file") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise InputError(f"Invalid YAML in spec file {path}: {e}", field="spec-file") from e

    if not isinstance(data, dict):
        raise InputError(
            f"Spec file {path} must contain a mapping, got {type(data).__name__}",
            field="spec-file",
        )

    logger.debug("Loaded spec file", extra={"path": str(path), "size_bytes": file_size})
    return data
