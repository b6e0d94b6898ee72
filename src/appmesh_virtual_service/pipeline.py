"""GitHub Actions interface.

- Reads action inputs from the ``INPUT_*`` environment variables.
- Publishes results as step outputs.
- Reports failures with workflow commands.

The runner passes input ``mesh-name`` as ``INPUT_MESH-NAME``: spaces
become underscores, everything is upper-cased, hyphens are kept.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import IO, Any

from pydantic import ValidationError

from .errors import AmbiguousStateError, InputError
from .models import CanonicalParameters
from .spec_loader import load_spec_file, parse_json_input

logger = logging.getLogger(__name__)

# Input names as declared in action.yml
INPUT_ACTION = "action"
INPUT_MESH_NAME = "mesh-name"
INPUT_MESH_OWNER = "mesh-owner"
INPUT_NAME = "name"
INPUT_SPEC = "spec"
INPUT_SPEC_FILE = "spec-file"
INPUT_TAGS = "tags"

# Pydantic field -> action input, for error messages
FIELD_TO_INPUT = {
    "action": INPUT_ACTION,
    "meshName": INPUT_MESH_NAME,
    "meshOwner": INPUT_MESH_OWNER,
    "virtualServiceName": INPUT_NAME,
    "spec": INPUT_SPEC,
    "tags": INPUT_TAGS,
}


def escape_data(value: str) -> str:
    """Escape a workflow command payload."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


class GitHubActions:
    """Minimal runner interface: inputs, outputs and failure reporting."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        stdout: IO[str] | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            environ: Environment to read from. Defaults to os.environ.
            stdout: Stream for workflow commands. Defaults to sys.stdout.
        """
        self._environ = environ if environ is not None else os.environ
        self._stdout = stdout

    @property
    def stdout(self) -> IO[str]:
        return self._stdout or sys.stdout

    def get_input(self, name: str, *, required: bool = False) -> str:
        """Read an action input, trimmed of surrounding whitespace.

        Raises:
            InputError: If a required input is missing or empty.
        """
        key = f"INPUT_{name.replace(' ', '_').upper()}"
        value = self._environ.get(key, "").strip()
        if required and not value:
            raise InputError(f"Input required and not supplied: {name}", field=name)
        return value

    def set_output(self, name: str, value: Any) -> None:
        """Publish a step output.

        Non-string values are serialized as JSON.
        """
        text = value if isinstance(value, str) else json.dumps(value, default=str)

        output_file = self._environ.get("GITHUB_OUTPUT")
        if output_file:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            with Path(output_file).open("a", encoding="utf-8") as f:
                f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
            return

        self.stdout.write(f"::set-output name={escape_property(name)}::{escape_data(text)}\n")
        self.stdout.flush()

    def set_failed(self, message: str) -> None:
        """Mark the step as failed with an error annotation."""
        self.stdout.write(f"::error::{escape_data(message)}\n")
        self.stdout.flush()


def build_parameters(inputs: Mapping[str, Any]) -> CanonicalParameters:
    """Validate raw inputs (API field names) into canonical parameters.

    Raises:
        InputError: If validation fails. The message names the offending input.
    """
    try:
        return CanonicalParameters.model_validate(dict(inputs))
    except ValidationError as e:
        first = e.errors()[0]
        loc = str(first["loc"][0]) if first["loc"] else ""
        field = FIELD_TO_INPUT.get(loc, loc)
        raise InputError(f"Invalid input {field}: {first['msg']}", field=field) from e


def get_parameters(gh: GitHubActions) -> CanonicalParameters:
    """Read and validate all action inputs.

    Raises:
        InputError: If an input is missing or malformed. Raised before
            any remote call is made.
    """
    inputs: dict[str, Any] = {
        "action": gh.get_input(INPUT_ACTION) or "create",
        "meshOwner": gh.get_input(INPUT_MESH_OWNER),
        "meshName": gh.get_input(INPUT_MESH_NAME, required=True),
        "virtualServiceName": gh.get_input(INPUT_NAME, required=True),
    }

    # JSON parameters
    for key, input_name in (("spec", INPUT_SPEC), ("tags", INPUT_TAGS)):
        raw = gh.get_input(input_name)
        if raw:
            inputs[key] = parse_json_input(key, raw)

    spec_file = gh.get_input(INPUT_SPEC_FILE)
    if spec_file:
        if "spec" in inputs:
            raise InputError(
                f"Inputs {INPUT_SPEC} and {INPUT_SPEC_FILE} are mutually exclusive",
                field=INPUT_SPEC_FILE,
            )
        inputs["spec"] = load_spec_file(Path(spec_file))

    return build_parameters(inputs)


def extract_arn(response: Mapping[str, Any]) -> str:
    """Read the virtual service ARN from an API response.

    Raises:
        AmbiguousStateError: If the response carries no ARN.
    """
    virtual_service = response.get("virtualService") if isinstance(response, Mapping) else None
    metadata = virtual_service.get("metadata") if isinstance(virtual_service, Mapping) else None
    arn = metadata.get("arn") if isinstance(metadata, Mapping) else None
    if not arn:
        raise AmbiguousStateError("Unable to determine ARN")
    return str(arn)


def publish_result(gh: GitHubActions, response: Mapping[str, Any]) -> str:
    """Publish the final response and its ARN as step outputs.

    Returns:
        The published ARN.
    """
    arn = extract_arn(response)
    logger.info(f"ARN found, created, or deleted: {arn}")
    gh.set_output("response", response)
    gh.set_output("arn", arn)
    return arn
