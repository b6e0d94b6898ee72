"""Projection of canonical parameters onto each App Mesh request shape.

Describe, create and delete each accept a different subset of the
canonical parameters. Every projection drops undefined and empty values
after merging, so the API never receives null or empty-string fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import CanonicalParameters

IDENTITY_FIELDS = ("virtualServiceName", "meshName", "meshOwner")


def omit_empty(values: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``values`` without None or empty-string entries."""
    return {key: value for key, value in values.items() if value is not None and value != ""}


def _as_mapping(parameters: CanonicalParameters | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(parameters, CanonicalParameters):
        return parameters.model_dump(by_alias=True, mode="json")
    return parameters


def describe_input(parameters: CanonicalParameters | Mapping[str, Any]) -> dict[str, Any]:
    """Parameters for DescribeVirtualService."""
    source = _as_mapping(parameters)
    return omit_empty({key: source.get(key) for key in IDENTITY_FIELDS})


def create_input(parameters: CanonicalParameters | Mapping[str, Any]) -> dict[str, Any]:
    """Parameters for CreateVirtualService."""
    source = _as_mapping(parameters)
    return omit_empty({**describe_input(source), "spec": source.get("spec")})


def delete_input(parameters: CanonicalParameters | Mapping[str, Any]) -> dict[str, Any]:
    """Parameters for DeleteVirtualService."""
    return omit_empty({**describe_input(parameters)})
