"""Pydantic models for action parameters with validation.

These models provide:
1. Validation at the boundary (fail fast, fail loudly)
2. A single canonical parameter set that every API projection reads from
3. The immutable identity of the virtual service being reconciled
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# App Mesh resource name limits
MAX_MESH_NAME_LENGTH = 255
MAX_VIRTUAL_SERVICE_NAME_LENGTH = 255


class Action(str, Enum):
    """What the action should converge the virtual service to."""

    CREATE = "create"
    DELETE = "delete"


class RemoteState(str, Enum):
    """Logical state of the virtual service as observed through describe."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"
    MISSING = "MISSING"
    UNKNOWN = "UNKNOWN"

    @property
    def is_absent(self) -> bool:
        """True for the states that confirm the resource is gone."""
        return self in (RemoteState.MISSING, RemoteState.DELETED)

    @property
    def is_present(self) -> bool:
        """True for the states in which the resource exists."""
        return self in (RemoteState.ACTIVE, RemoteState.INACTIVE)


@dataclass(frozen=True)
class ResourceIdentity:
    """Address of a virtual service within a mesh."""

    mesh_name: str
    virtual_service_name: str
    mesh_owner: str | None = None

    def __str__(self) -> str:
        owner = f"{self.mesh_owner}/" if self.mesh_owner else ""
        return f"{owner}{self.mesh_name}/{self.virtual_service_name}"


class CanonicalParameters(BaseModel):
    """Everything the action was asked to do, in App Mesh field names.

    Empty strings are normalized to None so that no projection can ever
    forward an empty value to the API.
    """

    model_config = {"extra": "ignore", "populate_by_name": True, "frozen": True}

    action: Action = Action.CREATE
    mesh_name: str = Field(alias="meshName", min_length=1, max_length=MAX_MESH_NAME_LENGTH)
    mesh_owner: str | None = Field(None, alias="meshOwner")
    virtual_service_name: str = Field(
        alias="virtualServiceName", min_length=1, max_length=MAX_VIRTUAL_SERVICE_NAME_LENGTH
    )
    spec: dict[str, Any] | None = None
    tags: Any | None = None

    @field_validator("action", mode="before")
    @classmethod
    def default_action(cls, v: Any) -> Any:
        if v is None or v == "":
            return Action.CREATE
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("mesh_owner", mode="before")
    @classmethod
    def empty_owner_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("mesh_name", "virtual_service_name", mode="before")
    @classmethod
    def strip_names(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def identity(self) -> ResourceIdentity:
        """The immutable identity addressed by these parameters."""
        return ResourceIdentity(
            mesh_name=self.mesh_name,
            virtual_service_name=self.virtual_service_name,
            mesh_owner=self.mesh_owner,
        )
