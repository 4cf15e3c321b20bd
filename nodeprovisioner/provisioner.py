"""The Provisioner resource: its spec, status and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from nodeprovisioner.constraints import Constraints, Limits
from nodeprovisioner.register import API_VERSION
from nodeprovisioner.validation import FieldError, err_invalid_value

_MAX_NAME_LENGTH = 63


@dataclass
class Condition:
    """An observed condition; status is "True", "False" or "Unknown"."""

    type: str
    status: str = "Unknown"
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None


@dataclass
class ProvisionerStatus:
    last_scale_time: datetime | None = None
    conditions: list[Condition] = field(default_factory=list)
    resources: dict[str, Any] = field(default_factory=dict)


def _errors_of(validate) -> FieldError | None:
    try:
        validate()
    except FieldError as error:
        return error
    return None


@dataclass
class ProvisionerSpec:
    """Constraints plus node lifetime settings and capacity limits."""

    constraints: Constraints = field(default_factory=Constraints)
    ttl_seconds_after_empty: int | None = None
    ttl_seconds_until_expired: int | None = None
    limits: Limits = field(default_factory=Limits)

    def validate(self) -> None:
        """Raise FieldError describing every problem with the spec."""
        errors: list[FieldError | None] = []
        if (self.ttl_seconds_until_expired or 0) < 0:
            errors.append(err_invalid_value("cannot be negative", "ttlSecondsUntilExpired"))
        if (self.ttl_seconds_after_empty or 0) < 0:
            errors.append(err_invalid_value("cannot be negative", "ttlSecondsAfterEmpty"))
        errors.append(_errors_of(self.constraints.validate))
        combined = FieldError.combine(*errors)
        if combined:
            raise combined


def _metadata_errors(name: str) -> FieldError | None:
    errors = []
    if "." in name:
        errors.append(
            FieldError("Invalid resource name: special character . must not be present", "name")
        )
    if len(name) > _MAX_NAME_LENGTH:
        errors.append(
            FieldError(
                f"Invalid resource name: length must be no more than {_MAX_NAME_LENGTH} characters",
                "name",
            )
        )
    return FieldError.combine(*errors)


@dataclass
class Provisioner:
    """A cluster-scoped resource that launches nodes for unschedulable pods."""

    api_version: ClassVar[str] = API_VERSION
    kind: ClassVar[str] = "Provisioner"

    name: str = ""
    spec: ProvisionerSpec = field(default_factory=ProvisionerSpec)
    status: ProvisionerStatus = field(default_factory=ProvisionerStatus)

    def validate(self) -> None:
        """Raise FieldError with paths under ``metadata`` and ``spec``."""
        metadata = _metadata_errors(self.name)
        spec = _errors_of(self.spec.validate)
        errors = FieldError.combine(
            metadata.via_field("metadata") if metadata else None,
            spec.via_field("spec") if spec else None,
        )
        if errors:
            raise errors

    def set_defaults(self) -> None:
        self.spec.constraints.default()


@dataclass
class ProvisionerList:
    api_version: ClassVar[str] = API_VERSION
    kind: ClassVar[str] = "ProvisionerList"

    items: list[Provisioner] = field(default_factory=list)