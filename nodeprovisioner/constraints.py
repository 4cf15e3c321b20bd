"""Constraints applied to every node a provisioner creates, plus kubelet settings and limits."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from nodeprovisioner import register
from nodeprovisioner.core import Pod
from nodeprovisioner.requirements import Requirements, pod_requirements
from nodeprovisioner.taints import Taints
from nodeprovisioner.validation import (
    FieldError,
    validate_labels,
    validate_requirements,
    validate_taints,
)


class LimitExceededError(ValueError):
    """Raised when resource usage reaches a configured limit."""

    def __init__(self, resource: str, usage: Any, limit: Any) -> None:
        self.resource = resource
        self.usage = usage
        self.limit = limit
        super().__init__(f"{resource} resource usage of {usage} exceeds limit of {limit}")


@dataclass
class KubeletConfiguration:
    """Arguments passed to the kubelet on provisioned nodes."""

    cluster_dns: list[str] = field(default_factory=list)


@dataclass
class Limits:
    """Bounds on the resources being provisioned; None means unlimited."""

    resources: dict[str, Any] | None = None

    def exceeded_by(self, resources: Mapping[str, Any]) -> None:
        """Raise LimitExceededError if any usage is at or above its limit."""
        if self.resources is None:
            return
        for name, usage in resources.items():
            limit = self.resources.get(name)
            if limit is not None and usage >= limit:
                raise LimitExceededError(name, usage, limit)


@dataclass
class Provider:
    """Opaque, cloud-provider-specific settings kept as raw serialized bytes."""

    raw: bytes = b""


def _values(values: Iterable[str] | None) -> list[str]:
    return sorted(values or ())


@dataclass
class Constraints:
    labels: dict[str, str] = field(default_factory=dict)
    taints: Taints = field(default_factory=Taints)
    requirements: Requirements = field(default_factory=Requirements)
    kubelet_configuration: KubeletConfiguration = field(default_factory=KubeletConfiguration)
    provider: Provider | None = None

    def __post_init__(self) -> None:
        self.taints = Taints(self.taints)
        self.requirements = Requirements(self.requirements)

    def validate_pod(self, pod: Pod) -> None:
        """Raise if the pod's tolerations or node requirements are not met by these constraints."""
        self.taints.tolerates(pod)
        requested = pod_requirements(pod)
        for key in requested.keys():
            if not self.requirements.requirement(key):
                raise ValueError(self._selector_message(key, requested))
        combined = self.requirements.add(*requested)
        for key in requested.keys():
            if not combined.requirement(key):
                raise ValueError(self._selector_message(key, requested))

    def _selector_message(self, key: str, requested: Requirements) -> str:
        return (
            f'invalid nodeSelector "{key}", {_values(requested.requirement(key))} '
            f"not in {_values(self.requirements.requirement(key))}"
        )

    def tighten(self, pod: Pod) -> "Constraints":
        """Constraints narrowed by the pod's requirements to well-known labels."""
        return Constraints(
            labels=self.labels,
            requirements=self.requirements.add(*pod_requirements(pod)).consolidate().well_known(),
            taints=self.taints,
            provider=self.provider,
            kubelet_configuration=self.kubelet_configuration,
        )

    def default(self) -> None:
        """Apply the installed defaulting hook."""
        register.HOOKS.run_default(self)

    def validate(self) -> None:
        """Raise FieldError describing every problem with these constraints."""
        try:
            hook_error = register.HOOKS.run_validate(self)
        except FieldError as error:
            hook_error = error
        errors = FieldError.combine(
            validate_labels(self.labels),
            validate_taints(self.taints),
            validate_requirements(self.requirements),
            hook_error,
        )
        if errors:
            raise errors