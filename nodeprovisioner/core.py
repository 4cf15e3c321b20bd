"""Scheduling primitives: node selector requirements, affinities, taints, tolerations and pods."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

LABEL_TOPOLOGY_ZONE = "topology.kubernetes.io/zone"
LABEL_FAILURE_DOMAIN_BETA_ZONE = "failure-domain.beta.kubernetes.io/zone"
LABEL_INSTANCE_TYPE_STABLE = "node.kubernetes.io/instance-type"
LABEL_INSTANCE_TYPE = "beta.kubernetes.io/instance-type"
LABEL_ARCH_STABLE = "kubernetes.io/arch"
LABEL_OS_STABLE = "kubernetes.io/os"
LABEL_HOSTNAME = "kubernetes.io/hostname"


class Operator(str, Enum):
    """Node selector operator."""

    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"
    GT = "Gt"
    LT = "Lt"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NodeSelectorRequirement:
    """A constraint on the values of one node label."""

    key: str
    operator: str
    values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))


@dataclass
class NodeSelectorTerm:
    match_expressions: list[NodeSelectorRequirement] = field(default_factory=list)


@dataclass
class PreferredSchedulingTerm:
    weight: int
    preference: NodeSelectorTerm


@dataclass
class NodeAffinity:
    """Node affinity; ``required`` is None when no required selector is set."""

    required: list[NodeSelectorTerm] | None = None
    preferred: list[PreferredSchedulingTerm] = field(default_factory=list)


@dataclass
class Affinity:
    node_affinity: NodeAffinity | None = None


class TaintEffect(str, Enum):
    NO_SCHEDULE = "NoSchedule"
    PREFER_NO_SCHEDULE = "PreferNoSchedule"
    NO_EXECUTE = "NoExecute"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Taint:
    key: str = ""
    value: str = ""
    effect: str = ""


class TolerationOperator(str, Enum):
    EXISTS = "Exists"
    EQUAL = "Equal"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Toleration:
    """A pod toleration; an empty operator means Equal when matching taints."""

    key: str = ""
    operator: str = ""
    value: str = ""
    effect: str = ""

    def tolerates_taint(self, taint: Taint) -> bool:
        """Return True if this toleration matches ``taint``."""
        if self.effect and self.effect != taint.effect:
            return False
        if self.key and self.key != taint.key:
            return False
        if self.operator in ("", TolerationOperator.EQUAL):
            return self.value == taint.value
        return self.operator == TolerationOperator.EXISTS


@dataclass
class Pod:
    name: str = ""
    node_selector: dict[str, str] = field(default_factory=dict)
    affinity: Affinity | None = None
    tolerations: list[Toleration] = field(default_factory=list)