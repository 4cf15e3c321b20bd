"""Node selector requirements and the label sets that govern them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from nodeprovisioner.core import (
    LABEL_ARCH_STABLE,
    LABEL_FAILURE_DOMAIN_BETA_ZONE,
    LABEL_HOSTNAME,
    LABEL_INSTANCE_TYPE,
    LABEL_INSTANCE_TYPE_STABLE,
    LABEL_OS_STABLE,
    LABEL_TOPOLOGY_ZONE,
    NodeSelectorRequirement,
    Operator,
    Pod,
)
from nodeprovisioner.register import EMPTINESS_TIMESTAMP_ANNOTATION_KEY

ARCHITECTURE_AMD64 = "amd64"
ARCHITECTURE_ARM64 = "arm64"
OPERATING_SYSTEM_LINUX = "linux"

# Labels injected by cloud providers; users may not set them.
RESTRICTED_LABELS: set[str] = {EMPTINESS_TIMESTAMP_ANNOTATION_KEY, LABEL_HOSTNAME}

# Domains that would otherwise be restricted; evaluated before RESTRICTED_LABEL_DOMAINS.
ALLOWED_LABEL_DOMAINS: set[str] = {"kops.k8s.io"}

KARPENTER_LABEL_DOMAIN = "karpenter.sh"
# Domains prohibited by the kubelet or reserved; cloud providers may extend this set.
RESTRICTED_LABEL_DOMAINS: set[str] = {"kubernetes.io", "k8s.io", KARPENTER_LABEL_DOMAIN}

LABEL_CAPACITY_TYPE = KARPENTER_LABEL_DOMAIN + "/capacity-type"

WELL_KNOWN_LABELS: set[str] = {
    LABEL_TOPOLOGY_ZONE,
    LABEL_INSTANCE_TYPE_STABLE,
    LABEL_ARCH_STABLE,
    LABEL_OS_STABLE,
    LABEL_CAPACITY_TYPE,
    LABEL_HOSTNAME,
}

# Aliased label keys translated into WELL_KNOWN_LABELS; cloud providers may extend this.
NORMALIZED_LABELS: dict[str, str] = {
    LABEL_FAILURE_DOMAIN_BETA_ZONE: LABEL_TOPOLOGY_ZONE,
    "beta.kubernetes.io/arch": LABEL_ARCH_STABLE,
    "beta.kubernetes.io/os": LABEL_OS_STABLE,
    LABEL_INSTANCE_TYPE: LABEL_INSTANCE_TYPE_STABLE,
}


class Requirements(tuple):
    """An immutable sequence of node selector requirements."""

    def __new__(cls, items: Iterable[NodeSelectorRequirement] = ()) -> "Requirements":
        return super().__new__(cls, tuple(items))

    def __repr__(self) -> str:
        return f"Requirements({list(self)!r})"

    def zones(self) -> frozenset[str] | None:
        return self.requirement(LABEL_TOPOLOGY_ZONE)

    def instance_types(self) -> frozenset[str] | None:
        return self.requirement(LABEL_INSTANCE_TYPE_STABLE)

    def architectures(self) -> frozenset[str] | None:
        return self.requirement(LABEL_ARCH_STABLE)

    def operating_systems(self) -> frozenset[str] | None:
        return self.requirement(LABEL_OS_STABLE)

    def capacity_types(self) -> frozenset[str] | None:
        return self.requirement(LABEL_CAPACITY_TYPE)

    def add(self, *requirements: NodeSelectorRequirement) -> "Requirements":
        """Return these requirements followed by ``requirements``, normalized."""
        return Requirements((*self, *Requirements(requirements).normalize()))

    def normalize(self) -> "Requirements":
        """Rewrite aliased keys to their well-known equivalents."""
        return Requirements(
            NodeSelectorRequirement(
                NORMALIZED_LABELS.get(requirement.key, requirement.key),
                requirement.operator,
                requirement.values,
            )
            for requirement in self
        )

    def consolidate(self) -> "Requirements":
        """Collapse In and NotIn requirements into a single In requirement per key.

        A key with NotIn but no In requirement consolidates to an empty In.
        """
        consolidated = Requirements()
        for key in self.keys():
            values = sorted(self.requirement(key) or ())
            consolidated = consolidated.add(NodeSelectorRequirement(key, Operator.IN, values))
        return consolidated

    def well_known(self) -> "Requirements":
        """Keep only requirements whose keys are well-known labels."""
        return Requirements().add(*(r for r in self if r.key in WELL_KNOWN_LABELS))

    def keys(self) -> list[str]:
        """Unique keys in order of first appearance."""
        return list(dict.fromkeys(requirement.key for requirement in self))

    def requirement(self, key: str) -> frozenset[str] | None:
        """Allowed values for ``key``; None when the key is unconstrained."""
        result: frozenset[str] | None = None
        for requirement in self:
            if requirement.key == key and requirement.operator == Operator.IN:
                values = frozenset(requirement.values)
                result = values if result is None else result & values
        for requirement in self:
            if requirement.key == key and requirement.operator == Operator.NOT_IN:
                result = (result or frozenset()) - frozenset(requirement.values)
        return result


def label_requirements(labels: Mapping[str, str]) -> Requirements:
    """An In requirement for each label."""
    return Requirements().add(
        *(NodeSelectorRequirement(key, Operator.IN, (value,)) for key, value in labels.items())
    )


def pod_requirements(pod: Pod) -> Requirements:
    """Requirements from a pod's node selector, heaviest preference and first required term."""
    requirements = label_requirements(pod.node_selector)
    if pod.affinity is None or pod.affinity.node_affinity is None:
        return requirements
    node_affinity = pod.affinity.node_affinity
    if node_affinity.preferred:
        heaviest = max(node_affinity.preferred, key=lambda term: term.weight)
        requirements = requirements.add(*heaviest.preference.match_expressions)
    if node_affinity.required:
        requirements = requirements.add(*node_affinity.required[0].match_expressions)
    return requirements