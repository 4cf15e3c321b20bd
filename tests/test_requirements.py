from nodeprovisioner.core import (
    LABEL_ARCH_STABLE,
    LABEL_FAILURE_DOMAIN_BETA_ZONE,
    LABEL_HOSTNAME,
    LABEL_INSTANCE_TYPE_STABLE,
    LABEL_TOPOLOGY_ZONE,
    Affinity,
    NodeAffinity,
    NodeSelectorRequirement,
    NodeSelectorTerm,
    Operator,
    Pod,
    PreferredSchedulingTerm,
)
from nodeprovisioner.requirements import (
    LABEL_CAPACITY_TYPE,
    Requirements,
    label_requirements,
    pod_requirements,
)


def req(key, op, *values):
    return NodeSelectorRequirement(key, op, values)


def test_unconstrained_key_is_none():
    assert Requirements().requirement("anything") is None
    assert Requirements().zones() is None


def test_in_requirements_intersect():
    reqs = Requirements(
        [req(LABEL_TOPOLOGY_ZONE, Operator.IN, "a", "b", "c"), req(LABEL_TOPOLOGY_ZONE, Operator.IN, "b", "c", "d")]
    )
    assert reqs.zones() == {"b", "c"}


def test_not_in_subtracts():
    reqs = Requirements(
        [req(LABEL_TOPOLOGY_ZONE, Operator.NOT_IN, "a"), req(LABEL_TOPOLOGY_ZONE, Operator.IN, "a", "b")]
    )
    assert reqs.requirement(LABEL_TOPOLOGY_ZONE) == {"b"}


def test_not_in_only_is_empty():
    reqs = Requirements([req(LABEL_TOPOLOGY_ZONE, Operator.NOT_IN, "a")])
    assert reqs.zones() == frozenset()


def test_accessors_read_their_labels():
    reqs = Requirements(
        [
            req(LABEL_INSTANCE_TYPE_STABLE, Operator.IN, "m5.large"),
            req(LABEL_ARCH_STABLE, Operator.IN, "arm64"),
            req(LABEL_CAPACITY_TYPE, Operator.IN, "spot"),
        ]
    )
    assert reqs.instance_types() == {"m5.large"}
    assert reqs.architectures() == {"arm64"}
    assert reqs.capacity_types() == {"spot"}
    assert reqs.operating_systems() is None


def test_add_normalizes_and_does_not_mutate():
    original = Requirements([req(LABEL_TOPOLOGY_ZONE, Operator.IN, "a")])
    added = original.add(req(LABEL_FAILURE_DOMAIN_BETA_ZONE, Operator.IN, "a", "b"))
    assert len(original) == 1
    assert len(added) == 2
    assert added[1].key == LABEL_TOPOLOGY_ZONE
    assert added.zones() == {"a"}


def test_normalize_arch_alias():
    reqs = Requirements([req("beta.kubernetes.io/arch", Operator.IN, "amd64")]).normalize()
    assert reqs.keys() == [LABEL_ARCH_STABLE]


def test_keys_unique_in_first_appearance_order():
    reqs = Requirements(
        [req("b", Operator.IN, "1"), req("a", Operator.IN, "2"), req("b", Operator.NOT_IN, "3")]
    )
    assert reqs.keys() == ["b", "a"]


def test_consolidate_one_in_per_key():
    reqs = Requirements(
        [
            req(LABEL_TOPOLOGY_ZONE, Operator.IN, "a", "b", "c"),
            req(LABEL_TOPOLOGY_ZONE, Operator.NOT_IN, "c"),
            req(LABEL_ARCH_STABLE, Operator.IN, "amd64"),
        ]
    )
    consolidated = reqs.consolidate()
    assert len(consolidated) == 2
    assert all(r.operator == Operator.IN for r in consolidated)
    assert consolidated.zones() == reqs.zones()
    assert consolidated.architectures() == reqs.architectures()


def test_consolidate_not_in_without_in_becomes_empty():
    consolidated = Requirements([req(LABEL_TOPOLOGY_ZONE, Operator.NOT_IN, "a")]).consolidate()
    assert consolidated.zones() == frozenset()


def test_well_known_filters_unknown_keys():
    reqs = Requirements([req("custom", Operator.IN, "x"), req(LABEL_HOSTNAME, Operator.IN, "h")])
    assert reqs.well_known().keys() == [LABEL_HOSTNAME]


def test_label_requirements():
    reqs = label_requirements({"a": "1", "b": "2"})
    assert reqs.requirement("a") == {"1"}
    assert reqs.requirement("b") == {"2"}
    assert all(r.operator == Operator.IN for r in reqs)


def test_pod_requirements_node_selector_only():
    pod = Pod(node_selector={LABEL_FAILURE_DOMAIN_BETA_ZONE: "z1"})
    assert pod_requirements(pod).zones() == {"z1"}


def test_pod_requirements_heaviest_preference_and_first_required_term():
    light = PreferredSchedulingTerm(1, NodeSelectorTerm([req(LABEL_ARCH_STABLE, Operator.IN, "arm64")]))
    heavy = PreferredSchedulingTerm(10, NodeSelectorTerm([req(LABEL_ARCH_STABLE, Operator.IN, "amd64")]))
    required = [
        NodeSelectorTerm([req(LABEL_TOPOLOGY_ZONE, Operator.IN, "z1")]),
        NodeSelectorTerm([req(LABEL_TOPOLOGY_ZONE, Operator.IN, "z2")]),
    ]
    pod = Pod(affinity=Affinity(NodeAffinity(required=required, preferred=[light, heavy])))
    reqs = pod_requirements(pod)
    assert reqs.architectures() == {"amd64"}
    assert reqs.zones() == {"z1"}
    assert pod.affinity.node_affinity.preferred == [light, heavy]


def test_pod_requirements_without_affinity_is_empty():
    assert len(pod_requirements(Pod())) == 0