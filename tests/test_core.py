import pytest

from nodeprovisioner.core import (
    NodeAffinity,
    NodeSelectorRequirement,
    Operator,
    Pod,
    Taint,
    TaintEffect,
    Toleration,
    TolerationOperator,
)


def test_requirement_values_become_tuple():
    requirement = NodeSelectorRequirement("k", Operator.IN, ["a", "b"])
    assert requirement.values == ("a", "b")


def test_requirements_are_hashable_and_equal():
    first = NodeSelectorRequirement("k", Operator.IN, ["a"])
    second = NodeSelectorRequirement("k", Operator.IN, ("a",))
    assert first == second
    assert len({first, second}) == 1


def test_taint_effect_enum_equals_plain_string():
    assert Taint("a", "b", TaintEffect.NO_SCHEDULE) == Taint("a", "b", "NoSchedule")


@pytest.mark.parametrize(
    "toleration, taint, expected",
    [
        (Toleration(key="a", value="b"), Taint("a", "b", TaintEffect.NO_SCHEDULE), True),
        (Toleration(key="a", value="x"), Taint("a", "b", TaintEffect.NO_SCHEDULE), False),
        (
            Toleration(key="a", operator=TolerationOperator.EQUAL, value="b"),
            Taint("a", "b", TaintEffect.NO_EXECUTE),
            True,
        ),
        (
            Toleration(key="a", operator=TolerationOperator.EXISTS),
            Taint("a", "anything", TaintEffect.NO_SCHEDULE),
            True,
        ),
        (
            Toleration(operator=TolerationOperator.EXISTS),
            Taint("other", "v", TaintEffect.NO_EXECUTE),
            True,
        ),
        (
            Toleration(key="a", value="b", effect=TaintEffect.NO_EXECUTE),
            Taint("a", "b", TaintEffect.NO_SCHEDULE),
            False,
        ),
        (Toleration(key="z", value="b"), Taint("a", "b", TaintEffect.NO_SCHEDULE), False),
        (Toleration(key="a", operator="Bogus", value="b"), Taint("a", "b"), False),
    ],
)
def test_tolerates_taint(toleration, taint, expected):
    assert toleration.tolerates_taint(taint) is expected


def test_pod_defaults_are_independent():
    first, second = Pod(), Pod()
    first.node_selector["k"] = "v"
    assert second.node_selector == {}
    assert first.affinity is None


def test_node_affinity_defaults():
    affinity = NodeAffinity()
    assert affinity.required is None
    assert affinity.preferred == []