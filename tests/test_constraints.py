import pytest

from nodeprovisioner import register
from nodeprovisioner.constraints import (
    Constraints,
    KubeletConfiguration,
    LimitExceededError,
    Limits,
    Provider,
)
from nodeprovisioner.core import (
    LABEL_TOPOLOGY_ZONE,
    NodeSelectorRequirement,
    Operator,
    Pod,
    Taint,
    TaintEffect,
    Toleration,
)
from nodeprovisioner.taints import NotToleratedError
from nodeprovisioner.validation import FieldError, err_generic


def _zone_constraints(*zones):
    return Constraints(requirements=[NodeSelectorRequirement(LABEL_TOPOLOGY_ZONE, Operator.IN, zones)])


def test_limits_exceeded_at_equality():
    limits = Limits({"cpu": 10})
    assert limits.exceeded_by({"cpu": 9, "memory": 1000}) is None
    with pytest.raises(LimitExceededError) as info:
        limits.exceeded_by({"cpu": 10})
    assert info.value.resource == "cpu"
    assert info.value.usage == 10 and info.value.limit == 10
    assert "cpu" in str(info.value)


def test_undefined_limits_never_exceeded():
    assert Limits().exceeded_by({"cpu": 10**9}) is None
    with pytest.raises(LimitExceededError):
        Limits({}).exceeded_by({}) or Limits({"pods": 1}).exceeded_by({"pods": 2})


def test_validate_pod_accepts_matching_zone():
    constraints = _zone_constraints("z1", "z2")
    pod = Pod(node_selector={LABEL_TOPOLOGY_ZONE: "z1"})
    assert constraints.validate_pod(pod) is None
    with pytest.raises(ValueError):
        constraints.validate_pod(Pod(node_selector={LABEL_TOPOLOGY_ZONE: "z3"}))


def test_validate_pod_rejects_unconstrained_key():
    with pytest.raises(ValueError) as info:
        _zone_constraints("z1").validate_pod(Pod(node_selector={"foo": "bar"}))
    assert "foo" in str(info.value)


def test_validate_pod_requires_toleration():
    constraints = Constraints(taints=[Taint("a", "b", TaintEffect.NO_SCHEDULE)])
    with pytest.raises(NotToleratedError):
        constraints.validate_pod(Pod())
    tolerant = Pod(tolerations=[Toleration("a", "Equal", "b", TaintEffect.NO_SCHEDULE)])
    assert constraints.validate_pod(tolerant) is None


def test_tighten_intersects_and_drops_unknown_labels():
    constraints = Constraints(
        labels={"team": "x"},
        requirements=[NodeSelectorRequirement(LABEL_TOPOLOGY_ZONE, Operator.IN, ["z1", "z2"])],
        provider=Provider(b"{}"),
        kubelet_configuration=KubeletConfiguration(["10.0.0.10"]),
    )
    pod = Pod(node_selector={LABEL_TOPOLOGY_ZONE: "z2", "foo": "bar"})
    tightened = constraints.tighten(pod)
    assert tightened.requirements.zones() == {"z2"}
    assert tightened.requirements.keys() == [LABEL_TOPOLOGY_ZONE]
    assert tightened.labels is constraints.labels
    assert tightened.provider is constraints.provider
    assert tightened.kubelet_configuration.cluster_dns == ["10.0.0.10"]
    assert constraints.requirements.zones() == {"z1", "z2"}


def test_default_runs_hook(monkeypatch):
    seen = []
    monkeypatch.setattr(register.HOOKS, "default", seen.append)
    constraints = Constraints()
    constraints.default()
    assert seen == [constraints]


def test_validate_collects_errors():
    constraints = Constraints(labels={"kubernetes.io/hostname": "x"}, taints=[Taint("???")])
    with pytest.raises(FieldError) as info:
        constraints.validate()
    assert "labels" in info.value.paths
    assert "taints[0]" in info.value.paths


def test_validate_includes_hook_error(monkeypatch):
    monkeypatch.setattr(register.HOOKS, "validate", lambda c: err_generic("hook says no"))
    with pytest.raises(FieldError) as info:
        Constraints().validate()
    assert "hook says no" in str(info.value)


def test_valid_constraints_pass():
    assert _zone_constraints("z1").validate() is None
    with pytest.raises(FieldError):
        Constraints(labels={"foo": "/ is not allowed"}).validate()