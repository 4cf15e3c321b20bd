"""Taints applied to provisioned nodes and how pods tolerate them."""

from __future__ import annotations

from collections.abc import Iterable

from nodeprovisioner.core import Pod, Taint, TaintEffect, TolerationOperator


class NotToleratedError(ValueError):
    """Raised when a pod does not tolerate one or more taints."""

    def __init__(self, taints: Iterable[Taint]) -> None:
        self.taints = tuple(taints)
        super().__init__(
            "; ".join(f"did not tolerate {t.key}={t.value}:{str(t.effect)}" for t in self.taints)
        )


class Taints(tuple):
    """An immutable sequence of taints."""

    def __new__(cls, items: Iterable[Taint] = ()) -> "Taints":
        return super().__new__(cls, tuple(items))

    def __repr__(self) -> str:
        return f"Taints({list(self)!r})"

    def with_pod(self, pod: Pod) -> "Taints":
        """Add taints matching the pod's Equal tolerations, skipping ones already present."""
        result = list(self)
        for toleration in pod.tolerations:
            # Only Equal is supported; Exists has no sensible taint to generate.
            if toleration.operator != TolerationOperator.EQUAL:
                continue
            effects = (
                [toleration.effect]
                if toleration.effect
                else [TaintEffect.NO_SCHEDULE, TaintEffect.NO_EXECUTE]
            )
            for effect in effects:
                taint = Taint(toleration.key, toleration.value, effect)
                if not Taints(result).has(taint):
                    result.append(taint)
        return Taints(result)

    def has(self, taint: Taint) -> bool:
        """True if a taint with the same key and effect is present."""
        return any(t.key == taint.key and t.effect == taint.effect for t in self)

    def has_key(self, taint_key: str) -> bool:
        """True if a taint with this key is present."""
        return any(t.key == taint_key for t in self)

    def tolerates(self, pod: Pod) -> None:
        """Raise NotToleratedError listing every taint the pod does not tolerate."""
        untolerated = [
            taint
            for taint in self
            if not any(toleration.tolerates_taint(taint) for toleration in pod.tolerations)
        ]
        if untolerated:
            raise NotToleratedError(untolerated)