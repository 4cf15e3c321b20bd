"""API group names, well-known keys and the pluggable defaulting/validation hooks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

GROUP = "karpenter.sh"
EXTENSIONS_GROUP = "extensions." + GROUP
VERSION = "v1alpha5"
API_VERSION = f"{GROUP}/{VERSION}"

PROVISIONER_NAME_LABEL_KEY = GROUP + "/provisioner-name"
NOT_READY_TAINT_KEY = GROUP + "/not-ready"
DO_NOT_EVICT_POD_ANNOTATION_KEY = GROUP + "/do-not-evict"
EMPTINESS_TIMESTAMP_ANNOTATION_KEY = GROUP + "/emptiness-timestamp"
TERMINATION_FINALIZER = GROUP + "/termination"

# Condition implemented by all resources: the controller is able to take actions.
ACTIVE_CONDITION = "Active"


@dataclass
class Hooks:
    """Callbacks a cloud provider installs to default and validate constraints.

    A hook left as None leaves constraints untouched and reports no error.
    """

    default: Optional[Callable[[Any], None]] = None
    validate: Optional[Callable[[Any], Any]] = None

    def run_default(self, constraints: Any) -> None:
        """Apply the defaulting hook to ``constraints`` in place."""
        if self.default is not None:
            self.default(constraints)

    def run_validate(self, constraints: Any) -> Any:
        """Run the validation hook and return its error, or None."""
        if self.validate is None:
            return None
        return self.validate(constraints)


HOOKS = Hooks()