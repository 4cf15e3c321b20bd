# nodeprovisioner

This package holds the data model and validation rules for provisioners. A
provisioner describes which nodes a cluster autoscaler may launch for pods
that cannot be scheduled.

## What it contains

- **Scheduling primitives** (`nodeprovisioner.core`). These are
  `NodeSelectorRequirement`, `Operator`, `NodeAffinity`, `Affinity`, `Taint`,
  `TaintEffect`, `Toleration`, `TolerationOperator` and `Pod`.
  `Toleration.tolerates_taint` matches one toleration against one taint.
- **Requirements** (`nodeprovisioner.requirements`). `Requirements` is an
  immutable sequence of node selector requirements.
  - `requirement(key)` returns the allowed values for a label as a
    `frozenset`. It returns `None` when the label is unconstrained.
  - `add` appends requirements and normalizes them. `normalize` rewrites
    aliased label keys to their well-known equivalents.
  - `consolidate` collapses `In` and `NotIn` requirements into one `In`
    requirement per key. `well_known` keeps only well-known labels.
  - `keys` lists the unique keys, in order of first appearance.
  - Shortcuts: `zones`, `instance_types`, `architectures`,
    `operating_systems` and `capacity_types`.
  - `label_requirements(labels)` and `pod_requirements(pod)` build
    requirements from a label map or from a pod.
- **Taints** (`nodeprovisioner.taints`).
  - `Taints.with_pod` adds the taints that a pod's `Equal` tolerations
    allow.
  - `has` and `has_key` look up taints.
  - `tolerates(pod)` raises `NotToleratedError`, which lists every taint the
    pod does not tolerate.
- **Constraints** (`nodeprovisioner.constraints`).
  - `Constraints` holds labels, taints, requirements, a
    `KubeletConfiguration` and an opaque `Provider` blob.
  - `validate_pod(pod)` raises when a pod does not fit the constraints.
  - `tighten(pod)` narrows the constraints to a pod.
  - `validate()` raises `FieldError`. `default()` runs the installed
    defaulting hook.
  - `Limits.exceeded_by(resources)` raises `LimitExceededError` when a usage
    is at or above its limit.
- **Hooks** (`nodeprovisioner.register`). `HOOKS` is a `Hooks` instance.
  Setting its `default` and `validate` callables plugs provider-specific
  defaulting and validation into `Constraints`. The module also defines the
  group name and the well-known annotation, taint and finalizer keys.
- **Provisioners** (`nodeprovisioner.provisioner`).
  - The classes are `Provisioner`, `ProvisionerSpec`, `ProvisionerStatus`,
    `Condition` and `ProvisionerList`.
  - `Provisioner.validate()` raises `FieldError`. Its paths sit under
    `metadata` and `spec`.
  - `Provisioner.set_defaults()` applies the defaulting hook to the spec's
    constraints.
- **Validation** (`nodeprovisioner.validation`).
  - `FieldError` collects problems together with their field paths. Its
    methods and properties are `combine`, `also`, `via_field`, `paths` and
    `messages`.
  - Helpers check qualified names, label values, restricted label domains,
    labels, taints and requirements.
- **AWS provider settings** (`nodeprovisioner.aws_provider`).
  - `deserialize(constraints)` decodes the JSON provider blob into
    `AWSConstraints`. It rejects unknown and duplicate fields.
  - `AWS.serialize` writes the blob back.
  - `AWS.validate` checks the subnet and security-group selectors, the tags
    and the `MetadataOptions`.
  - `AWS.effective_metadata_options` falls back to the secure defaults.
  - `AWSConstraints.default` requires `amd64` and `on-demand` unless labels or
    requirements already say otherwise.
  - Importing this module adds `k8s.aws` to the restricted label domains.
- **Tags** (`nodeprovisioner.tags`). `merge_tags(provisioner_name, *maps)`
  builds `{"Key": ..., "Value": ...}` tags. Later maps win over the defaults.

## Example

```python
from nodeprovisioner.constraints import Constraints
from nodeprovisioner.core import NodeSelectorRequirement, Operator
from nodeprovisioner.provisioner import Provisioner, ProvisionerSpec
from nodeprovisioner.requirements import Requirements
from nodeprovisioner.validation import FieldError

constraints = Constraints(
    requirements=Requirements([
        NodeSelectorRequirement("topology.kubernetes.io/zone", Operator.IN, ["zone-a"]),
    ])
)
provisioner = Provisioner(name="default", spec=ProvisionerSpec(constraints=constraints))

try:
    provisioner.validate()
except FieldError as error:
    print(error.paths)
    print(error)
```

`validate()` returns nothing when the provisioner is valid. When it is not, it
raises one `FieldError` that describes every problem it found.

## What it does not do

The package models and checks provisioner specifications only. It has no
command-line program and runs no controller or webhook. It does not call
any cloud API, so it launches and terminates no instances. It stores nothing.

## Installing for development

```
pip install -e ".[test]"
pytest
```