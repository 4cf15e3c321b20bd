"""Provider-specific settings for AWS: parsing, serialization, defaults and validation."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nodeprovisioner import requirements as _labels
from nodeprovisioner.constraints import Constraints
from nodeprovisioner.core import LABEL_ARCH_STABLE, NodeSelectorRequirement, Operator
from nodeprovisioner.register import EXTENSIONS_GROUP
from nodeprovisioner.requirements import ARCHITECTURE_AMD64, ARCHITECTURE_ARM64, LABEL_CAPACITY_TYPE
from nodeprovisioner.validation import (
    FieldError,
    err_invalid_value,
    err_missing_field,
    err_out_of_bounds_value,
)

API_VERSION = f"{EXTENSIONS_GROUP}/v1alpha1"
KIND = "AWS"

CAPACITY_TYPE_SPOT = "spot"
CAPACITY_TYPE_ON_DEMAND = "on-demand"

AWS_TO_KUBE_ARCHITECTURES: dict[str, str] = {
    "x86_64": ARCHITECTURE_AMD64,
    ARCHITECTURE_ARM64: ARCHITECTURE_ARM64,
}
AWS_RESTRICTED_LABEL_DOMAINS: tuple[str, ...] = ("k8s.aws",)

_labels.RESTRICTED_LABEL_DOMAINS.update(AWS_RESTRICTED_LABEL_DOMAINS)

METADATA_ENDPOINT_STATES = ("disabled", "enabled")
METADATA_PROTOCOL_IPV6_STATES = ("disabled", "enabled")
HTTP_TOKENS_STATES = ("optional", "required")

DEFAULT_METADATA_OPTIONS_HTTP_ENDPOINT = "enabled"
DEFAULT_METADATA_OPTIONS_HTTP_PROTOCOL_IPV6 = "disabled"
DEFAULT_METADATA_OPTIONS_HTTP_PUT_RESPONSE_HOP_LIMIT = 2
DEFAULT_METADATA_OPTIONS_HTTP_TOKENS = "required"

_MISSING_PROVIDER = "invariant violated: spec.provider is not defined. Is the defaulting webhook installed?"


def _reject_duplicates(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ValueError(f'duplicate field "{key}"')
        result[key] = value
    return result


def _check_fields(doc: Mapping[str, Any], allowed: set[str], where: str) -> None:
    for key in doc:
        if key not in allowed:
            raise ValueError(f'unknown field "{key}" in {where}')


def _string(doc: Mapping[str, Any], name: str) -> str | None:
    value = doc.get(name)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{name}: expected a string, got {value!r}")
    return value


def _integer(doc: Mapping[str, Any], name: str) -> int | None:
    value = doc.get(name)
    if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"{name}: expected an integer, got {value!r}")
    return value


def _string_map(doc: Mapping[str, Any], name: str) -> dict[str, str] | None:
    value = doc.get(name)
    if value is None:
        return None
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise ValueError(f"{name}: expected a map of strings, got {value!r}")
    return dict(value)


def _enum_error(value: str, field_name: str, valid: tuple[str, ...]) -> FieldError | None:
    if value in valid:
        return None
    return err_invalid_value(f"valid values: {', '.join(valid)}", field_name)


def _selector_errors(selector: Mapping[str, str] | None, name: str) -> list[FieldError]:
    errors = []
    if selector is None:
        errors.append(err_missing_field(name))
    for key, value in (selector or {}).items():
        if key == "" or value == "":
            errors.append(err_invalid_value('""', f"{name}['{key}']"))
    return errors


@dataclass
class MetadataOptions:
    """Exposure of the instance metadata service to provisioned nodes."""

    http_endpoint: str | None = None
    http_protocol_ipv6: str | None = None
    http_put_response_hop_limit: int | None = None
    http_tokens: str | None = None

    _FIELDS = {"httpEndpoint", "httpProtocolIPv6", "httpPutResponseHopLimit", "httpTokens"}

    @classmethod
    def _from_json(cls, doc: Any) -> "MetadataOptions":
        if not isinstance(doc, dict):
            raise ValueError(f"metadataOptions: expected an object, got {doc!r}")
        _check_fields(doc, cls._FIELDS, "metadataOptions")
        return cls(
            http_endpoint=_string(doc, "httpEndpoint"),
            http_protocol_ipv6=_string(doc, "httpProtocolIPv6"),
            http_put_response_hop_limit=_integer(doc, "httpPutResponseHopLimit"),
            http_tokens=_string(doc, "httpTokens"),
        )

    def _to_json(self) -> dict[str, Any]:
        doc: dict[str, Any] = {}
        if self.http_endpoint is not None:
            doc["httpEndpoint"] = self.http_endpoint
        if self.http_protocol_ipv6 is not None:
            doc["httpProtocolIPv6"] = self.http_protocol_ipv6
        if self.http_put_response_hop_limit is not None:
            doc["httpPutResponseHopLimit"] = self.http_put_response_hop_limit
        if self.http_tokens is not None:
            doc["httpTokens"] = self.http_tokens
        return doc

    def _field_errors(self) -> FieldError | None:
        errors: list[FieldError | None] = []
        if self.http_endpoint is not None:
            errors.append(_enum_error(self.http_endpoint, "httpEndpoint", METADATA_ENDPOINT_STATES))
        if self.http_protocol_ipv6 is not None:
            errors.append(
                _enum_error(
                    self.http_protocol_ipv6, "httpProtocolIPv6", METADATA_PROTOCOL_IPV6_STATES
                )
            )
        limit = self.http_put_response_hop_limit
        if limit is not None and not 1 <= limit <= 64:
            errors.append(err_out_of_bounds_value(limit, 1, 64, "httpPutResponseHopLimit"))
        if self.http_tokens is not None:
            errors.append(_enum_error(self.http_tokens, "httpTokens", HTTP_TOKENS_STATES))
        combined = FieldError.combine(*errors)
        return combined.via_field("metadataOptions") if combined else None


@dataclass
class AWS:
    """Parameters specific to the AWS cloud provider."""

    api_version: str = ""
    kind: str = ""
    instance_profile: str = ""
    launch_template: str | None = None
    subnet_selector: dict[str, str] | None = None
    security_group_selector: dict[str, str] | None = None
    tags: dict[str, str] | None = None
    metadata_options: MetadataOptions | None = None

    _FIELDS = {
        "apiVersion",
        "kind",
        "instanceProfile",
        "launchTemplate",
        "subnetSelector",
        "securityGroupSelector",
        "tags",
        "metadataOptions",
    }

    @classmethod
    def _from_json(cls, doc: Any) -> "AWS":
        if not isinstance(doc, dict):
            raise ValueError(f"provider: expected an object, got {doc!r}")
        _check_fields(doc, cls._FIELDS, "provider")
        api_version = _string(doc, "apiVersion") or API_VERSION
        kind = _string(doc, "kind") or KIND
        if (api_version, kind) != (API_VERSION, KIND):
            raise ValueError(f'no kind "{kind}" is registered for version "{api_version}"')
        options = doc.get("metadataOptions")
        return cls(
            api_version=api_version,
            kind=kind,
            instance_profile=_string(doc, "instanceProfile") or "",
            launch_template=_string(doc, "launchTemplate"),
            subnet_selector=_string_map(doc, "subnetSelector"),
            security_group_selector=_string_map(doc, "securityGroupSelector"),
            tags=_string_map(doc, "tags"),
            metadata_options=None if options is None else MetadataOptions._from_json(options),
        )

    def _to_json(self) -> dict[str, Any]:
        doc: dict[str, Any] = {}
        if self.kind:
            doc["kind"] = self.kind
        if self.api_version:
            doc["apiVersion"] = self.api_version
        doc["instanceProfile"] = self.instance_profile
        if self.launch_template is not None:
            doc["launchTemplate"] = self.launch_template
        for name, mapping in (
            ("subnetSelector", self.subnet_selector),
            ("securityGroupSelector", self.security_group_selector),
            ("tags", self.tags),
        ):
            if mapping:
                doc[name] = dict(sorted(mapping.items()))
        if self.metadata_options is not None:
            doc["metadataOptions"] = self.metadata_options._to_json()
        return doc

    def serialize(self, constraints: Constraints) -> None:
        """Store these settings as the raw provider bytes of ``constraints``."""
        if constraints.provider is None:
            raise ValueError(_MISSING_PROVIDER)
        constraints.provider.raw = json.dumps(
            self._to_json(), separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")

    def effective_metadata_options(self) -> MetadataOptions:
        """The configured metadata options, or the secure defaults when none are set."""
        if self.metadata_options is None:
            return MetadataOptions(
                http_endpoint=DEFAULT_METADATA_OPTIONS_HTTP_ENDPOINT,
                http_protocol_ipv6=DEFAULT_METADATA_OPTIONS_HTTP_PROTOCOL_IPV6,
                http_put_response_hop_limit=DEFAULT_METADATA_OPTIONS_HTTP_PUT_RESPONSE_HOP_LIMIT,
                http_tokens=DEFAULT_METADATA_OPTIONS_HTTP_TOKENS,
            )
        return self.metadata_options

    def _field_errors(self) -> FieldError | None:
        errors: list[FieldError | None] = []
        errors.extend(_selector_errors(self.subnet_selector, "subnetSelector"))
        errors.extend(_selector_errors(self.security_group_selector, "securityGroupSelector"))
        # No count check on tags: the hard limit is shared with tags added by the controller.
        for key, value in (self.tags or {}).items():
            if key == "":
                errors.append(
                    err_invalid_value(
                        f"the tag with key : '' and value : '{value}' is invalid because "
                        "empty tag keys aren't supported",
                        "tags",
                    )
                )
        if self.metadata_options is not None:
            errors.append(self.metadata_options._field_errors())
        combined = FieldError.combine(*errors)
        return combined.via_field("provider") if combined else None

    def validate(self) -> None:
        """Raise FieldError, with paths under ``provider``, for every problem found."""
        errors = self._field_errors()
        if errors:
            raise errors


@dataclass
class AWSConstraints:
    """Generic constraints together with the AWS settings decoded from them."""

    constraints: Constraints
    aws: AWS = field(default_factory=AWS)

    def default(self) -> None:
        """Require amd64 and on-demand capacity unless labels or requirements say otherwise."""
        self._default_requirement(LABEL_ARCH_STABLE, ARCHITECTURE_AMD64)
        self._default_requirement(LABEL_CAPACITY_TYPE, CAPACITY_TYPE_ON_DEMAND)

    def _default_requirement(self, key: str, value: str) -> None:
        constraints = self.constraints
        if key in constraints.labels or key in constraints.requirements.keys():
            return
        constraints.requirements = _labels.Requirements(
            (*constraints.requirements, NodeSelectorRequirement(key, Operator.IN, (value,)))
        )


def deserialize(constraints: Constraints) -> AWSConstraints:
    """Decode the raw provider settings of ``constraints``; unknown or duplicate fields fail."""
    if constraints.provider is None:
        raise ValueError(_MISSING_PROVIDER)
    try:
        doc = json.loads(constraints.provider.raw, object_pairs_hook=_reject_duplicates)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise ValueError(f"decoding provider, {error}") from error
    return AWSConstraints(constraints, AWS._from_json(doc))