"""Field-level validation errors and the validators for provisioner constraints."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from nodeprovisioner import requirements as _labels
from nodeprovisioner.core import NodeSelectorRequirement, Operator, Taint, TaintEffect

SUPPORTED_NODE_SELECTOR_OPS = (Operator.IN, Operator.NOT_IN)

_QUALIFIED_NAME_FMT = "([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]"
_QUALIFIED_NAME_RE = re.compile(_QUALIFIED_NAME_FMT)
_QUALIFIED_NAME_MAX_LENGTH = 63
_LABEL_VALUE_RE = re.compile(f"({_QUALIFIED_NAME_FMT})?")
_LABEL_VALUE_MAX_LENGTH = 63
_DNS1123_LABEL_FMT = "[a-z0-9]([-a-z0-9]*[a-z0-9])?"
_DNS1123_SUBDOMAIN_RE = re.compile(f"{_DNS1123_LABEL_FMT}(\\.{_DNS1123_LABEL_FMT})*")
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253


@dataclass(frozen=True)
class _Problem:
    message: str
    paths: tuple[str, ...] = ()
    details: str = ""


def _flatten(parts: Iterable[str]) -> str:
    """Join path parts with dots, attaching index parts such as ``[0]`` to their field."""
    joined: list[str] = []
    for part in parts:
        for piece in part.split("."):
            if not piece:
                continue
            if joined and piece.startswith("[") and piece.endswith("]"):
                joined[-1] += piece
            else:
                joined.append(piece)
    return ".".join(joined)


def _render(problems: Iterable[_Problem]) -> str:
    merged: dict[tuple[str, str], set[str]] = {}
    for problem in problems:
        merged.setdefault((problem.message, problem.details), set()).update(
            path for path in problem.paths if path
        )
    lines = []
    for (message, details), paths in merged.items():
        line = f"{message}: {', '.join(sorted(paths))}" if paths else message
        if details:
            line += "\n" + details
        lines.append(line)
    return "\n".join(sorted(lines))


class FieldError(ValueError):
    """One or more validation problems, each tied to the field paths it concerns."""

    def __init__(self, message: str = "", *paths: str, details: str = "") -> None:
        self._problems: tuple[_Problem, ...] = (
            (_Problem(message, tuple(paths), details),) if message else ()
        )
        super().__init__(_render(self._problems))

    @classmethod
    def _from_problems(cls, problems: Iterable[_Problem]) -> "FieldError":
        error = cls()
        error._problems = tuple(problems)
        error.args = (_render(error._problems),)
        return error

    @classmethod
    def combine(cls, *errors: "FieldError | None") -> "FieldError | None":
        """Merge the given errors, ignoring None; None if nothing remains."""
        problems = [p for error in errors if error is not None for p in error._problems]
        return cls._from_problems(problems) if problems else None

    def also(self, *errors: "FieldError | None") -> "FieldError | None":
        """This error together with ``errors``."""
        return type(self).combine(self, *errors)

    def via_field(self, *prefix: str) -> "FieldError":
        """A copy whose paths are nested under ``prefix``."""
        return type(self)._from_problems(
            _Problem(p.message, tuple(_flatten((*prefix, path)) for path in p.paths), p.details)
            for p in self._problems
        )

    @property
    def paths(self) -> tuple[str, ...]:
        """Every non-empty field path, sorted and unique."""
        return tuple(sorted({path for p in self._problems for path in p.paths if path}))

    @property
    def messages(self) -> tuple[str, ...]:
        return tuple(p.message for p in self._problems)

    def __bool__(self) -> bool:
        return bool(self._problems)


def err_invalid_value(value: Any, field: str) -> FieldError:
    return FieldError(f"invalid value: {value}", field)


def err_missing_field(*fields: str) -> FieldError:
    return FieldError("missing field(s)", *fields)


def err_invalid_key_name(key: str, field: str, *details: str) -> FieldError:
    return FieldError(f'invalid key name "{key}"', field, details=", ".join(details))


def err_invalid_array_value(value: Any, field: str, index: int) -> FieldError:
    return FieldError(f"invalid value: {value}", f"{field}[{index}]")


def err_out_of_bounds_value(value: Any, lower: Any, upper: Any, field: str) -> FieldError:
    return FieldError(f"expected {lower} <= {value} <= {upper}", field)


def err_generic(message: str) -> FieldError:
    return FieldError(message)


def _dns1123_subdomain_errors(value: str) -> list[str]:
    errors = []
    if len(value) > _DNS1123_SUBDOMAIN_MAX_LENGTH:
        errors.append(f"must be no more than {_DNS1123_SUBDOMAIN_MAX_LENGTH} characters")
    if not _DNS1123_SUBDOMAIN_RE.fullmatch(value):
        errors.append(
            "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric "
            "characters, '-' or '.', and must start and end with an alphanumeric character"
        )
    return errors


def is_qualified_name(value: str) -> list[str]:
    """Problems with ``value`` as a qualified name (optional DNS prefix, '/', name)."""
    errors: list[str] = []
    parts = value.split("/")
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix:
            errors.append("prefix part must be non-empty")
        else:
            errors.extend(f"prefix part {e}" for e in _dns1123_subdomain_errors(prefix))
    else:
        return [
            "a qualified name must consist of alphanumeric characters, '-', '_' or '.', "
            "and must start and end with an alphanumeric character, with an optional "
            f"DNS subdomain prefix and '/' (regex used for validation is '{_QUALIFIED_NAME_FMT}')"
        ]
    if not name:
        errors.append("name part must be non-empty")
    elif len(name) > _QUALIFIED_NAME_MAX_LENGTH:
        errors.append(f"name part must be no more than {_QUALIFIED_NAME_MAX_LENGTH} characters")
    if not _QUALIFIED_NAME_RE.fullmatch(name):
        errors.append(
            "name part must consist of alphanumeric characters, '-', '_' or '.', and must "
            "start and end with an alphanumeric character "
            f"(regex used for validation is '{_QUALIFIED_NAME_FMT}')"
        )
    return errors


def is_valid_label_value(value: str) -> list[str]:
    """Problems with ``value`` as a label value; empty values are valid."""
    errors = []
    if len(value) > _LABEL_VALUE_MAX_LENGTH:
        errors.append(f"must be no more than {_LABEL_VALUE_MAX_LENGTH} characters")
    if not _LABEL_VALUE_RE.fullmatch(value):
        errors.append(
            "a valid label must be an empty string or consist of alphanumeric characters, "
            "'-', '_' or '.', and must start and end with an alphanumeric character"
        )
    return errors


def _label_domain(key: str) -> str:
    domain, sep, _ = key.partition("/")
    return domain if sep else ""


def is_restricted_label_domain(key: str) -> bool:
    """True if the key's domain is reserved and not explicitly allowed."""
    domain = _label_domain(key)
    if domain in _labels.ALLOWED_LABEL_DOMAINS:
        return False
    return any(domain.endswith(restricted) for restricted in _labels.RESTRICTED_LABEL_DOMAINS)


def validate_labels(labels: Mapping[str, str]) -> FieldError | None:
    errors: list[FieldError] = []
    for key, value in labels.items():
        errors.extend(err_invalid_key_name(key, "labels", e) for e in is_qualified_name(key))
        errors.extend(
            err_invalid_value(f"{value}, {e}", f"labels[{key}]") for e in is_valid_label_value(value)
        )
        if key in _labels.RESTRICTED_LABELS:
            errors.append(err_invalid_key_name(key, "labels", "label is restricted"))
        if key not in _labels.WELL_KNOWN_LABELS and is_restricted_label_domain(key):
            errors.append(err_invalid_key_name(key, "labels", "label domain not allowed"))
    return FieldError.combine(*errors)


_VALID_EFFECTS = (
    TaintEffect.NO_SCHEDULE,
    TaintEffect.PREFER_NO_SCHEDULE,
    TaintEffect.NO_EXECUTE,
    "",
)


def validate_taints(taints: Iterable[Taint]) -> FieldError | None:
    errors: list[FieldError] = []
    for i, taint in enumerate(taints):
        if not taint.key:
            errors.append(err_invalid_array_value("key is required", "taints", i))
        errors.extend(err_invalid_array_value(e, "taints", i) for e in is_qualified_name(taint.key))
        if taint.value:
            errors.extend(
                err_invalid_array_value(e, "taints", i) for e in is_qualified_name(taint.value)
            )
        if taint.effect not in _VALID_EFFECTS:
            errors.append(err_invalid_array_value(taint.effect, "effect", i))
    return FieldError.combine(*errors)


def validate_requirements(requirements: Iterable[NodeSelectorRequirement]) -> FieldError | None:
    errors: list[FieldError] = []
    for i, requirement in enumerate(requirements):
        error = validate_requirement(requirement)
        if error:
            errors.append(err_invalid_array_value(error, "requirements", i))
    return FieldError.combine(*errors)


def validate_requirement(requirement: NodeSelectorRequirement) -> FieldError | None:
    errors: list[FieldError] = []
    if requirement.key not in _labels.WELL_KNOWN_LABELS:
        errors.append(
            err_invalid_key_name(
                f"{requirement.key} not in {sorted(_labels.WELL_KNOWN_LABELS)}", "key"
            )
        )
    errors.extend(
        err_invalid_value(f"{requirement.key}, {e}", "key") for e in is_qualified_name(requirement.key)
    )
    for i, value in enumerate(requirement.values):
        errors.extend(
            err_invalid_array_value(f"{value}, {e}", "values", i) for e in is_valid_label_value(value)
        )
    if requirement.operator not in SUPPORTED_NODE_SELECTOR_OPS:
        supported = [str(op) for op in SUPPORTED_NODE_SELECTOR_OPS]
        errors.append(err_invalid_value(f"{requirement.operator} not in {supported}", "operator"))
    return FieldError.combine(*errors)