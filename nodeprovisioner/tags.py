"""Tags applied to cloud resources created for a provisioner."""

from __future__ import annotations

from collections.abc import Mapping

from nodeprovisioner.register import PROVISIONER_NAME_LABEL_KEY


def merge_tags(provisioner_name: str, *custom: Mapping[str, str]) -> list[dict[str, str]]:
    """Default provisioner tags overlaid with ``custom`` maps, later maps winning.

    Each tag is returned as ``{"Key": ..., "Value": ...}``.
    """
    tags: dict[str, str] = {
        PROVISIONER_NAME_LABEL_KEY: provisioner_name,
        "Name": f"{PROVISIONER_NAME_LABEL_KEY}/{provisioner_name}",
    }
    for overrides in custom:
        tags.update(overrides)
    return [{"Key": key, "Value": value} for key, value in tags.items()]