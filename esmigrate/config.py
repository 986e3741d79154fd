"""Migration settings and environment resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace


DEFAULT_INCLUDE = ("**/*.js",)


@dataclass(frozen=True)
class MigrationConfig:
    namespace: str = "ROS3D"
    template: str = "prototype"
    template_link: str = "__proto__"
    root_unit: str = "Ros3D.js"
    indent: str = "  "
    export_classes: bool = True
    export_properties: bool = False
    two_phase: bool = True
    validate_output: bool = False
    include: tuple[str, ...] = DEFAULT_INCLUDE


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


def resolve_config(**overrides) -> MigrationConfig:
    """Build a config from ESMIGRATE_* variables; non-None overrides win."""
    config = MigrationConfig(
        namespace=os.getenv("ESMIGRATE_NAMESPACE") or MigrationConfig.namespace,
        root_unit=os.getenv("ESMIGRATE_ROOT_UNIT") or MigrationConfig.root_unit,
        two_phase=_env_flag("ESMIGRATE_TWO_PHASE", MigrationConfig.two_phase),
    )
    explicit = {key: value for key, value in overrides.items() if value is not None}
    if "include" in explicit:
        explicit["include"] = tuple(explicit["include"])
    return replace(config, **explicit)
