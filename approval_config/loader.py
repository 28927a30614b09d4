"""
Configuration Loader (``approval_config.loader``).

Responsibility
--------------
Loads an approval configuration YAML file and parses it into the frozen
``approval_config.schema`` dataclasses.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong value shapes  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from approval_config.schema import (
    ApprovalChainDef,
    ChainConfiguration,
    ResolutionRuleDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_name_list(value: Any, field_name: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be a list, got {type(value).__name__}")
    return tuple(str(item) for item in value)


def parse_chain(data: dict[str, Any]) -> ApprovalChainDef:
    """Parse an ApprovalChainDef from a dict."""
    return ApprovalChainDef(
        request_type=data["request_type"],
        requested_role=data["requested_role"],
        roles=_parse_name_list(data["roles"], "roles"),
    )


def parse_resolution_rule(data: dict[str, Any]) -> ResolutionRuleDef:
    """Parse a ResolutionRuleDef from a dict."""
    return ResolutionRuleDef(
        role=data["role"],
        strategies=_parse_name_list(data["strategies"], "strategies"),
    )


def parse_configuration(data: dict[str, Any]) -> ChainConfiguration:
    """Parse a complete ChainConfiguration, stamping its checksum."""
    return ChainConfiguration(
        config_id=data["config_id"],
        version=int(data["version"]),
        fallback_role=data.get("fallback_role", "admin"),
        chains=tuple(parse_chain(c) for c in data.get("chains") or []),
        resolution=tuple(
            parse_resolution_rule(r) for r in data.get("resolution") or []
        ),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> ChainConfiguration:
    """Load and parse a configuration file."""
    return parse_configuration(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
