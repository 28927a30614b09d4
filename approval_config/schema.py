"""
Approval chain configuration schema.

The human-authored source artifact.  YAML files are parsed into these
types by the loader, validated by the validator, and compiled into the
kernel's immutable ``ChainDefinition`` / ``ResolutionPolicy`` by
``approval_config.compile_configuration``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ApprovalChainDef:
    """Approval path for one request type."""

    request_type: str
    requested_role: str
    roles: tuple[str, ...]


@dataclass(frozen=True)
class ResolutionRuleDef:
    """Ordered lookup strategy names for one approver role."""

    role: str
    strategies: tuple[str, ...]


@dataclass(frozen=True)
class ChainConfiguration:
    """A complete, versioned approval configuration."""

    config_id: str
    version: int
    fallback_role: str
    chains: tuple[ApprovalChainDef, ...]
    resolution: tuple[ResolutionRuleDef, ...]
    checksum: str = ""
