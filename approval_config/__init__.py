"""
approval_config -- single public entrypoint for approval chain configuration.

Responsibility:
    Provides the ONLY way to obtain the approval chain definition and the
    approver resolution policy at runtime, through
    ``get_active_chain_config()``.  The YAML file is read, validated and
    compiled once per path; the compiled result is immutable and shared.

Architecture position:
    Configuration -- sits above ``approval_kernel``.  The kernel never
    imports from ``approval_config``; services receive the compiled
    ``ChainDefinition`` and ``ResolutionPolicy`` by injection.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ChainConfigurationError`` -- validation errors.

Audit relevance:
    Every compilation emits an ``APPROVAL_CONFIG_TRACE`` log entry with the
    config_id, version and checksum, tying each approval step to the chain
    configuration that produced it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

from approval_config.loader import load_configuration
from approval_config.schema import ChainConfiguration
from approval_config.validator import validate_configuration
from approval_kernel.domain.chain import ApprovalChain, ChainDefinition
from approval_kernel.domain.resolution import (
    LookupStrategy,
    ResolutionPolicy,
    ResolutionRule,
)
from approval_kernel.domain.workflow import RequestType
from approval_kernel.exceptions import ChainConfigurationError
from approval_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


@dataclass(frozen=True)
class CompiledChainConfig:
    """Runtime artifact: the kernel-ready chain and resolution policy."""

    config_id: str
    version: int
    checksum: str
    chain_definition: ChainDefinition
    resolution_policy: ResolutionPolicy


def compile_configuration(config: ChainConfiguration) -> CompiledChainConfig:
    """Validate ``config`` and translate it into kernel domain objects.

    Raises:
        ChainConfigurationError: if validation reports errors.
    """
    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ChainConfigurationError(validation.errors)
    for warning in validation.warnings:
        _logger.warning("approval_config_warning", extra={"warning": warning})

    chain_definition = ChainDefinition.from_chains(
        (
            ApprovalChain(
                request_type=RequestType(c.request_type),
                requested_role=c.requested_role,
                roles=c.roles,
            )
            for c in config.chains
        ),
        fallback_role=config.fallback_role,
    )
    resolution_policy = ResolutionPolicy.from_rules(
        ResolutionRule(
            role=r.role,
            strategies=tuple(LookupStrategy(s) for s in r.strategies),
        )
        for r in config.resolution
    )

    return CompiledChainConfig(
        config_id=config.config_id,
        version=config.version,
        checksum=config.checksum,
        chain_definition=chain_definition,
        resolution_policy=resolution_policy,
    )


_cache: dict[Path, CompiledChainConfig] = {}
_cache_lock = threading.Lock()


def get_active_chain_config(config_path: Path | None = None) -> CompiledChainConfig:
    """The ONLY public configuration entrypoint.

    Loads, validates and compiles the configuration at ``config_path``
    (default: ``approval_config/sets/default.yaml``) on first use and
    returns the same immutable object on every later call for that path.
    """
    path = (config_path or DEFAULT_CONFIG_PATH).resolve()
    with _cache_lock:
        compiled = _cache.get(path)
        if compiled is None:
            compiled = compile_configuration(load_configuration(path))
            _cache[path] = compiled
            _logger.info(
                "APPROVAL_CONFIG_TRACE",
                extra={
                    "config_id": compiled.config_id,
                    "config_version": compiled.version,
                    "checksum": compiled.checksum,
                    "chain_count": len(compiled.chain_definition.chains),
                    "resolution_rule_count": len(compiled.resolution_policy.rules),
                    "config_path": str(path),
                },
            )
    return compiled


def clear_config_cache() -> None:
    """Forget compiled configurations. FOR TESTING ONLY."""
    with _cache_lock:
        _cache.clear()


__all__ = [
    "CompiledChainConfig",
    "DEFAULT_CONFIG_PATH",
    "clear_config_cache",
    "compile_configuration",
    "get_active_chain_config",
]
