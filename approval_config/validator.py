"""
Configuration Validator (``approval_config.validator``).

Responsibility
--------------
Validates a ``ChainConfiguration`` before it is compiled into the kernel's
chain definition and resolution policy.

Invariants enforced
-------------------
* Request types belong to the closed ``RequestType`` set and appear once.
* Every chain is non-empty and lists each role at most once, so
  ``next_role`` walks visit each step exactly once.
* Every role that appears in a chain has a resolution rule built from
  known lookup strategies.

Failure modes
-------------
* Errors  -> configuration MUST NOT be compiled.
* Warnings  -> configuration compiles but should be reviewed.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from approval_config.schema import ChainConfiguration
from approval_kernel.domain.resolution import LookupStrategy
from approval_kernel.domain.workflow import RequestType


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


_KNOWN_REQUEST_TYPES = frozenset(t.value for t in RequestType)
_KNOWN_STRATEGIES = frozenset(s.value for s in LookupStrategy)


def validate_configuration(config: ChainConfiguration) -> ConfigValidationResult:
    """Run all structural checks on ``config``."""
    result = ConfigValidationResult()

    if config.version < 1:
        result.errors.append(f"version must be >= 1, got {config.version}")

    if not config.chains:
        result.errors.append("configuration defines no approval chains")

    _check_chains(config, result)
    _check_resolution(config, result)

    return result


def _check_chains(config: ChainConfiguration, result: ConfigValidationResult) -> None:
    type_counts = Counter(c.request_type for c in config.chains)
    for request_type, count in type_counts.items():
        if count > 1:
            result.errors.append(f"request type '{request_type}' defined {count} times")

    requested_counts = Counter(c.requested_role for c in config.chains)
    for requested_role, count in requested_counts.items():
        if count > 1:
            result.errors.append(
                f"requested role '{requested_role}' routed by {count} chains"
            )

    for chain in config.chains:
        if chain.request_type not in _KNOWN_REQUEST_TYPES:
            result.errors.append(f"unknown request type '{chain.request_type}'")
        if not chain.roles:
            result.errors.append(f"chain '{chain.request_type}' has no roles")
            continue
        duplicates = [r for r, n in Counter(chain.roles).items() if n > 1]
        if duplicates:
            result.errors.append(
                f"chain '{chain.request_type}' repeats roles {sorted(duplicates)}"
            )


def _check_resolution(config: ChainConfiguration, result: ConfigValidationResult) -> None:
    rule_counts = Counter(r.role for r in config.resolution)
    for role, count in rule_counts.items():
        if count > 1:
            result.errors.append(f"resolution rule for '{role}' defined {count} times")

    for rule in config.resolution:
        if not rule.strategies:
            result.warnings.append(
                f"resolution rule for '{rule.role}' has no strategies; "
                "its steps will always be open-claim"
            )
        for strategy in rule.strategies:
            if strategy not in _KNOWN_STRATEGIES:
                result.errors.append(
                    f"resolution rule for '{rule.role}' uses unknown strategy '{strategy}'"
                )

    resolvable = set(rule_counts)
    chain_roles = {role for chain in config.chains for role in chain.roles}
    for role in sorted(chain_roles - resolvable):
        result.errors.append(f"chain role '{role}' has no resolution rule")

    if config.fallback_role not in chain_roles:
        result.warnings.append(
            f"fallback role '{config.fallback_role}' does not head or join any chain"
        )
