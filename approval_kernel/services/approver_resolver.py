"""
approval_kernel.services.approver_resolver -- role to concrete approver.

Responsibility:
    Given an approver role and the organizational context of a request,
    find the active identity that should act on the step.  Strategies come
    from the ``ResolutionPolicy`` and are tried in order; the first match
    wins.

Architecture position:
    Kernel > Services.  Reads through the ``IdentityDirectory`` protocol;
    performs no writes.

Failure modes:
    None raised.  When no strategy yields a match the resolver returns None
    and the step is created as an open claim (any holder of the role may
    act).  Directory errors propagate unchanged.
"""

from __future__ import annotations

from uuid import UUID

from approval_kernel.domain.collaborators import IdentityDirectory
from approval_kernel.domain.resolution import (
    LookupStrategy,
    ResolutionPolicy,
    scope_for,
)
from approval_kernel.domain.workflow import RequestContext
from approval_kernel.logging_config import get_logger

logger = get_logger("services.approver_resolver")


class ApproverResolver:
    """Resolves approver roles to identities using a resolution policy."""

    def __init__(
        self,
        directory: IdentityDirectory,
        policy: ResolutionPolicy,
    ) -> None:
        self._directory = directory
        self._policy = policy

    def resolve(self, role: str, context: RequestContext) -> UUID | None:
        """Return the approver for ``role`` in ``context``, or None."""
        strategies = self._policy.strategies_for(role)
        skipped: list[str] = []

        for strategy in strategies:
            scope = scope_for(strategy, context)
            if scope is None:
                skipped.append(strategy.value)
                continue

            approver_id = self._directory.find_active_by_role_and_scope(role, scope)
            if approver_id is not None:
                if skipped or strategy is not strategies[0]:
                    logger.info(
                        "approver_resolution_fallback",
                        extra={
                            "role": role,
                            "request_id": str(context.request_id),
                            "preferred_strategy": strategies[0].value,
                            "matched_strategy": strategy.value,
                        },
                    )
                logger.debug(
                    "approver_resolved",
                    extra={
                        "role": role,
                        "request_id": str(context.request_id),
                        "strategy": strategy.value,
                        "approver_id": str(approver_id),
                    },
                )
                return approver_id

            if strategy == LookupStrategy.CLASS_IN_CHARGE:
                logger.info(
                    "class_in_charge_not_found",
                    extra={
                        "role": role,
                        "request_id": str(context.request_id),
                        "class_name": context.class_name,
                        "department_id": str(context.department_id) if context.department_id else None,
                    },
                )

        logger.warning(
            "approver_unresolved",
            extra={
                "role": role,
                "request_id": str(context.request_id),
                "strategies": [s.value for s in strategies],
                "skipped_strategies": skipped,
            },
        )
        return None
