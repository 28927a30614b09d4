"""
Approver resolution policy (``approval_kernel.domain.resolution``).

Responsibility
--------------
Declarative description of how an abstract approver role is mapped to a
concrete identity: for each role, an ordered list of lookup strategies,
evaluated in priority order, first match wins.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.  The strategies only describe
*which scope* to query; ``services.approver_resolver`` performs the lookups
through the ``IdentityDirectory`` protocol.

Invariants enforced
-------------------
* A strategy whose scope attribute is missing from the request context is
  skipped, never widened: ``department`` with no department does not turn
  into a global search.
* ``class_in_charge`` applies to student applicants only; other requested
  roles skip it even when a class name is present.
* Roles without a rule resolve to nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping
from uuid import UUID

from approval_kernel.domain.workflow import RequestContext

STUDENT_ROLE = "student"


class LookupStrategy(str, Enum):
    """Scope in which an approver is looked up."""

    CLASS_IN_CHARGE = "class_in_charge"
    DEPARTMENT = "department"
    COLLEGE = "college"
    GLOBAL = "global"


@dataclass(frozen=True)
class ApproverScope:
    """Filter handed to the identity directory.

    None fields are not filtered on.
    """

    department_id: UUID | None = None
    college_id: UUID | None = None
    class_in_charge: str | None = None


def scope_for(strategy: LookupStrategy, context: RequestContext) -> ApproverScope | None:
    """Directory scope for ``strategy``, or None when the context cannot supply it."""
    if strategy == LookupStrategy.CLASS_IN_CHARGE:
        # Only student applicants belong to a class.
        if context.requested_role != STUDENT_ROLE:
            return None
        if context.department_id is None or not context.class_name:
            return None
        return ApproverScope(
            department_id=context.department_id,
            class_in_charge=context.class_name,
        )
    if strategy == LookupStrategy.DEPARTMENT:
        if context.department_id is None:
            return None
        return ApproverScope(department_id=context.department_id)
    if strategy == LookupStrategy.COLLEGE:
        if context.college_id is None:
            return None
        return ApproverScope(college_id=context.college_id)
    if strategy == LookupStrategy.GLOBAL:
        return ApproverScope()
    return None


@dataclass(frozen=True)
class ResolutionRule:
    """Ordered lookup strategies for one approver role."""

    role: str
    strategies: tuple[LookupStrategy, ...]


@dataclass(frozen=True)
class ResolutionPolicy:
    """Immutable mapping of approver role to its resolution rule."""

    rules: Mapping[str, ResolutionRule] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_rules(cls, rules: Iterable[ResolutionRule]) -> ResolutionPolicy:
        return cls(rules=MappingProxyType({rule.role: rule for rule in rules}))

    def strategies_for(self, role: str) -> tuple[LookupStrategy, ...]:
        rule = self.rules.get(role)
        return rule.strategies if rule is not None else ()

