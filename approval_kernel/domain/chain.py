"""
Approval chain definition (``approval_kernel.domain.chain``).

Responsibility
--------------
Static, immutable lookup from request type to the ordered sequence of roles
that must approve it.  Built once at startup from ``approval_config`` and
shared by every service instance.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Invariants enforced
-------------------
* ``next_role`` is total: unknown request types, roles outside the chain
  and the last role all yield None.  An unknown request type therefore
  terminates instead of advancing into an undefined state.
* Walking ``next_role`` from ``first_role`` visits every role of the chain
  exactly once, in order, and then stops.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from approval_kernel.domain.workflow import ApproverRole, RequestType


@dataclass(frozen=True)
class ApprovalChain:
    """Ordered approval path for one request type."""

    request_type: RequestType
    requested_role: str
    roles: tuple[str, ...]

    def index_of(self, role: str) -> int | None:
        try:
            return self.roles.index(role)
        except ValueError:
            return None


@dataclass(frozen=True)
class ChainDefinition:
    """Immutable mapping of request type to approval chain."""

    chains: Mapping[RequestType, ApprovalChain] = field(
        default_factory=lambda: MappingProxyType({})
    )
    fallback_role: str = ApproverRole.ADMIN.value

    @classmethod
    def from_chains(
        cls,
        chains: Iterable[ApprovalChain],
        fallback_role: str = ApproverRole.ADMIN.value,
    ) -> ChainDefinition:
        by_type = {chain.request_type: chain for chain in chains}
        return cls(chains=MappingProxyType(by_type), fallback_role=fallback_role)

    def chain_for(self, request_type: RequestType | str) -> ApprovalChain | None:
        key = _coerce_request_type(request_type)
        if key is None:
            return None
        return self.chains.get(key)

    def roles_for(self, request_type: RequestType | str) -> tuple[str, ...]:
        chain = self.chain_for(request_type)
        return chain.roles if chain is not None else ()

    def first_role(self, request_type: RequestType | str) -> str | None:
        roles = self.roles_for(request_type)
        return roles[0] if roles else None

    def next_role(
        self,
        request_type: RequestType | str,
        current_role: str,
    ) -> str | None:
        """Role immediately after ``current_role``, or None when the chain ends."""
        chain = self.chain_for(request_type)
        if chain is None:
            return None
        index = chain.index_of(current_role)
        if index is None or index == len(chain.roles) - 1:
            return None
        return chain.roles[index + 1]

    def position_of(self, request_type: RequestType | str, role: str) -> int | None:
        """1-based step number of ``role`` in the chain."""
        chain = self.chain_for(request_type)
        if chain is None:
            return None
        index = chain.index_of(role)
        return None if index is None else index + 1

    def request_type_for(self, requested_role: str) -> RequestType | None:
        """Request type whose chain handles applicants asking for ``requested_role``."""
        for chain in self.chains.values():
            if chain.requested_role == requested_role:
                return chain.request_type
        return None

    def first_approver_role_for(self, requested_role: str) -> str:
        """Head of the chain for an applicant's requested role.

        Applicants asking for a role with no chain are routed to the
        fallback role.
        """
        request_type = self.request_type_for(requested_role)
        if request_type is None:
            return self.fallback_role
        return self.first_role(request_type) or self.fallback_role


def _coerce_request_type(value: RequestType | str) -> RequestType | None:
    if isinstance(value, RequestType):
        return value
    try:
        return RequestType(value)
    except ValueError:
        return None
