"""
Approval Kernel - multi-level registration approvals

A transactional approval workflow engine with:
- Declarative per-request-type approval chains
- Context-aware approver resolution with ordered fallbacks
- At most one pending step per request, enforced in the database
- Append-only, immutable approval history
"""

__version__ = "0.1.0"
