from __future__ import annotations

from .engine import (
    COMPARED_FIELDS,
    ReconcilePlan,
    RejectedRecord,
    RetireReason,
    changed_fields,
    find_expired,
    reconcile,
)

__all__ = [
    "COMPARED_FIELDS",
    "ReconcilePlan",
    "RejectedRecord",
    "RetireReason",
    "changed_fields",
    "find_expired",
    "reconcile",
]
