# insured_templates/registry/lifecycle.py
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Tuple

from insured_templates.errors import InvalidTemplateStatus
from insured_templates.pricing.templates import TemplateStatus


class LifecycleAction(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    DEPLOY = "deploy"
    RETIRE = "retire"
    ARCHIVE = "archive"


S = TemplateStatus
A = LifecycleAction

# (from, action) -> to. Anything absent is not a legal move.
TRANSITIONS: Dict[Tuple[TemplateStatus, LifecycleAction], TemplateStatus] = {
    (S.DRAFT, A.SUBMIT): S.PENDING_REVIEW,
    (S.PENDING_REVIEW, A.APPROVE): S.APPROVED,
    (S.PENDING_REVIEW, A.REJECT): S.DRAFT,
    (S.APPROVED, A.DEPLOY): S.ACTIVE,
    (S.ACTIVE, A.RETIRE): S.DEPRECATED,
    (S.DEPRECATED, A.ARCHIVE): S.ARCHIVED,
    (S.APPROVED, A.ARCHIVE): S.ARCHIVED,
}

UPDATABLE_STATUSES: FrozenSet[TemplateStatus] = frozenset({S.DRAFT, S.APPROVED})


def next_status(current: TemplateStatus, action: LifecycleAction) -> TemplateStatus:
    target = TRANSITIONS.get((current, action))
    if target is None:
        raise InvalidTemplateStatus(f"cannot {action.value} a template in status {current.value}")
    return target


def require_status(current: TemplateStatus, *allowed: TemplateStatus) -> None:
    if current not in allowed:
        names = ", ".join(s.value for s in allowed)
        raise InvalidTemplateStatus(f"status {current.value} not in ({names})")


def ensure_updatable(current: TemplateStatus) -> None:
    if current not in UPDATABLE_STATUSES:
        raise InvalidTemplateStatus(f"templates in status {current.value} cannot be updated")
