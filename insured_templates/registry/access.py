# insured_templates/registry/access.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Set

from insured_templates.common.validation import validate_string_length
from insured_templates.errors import Unauthorized

logger = logging.getLogger(__name__)

MAX_IDENTITY_LEN = 128


class Role(str, Enum):
    ADMIN = "admin"
    GOVERNANCE = "governance"
    NONE = "none"


def validate_identity(identity: str, what: str = "identity") -> str:
    return validate_string_length(identity, 1, MAX_IDENTITY_LEN, what)


class AccessControl:
    """One admin plus a set of governance participants. The admin also votes."""

    def __init__(self, admin: str, governance: Iterable[str] = ()):
        self._admin = validate_identity(admin, "admin")
        self._governance: Set[str] = {validate_identity(g, "governance participant") for g in governance}

    @property
    def admin(self) -> str:
        return self._admin

    def role_of(self, identity: str) -> Role:
        if identity == self._admin:
            return Role.ADMIN
        if identity in self._governance:
            return Role.GOVERNANCE
        return Role.NONE

    def is_admin(self, identity: str) -> bool:
        return self.role_of(identity) is Role.ADMIN

    def is_governance(self, identity: str) -> bool:
        return self.role_of(identity) is not Role.NONE

    def require_admin(self, caller: str) -> None:
        if not self.is_admin(caller):
            raise Unauthorized(f"{caller!r} is not the admin")

    def require_governance(self, caller: str) -> None:
        if not self.is_governance(caller):
            raise Unauthorized(f"{caller!r} is not a governance participant")

    def grant_governance(self, caller: str, participant: str) -> None:
        self.require_admin(caller)
        self._governance.add(validate_identity(participant, "governance participant"))
        logger.info("governance_granted participant=%s", participant)

    def revoke_governance(self, caller: str, participant: str) -> None:
        self.require_admin(caller)
        self._governance.discard(participant)
        logger.info("governance_revoked participant=%s", participant)
