"""Read-only decision on whether a demotion/deletion would break the admin floor."""

from __future__ import annotations

import logging

from usermgmt.domain.admin_floor import InvariantViolation, MutationKind, assert_admin_floor
from usermgmt.repositories.sql_repository import SQLRepository

logger = logging.getLogger("usermgmt.admin_guard")


class AdminInvariantGuard:
    """Checks a proposed mutation against the current store without writing.

    The repository re-asserts the same rule inside the write transaction, so a
    check that passes here can still be rejected at commit time.
    """

    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def check(self, target_user_id: str, kind: MutationKind) -> None:
        target = self.repository.get_user(target_user_id)
        if target is None or not target.is_admin:
            return
        admin_count = self.repository.count_admins()
        try:
            assert_admin_floor(True, admin_count, kind, target.id)
        except InvariantViolation:
            logger.warning("Rejected %s of last admin %s", MutationKind(kind).value, target.id)
            raise
