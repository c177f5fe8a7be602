"""The admin floor: at least one administrator must always exist."""
from __future__ import annotations

from enum import Enum


class MutationKind(str, Enum):
    DEMOTE = "demote"
    DELETE = "delete"


_MESSAGES = {
    MutationKind.DEMOTE: "Cannot remove admin status from the only admin user.",
    MutationKind.DELETE: "Cannot delete the only admin user.",
}


class InvariantViolation(Exception):
    """Raised when a mutation would leave the system without any administrator."""

    def __init__(self, kind: MutationKind, user_id: str | None = None):
        self.kind = MutationKind(kind)
        self.user_id = user_id
        self.message = _MESSAGES[self.kind]
        super().__init__(self.message)


def assert_admin_floor(
    target_is_admin: bool,
    admin_count: int,
    kind: MutationKind,
    user_id: str | None = None,
) -> None:
    """Reject demoting/deleting an admin when it is the last one standing.

    Non-admin targets never put the floor at risk and always pass.
    """
    if not target_is_admin:
        return
    if admin_count <= 1:
        raise InvariantViolation(kind, user_id)
