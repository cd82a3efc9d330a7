"""Admin membership policy."""

from collections.abc import Iterable

from orders.access.port import Caller


class AdminPolicy:
    """A caller is an admin when their uid is on the allow-list or their
    verified claims say so (``isAdmin``, ``admin`` or ``role == "admin"``).
    """

    def __init__(self, admin_uids: Iterable[str] = ()):
        self.admin_uids = frozenset(admin_uids)

    def is_admin(self, caller: Caller) -> bool:
        if caller.uid in self.admin_uids:
            return True
        claims = caller.claims or {}
        return bool(claims.get("isAdmin") is True or claims.get("admin") is True or claims.get("role") == "admin")
