"""
In-process cache of loaded principals.

Holds one principal snapshot per user id. Entries are only ever replaced
wholesale by a fresh load; nothing here merges memberships or assignments
into an existing snapshot.
"""
from collections import OrderedDict
from typing import Optional

from app.core.config import settings
from app.core.logging import get_logger
from app.domain.schemas.access import Principal

logger = get_logger(__name__)


class PrincipalCache:
    """
    Bounded principal cache.

    When full, the entry that was stored longest ago is evicted.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is None:
            max_entries = settings.PRINCIPAL_CACHE_MAX_ENTRIES
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Principal]" = OrderedDict()

    def get(self, user_id: str) -> Optional[Principal]:
        return self._entries.get(user_id)

    def put(self, principal: Principal) -> None:
        """Store ``principal``, replacing any snapshot held for the same user."""
        self._entries.pop(principal.id, None)
        self._entries[principal.id] = principal
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("principal_cache_evicted", user_id=evicted)

    def invalidate(self, user_id: str) -> bool:
        """
        Drop the snapshot held for ``user_id``.

        Returns:
            True if an entry was removed
        """
        removed = self._entries.pop(user_id, None) is not None
        if removed:
            logger.debug("principal_cache_invalidated", user_id=user_id)
        return removed

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("principal_cache_cleared")

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
