"""
List consistency after moderation actions.

After a successful transition the view's current page is fetched again with
the page, page size, sort and filters that were in effect when the action was
triggered. Nothing is patched locally: until the refetch lands, the row's
state comes from the lock table alone. When the refetch cannot be applied
(fetch failed, or the operator has navigated elsewhere) the entity is marked
stale instead, so the view never keeps showing the pre-transition state as
if it were current.
"""

from typing import Dict, FrozenSet, Optional, Protocol

from src.kernel.models.entity import EntityKind, EntityRef
from src.kernel.models.listing import ListPage, ListQuery
from src.logging_config import get_logger

logger = get_logger(__name__)


class ListFetcher(Protocol):
    """List-fetch collaborator for one entity kind."""

    async def fetch_page(self, query: ListQuery) -> ListPage:
        ...


class ListConsistencyCoordinator:
    """
    Owns one list view's query, its last applied page and its stale set.

    Every fetch gets a sequence number; a response is applied only if it is
    newer than the last applied one and the view still shows the same query.
    """

    def __init__(self, kind: EntityKind, fetcher: ListFetcher, query: Optional[ListQuery] = None):
        self.kind = kind
        self._fetcher = fetcher
        self._query = query or ListQuery()
        self._page: Optional[ListPage] = None
        # ref -> last sequence number issued when it was marked
        self._stale: Dict[EntityRef, int] = {}
        self._issued = 0
        self._applied = 0
        self._closed = False

    @property
    def query(self) -> ListQuery:
        return self._query

    @property
    def page(self) -> Optional[ListPage]:
        return self._page

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stale(self) -> FrozenSet[EntityRef]:
        return frozenset(self._stale)

    def is_stale(self, ref: EntityRef) -> bool:
        return ref in self._stale

    def mark_stale(self, ref: EntityRef) -> None:
        self._stale[ref] = self._issued

    def close(self) -> None:
        """Tear the view down; responses arriving afterwards are dropped."""
        self._closed = True

    async def load(self, query: Optional[ListQuery] = None) -> Optional[ListPage]:
        """Navigate to `query` (or reload the current one). Fetch errors propagate."""
        if query is not None:
            self._query = query
        return await self._fetch(self._query)

    async def refetch(
        self,
        query: Optional[ListQuery] = None,
        *,
        transitioned: Optional[EntityRef] = None,
    ) -> Optional[ListPage]:
        """
        Re-issue `query` (default: the current one) after a transition.

        Returns the applied page, or None when it could not be applied; in that
        case `transitioned` is marked stale. Fetch errors are not raised: the
        transition itself already succeeded.
        """
        query = query or self._query
        try:
            page = await self._fetch(query)
        except Exception as e:
            logger.warning(
                "Refetch after transition failed: %s",
                e,
                extra={"kind": self.kind.value, "entity": str(transitioned) if transitioned else None},
            )
            if transitioned is not None:
                self.mark_stale(transitioned)
            return None

        if page is None:
            if transitioned is not None and not self._closed and query != self._query:
                self.mark_stale(transitioned)
            return None

        if transitioned is not None and page.find(transitioned) is None:
            # Expected when the entity no longer matches the active filter
            logger.debug(
                "Transitioned entity left the page",
                extra={"entity": str(transitioned), "filters": dict(query.filters)},
            )
        return page

    async def _fetch(self, query: ListQuery) -> Optional[ListPage]:
        self._issued += 1
        seq = self._issued
        page = await self._fetcher.fetch_page(query)

        if self._closed:
            logger.debug("Dropping page for closed view", extra={"kind": self.kind.value})
            return None
        if query != self._query:
            logger.debug("Dropping page for superseded query", extra={"kind": self.kind.value})
            return None
        if seq <= self._applied:
            logger.debug("Dropping out-of-order page", extra={"kind": self.kind.value, "seq": seq})
            return None

        self._applied = seq
        self._page = page
        # Only a request issued after the mark can carry the new state
        self._stale = {ref: marked for ref, marked in self._stale.items() if marked >= seq}
        return page
