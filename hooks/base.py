# hooks/base.py
import asyncio
from enum import Enum
from typing import Any, List, Optional

from core.filters import Filters, merge_filters
from core.logger import get_logger
from core.models import Envelope, ErrorKind, Page

logger = get_logger(__name__)

NETWORK_ERROR = "Network error. Please check your connection."


class LoadState(str, Enum):
    INITIAL_LOADING = "initial-loading"
    IDLE = "idle-with-data"
    REFRESHING = "refreshing"
    LOADING_MORE = "loading-more"
    ERROR_EMPTY = "error-empty"
    ERROR_STALE = "error-with-stale-data"


def compute_has_more(returned: int, page_size: int, page: int, total_pages: Optional[int]) -> bool:
    """
    A full page means there may be more, unless the server says this was the last page.

    Without total_pages this over-estimates by at most one fetch: when the true
    last page is exactly full, the next load_more returns a short (or empty)
    page and flips has_more to False.
    """
    if returned != page_size:
        return False
    return total_pages is None or page < total_pages


class PagedResource:
    """
    Pagination, filter and cache-fallback orchestration for one list resource.

    All fetches go through _fetch, which stamps each request with a generation
    number; a completion whose generation is no longer the latest is dropped so a
    slow superseded request can never overwrite newer results. Client calls are
    blocking and run in worker threads.
    """

    noun = "items"

    def __init__(
        self,
        initial_filters: Optional[Filters] = None,
        page_size: int = 20,
        enable_cache: bool = True,
    ):
        self.initial_filters: Filters = dict(initial_filters or {})
        self.filters: Filters = dict(self.initial_filters)
        self.page_size = page_size
        self.enable_cache = enable_cache

        self.items: List[Any] = []
        self.total = 0
        self.current_page = 1
        self.has_more = True
        self.error: Optional[str] = None
        self.error_kind: Optional[ErrorKind] = None
        self.state = LoadState.INITIAL_LOADING

        self.is_loading = True
        self.is_refreshing = False
        self.is_loading_more = False
        self._generation = 0

    # Subclass seams

    def _fetch_page(self, filters: Filters) -> Envelope:
        raise NotImplementedError

    def _read_cache(self) -> Optional[Page]:
        return None

    def _write_cache(self, page: Page) -> None:
        pass

    def _on_page(self, page: Page) -> None:
        pass

    # Public operations

    @property
    def in_flight(self) -> bool:
        return self.is_loading or self.is_refreshing or self.is_loading_more

    async def start(self) -> None:
        """First load with the initial filters."""
        self.state = LoadState.INITIAL_LOADING
        self.filters = dict(self.initial_filters)
        await self._fetch(1, append=False)

    async def refresh(self) -> None:
        self.is_refreshing = True
        self.state = LoadState.REFRESHING
        self.current_page = 1
        self.has_more = True
        await self._fetch(1, append=False)

    async def load_more(self) -> None:
        if not self.has_more or self.in_flight:
            logger.debug(
                "load_more skipped for %s (has_more=%s, in_flight=%s).",
                self.noun, self.has_more, self.in_flight,
            )
            return
        self.is_loading_more = True
        self.state = LoadState.LOADING_MORE
        await self._fetch(self.current_page + 1, append=True)

    async def apply_filters(self, filters: Filters) -> None:
        """Overlay filters on the current ones and reload from page 1."""
        self.filters = merge_filters(self.filters, filters)
        self.current_page = 1
        self.has_more = True
        await self._fetch(1, append=False)

    async def search(self, query: str) -> None:
        await self.apply_filters({"search": query})

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None

    # Internals

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(
                "Discarding stale %s response (generation %d, latest %d).",
                self.noun, generation, self._generation,
            )
            return False
        return True

    def _settle(self) -> None:
        self.is_loading = False
        self.is_refreshing = False
        self.is_loading_more = False

    async def _fetch(self, page: int, append: bool) -> None:
        self._generation += 1
        generation = self._generation

        if not append:
            self.is_loading = True
            if self.state is not LoadState.REFRESHING:
                self.state = LoadState.INITIAL_LOADING
        self.error = None
        self.error_kind = None

        request_filters = merge_filters(self.filters, {"page": page, "limit": self.page_size})

        try:
            envelope = await asyncio.to_thread(self._fetch_page, request_filters)
        except Exception as e:
            if not self._is_current(generation):
                return
            logger.exception("Fetching %s page %d raised: %s", self.noun, page, e)
            await self._fail(NETWORK_ERROR, ErrorKind.NETWORK, page, append, generation)
        else:
            if not self._is_current(generation):
                return
            if envelope.success and envelope.stale and envelope.data is not None:
                if append:
                    # A cached snapshot is never a later page
                    await self._fail(NETWORK_ERROR, ErrorKind.NETWORK, page, append, generation)
                else:
                    self._apply_stale(envelope.data)
            elif envelope.success and envelope.data is not None:
                self._apply_page(envelope.data, page, append)
                if self.enable_cache and not append and page == 1:
                    await asyncio.to_thread(self._write_cache, envelope.data)
            else:
                message = envelope.message or f"Failed to fetch {self.noun}"
                await self._fail(message, envelope.kind, page, append, generation)

        if generation == self._generation:
            self._settle()

    def _apply_page(self, data: Page, page: int, append: bool) -> None:
        new_items = list(data.items)
        self.items = self.items + new_items if append else new_items
        self.total = data.total or len(new_items)
        self.has_more = compute_has_more(len(new_items), self.page_size, page, data.total_pages)
        self.current_page = page
        self._on_page(data)
        self.state = LoadState.IDLE
        logger.debug(
            "Loaded %d %s on page %d (%d shown, has_more=%s).",
            len(new_items), self.noun, page, len(self.items), self.has_more,
        )

    def _apply_stale(self, data: Page) -> None:
        # The client already fell back to its cached snapshot
        self.items = list(data.items)
        self.total = data.total or len(self.items)
        self.current_page = 1
        self._on_page(data)
        self.has_more = False
        self.error = self._stale_message()
        self.error_kind = ErrorKind.NETWORK
        self.state = LoadState.ERROR_STALE

    async def _fail(
        self,
        message: str,
        kind: Optional[ErrorKind],
        page: int,
        append: bool,
        generation: int,
    ) -> None:
        cached: Optional[Page] = None
        if self.enable_cache and not append and page == 1:
            cached = await asyncio.to_thread(self._read_cache)
            if not self._is_current(generation):
                return

        self.error = message
        self.error_kind = kind
        if cached is not None and cached.items:
            logger.warning("Showing %d cached %s after a failed fetch.", len(cached.items), self.noun)
            self.items = list(cached.items)
            self.total = cached.total or len(self.items)
            self.current_page = 1
            self.has_more = False
            self._on_page(cached)
            self.error = self._stale_message()

        self.state = LoadState.ERROR_STALE if self.items else LoadState.ERROR_EMPTY

    def _stale_message(self) -> str:
        return f"Showing cached {self.noun}. Pull to refresh for latest data."
