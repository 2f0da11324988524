"""Aggregate every page of a paginated endpoint into one list."""

from collections.abc import Callable
from functools import partial

from .executor import RequestExecutor
from .models import PER_PAGE, Page, PagedRequest

# fetch(request) performs one call for the page the request points at
PageFetcher = Callable[[PagedRequest], Page]


class PageAggregator:
    """Drives a page fetcher through the executor until the cursor runs out."""

    def __init__(self, executor: RequestExecutor, per_page: int = PER_PAGE):
        self.executor = executor
        self.per_page = per_page

    def each_page(
        self,
        fetch: PageFetcher,
        callback: Callable[[Page], bool],
        retries: int | None = None,
    ) -> None:
        """Call ``callback`` with every page in order; a False return stops paging."""
        request = PagedRequest(per_page=self.per_page)
        while True:
            page = self.executor.run(partial(fetch, request), retries=retries)
            if callback(page) is False:
                return
            if not page.next_page:
                return
            request.page = page.next_page

    def collect(
        self,
        fetch: PageFetcher,
        stop: Callable[[dict], bool] | None = None,
        retries: int | None = None,
    ) -> list:
        """Return every item across all pages, in pagination order.

        If ``stop(item)`` returns True, that item and everything after it is
        dropped and no further pages are requested.
        """
        items: list = []

        def on_page(page: Page) -> bool:
            if stop is None:
                items.extend(page.items)
                return True
            for item in page.items:
                if stop(item):
                    return False
                items.append(item)
            return True

        self.each_page(fetch, on_page, retries=retries)
        return items
