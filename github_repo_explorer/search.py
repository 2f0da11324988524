"""Exhaustive search past GitHub's 1000-result window.

A single search query never yields more than 1000 results, no matter how
many match. Results are requested sorted by an ordering key (stars,
descending); once a query's window is used up, the query is re-issued with
``stars:<=N`` where N is the key of the last accepted result, and results
already seen are skipped.

When more than 1000 results share one key value, re-issuing at the same
bound returns the same window again, so the bound is decremented instead.
Results past the first 1000 of such a cluster cannot be reached by this
strategy; that is logged.
"""

import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from .errors import ClientMisuseError
from .executor import SEARCH_RETRIES
from .models import GITHUB_SEARCH_RESULT_LIMIT, Page, PagedRequest
from .pagination import PageAggregator


def _log(msg: str):
    sys.stderr.write(f"\033[2K\r[search] {msg}\n")
    sys.stderr.flush()


@dataclass
class ListAllReposByLanguageOpts:
    language: str
    exclude_forks: bool = False
    min_stars: int = 0
    limit: int = 0  # 0 means no limit

    def validate(self):
        if not self.language:
            raise ClientMisuseError("language not provided")
        if self.min_stars < 0 or self.limit < 0:
            raise ClientMisuseError("min_stars and limit must not be negative")


@dataclass
class SearchReposOpts:
    query: str
    min_stars: int = 0
    limit: int = 0

    def validate(self):
        if not self.query:
            raise ClientMisuseError("query not provided")


@dataclass
class SearchCodeOpts:
    query: str
    limit: int = 0

    def validate(self):
        if not self.query:
            raise ClientMisuseError("query not provided")


def stargazers(item: dict) -> int:
    return item.get("stargazers_count") or 0


def full_name(item: dict) -> str:
    return item["full_name"]


@dataclass
class _SearchState:
    """State of one exhaustive search; never shared between runs."""

    seen: set = field(default_factory=set)
    results: list = field(default_factory=list)
    bound: int | None = None  # ordering key upper bound, None until the first restart
    last_key: int | None = None  # key of the last accepted result


@dataclass
class _Window:
    count: int = 0  # results returned by the remote in this window
    stopped: bool = False  # floor or limit reached


class ExhaustiveSearch:
    """Collects every result of a search, re-windowing on an ordering key.

    ``fetch(query, request)`` performs one search call and must return results
    sorted by ``key`` descending.
    """

    def __init__(
        self,
        aggregator: PageAggregator,
        fetch: Callable[[str, PagedRequest], Page],
        key: Callable[[dict], int] = stargazers,
        identity: Callable[[dict], str] = full_name,
        qualifier: str = "stars",
        retries: int = SEARCH_RETRIES,
        window: int = GITHUB_SEARCH_RESULT_LIMIT,
    ):
        self.aggregator = aggregator
        self.fetch = fetch
        self.key = key
        self.identity = identity
        self.qualifier = qualifier
        self.retries = retries
        self.window = window
        self.restarts = 0

    def query(self, fragments: list[str], bound: int | None, min_key: int = 0) -> str:
        parts = list(fragments)
        if bound is not None and min_key > 0:
            parts.append(f"{self.qualifier}:{min_key}..{bound}")
        elif bound is not None:
            parts.append(f"{self.qualifier}:<={bound}")
        elif min_key > 0:
            parts.append(f"{self.qualifier}:>={min_key}")
        return " ".join(parts)

    def run(self, fragments: list[str], min_key: int = 0, limit: int = 0) -> list[dict]:
        """Return every matching result with key >= ``min_key``, at most ``limit`` (0 = all).

        Results are unique by identity and ordered by key, descending.
        """
        state = _SearchState()
        self.restarts = 0

        while True:
            window = self._run_window(fragments, state, min_key, limit)
            if window.stopped or window.count < self.window:
                break
            if state.last_key is None:
                break

            next_bound = state.last_key
            if state.bound is not None and next_bound >= state.bound:
                _log(
                    f"At least {self.window} results at {self.qualifier}={state.bound}; "
                    f"any past the first {self.window} at that value are unreachable"
                )
                next_bound = state.bound - 1
            if next_bound < min_key:
                break

            state.bound = next_bound
            self.restarts += 1
            _log(
                f"Window full ({len(state.results):,} collected), "
                f"restarting at {self.qualifier}:<={next_bound}"
            )

        return state.results

    def _run_window(self, fragments: list[str], state: _SearchState, min_key: int, limit: int) -> _Window:
        window = _Window()
        bound = state.bound

        def on_page(page: Page) -> bool:
            for item in page.items:
                window.count += 1
                key = self.key(item)
                if key < min_key:
                    window.stopped = True
                    return False
                if bound is not None and key > bound:
                    # The remote changed between queries; keep output ordered
                    continue
                ident = self.identity(item)
                if ident in state.seen:
                    continue
                state.seen.add(ident)
                state.results.append(item)
                state.last_key = key
                if limit and len(state.results) >= limit:
                    window.stopped = True
                    return False
            return window.count < self.window

        query = self.query(fragments, bound, min_key)
        self.aggregator.each_page(partial(self.fetch, query), on_page, retries=self.retries)
        return window
