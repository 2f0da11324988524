"""GitHub platform client: PyGithub's requester for JSON calls, httpx + Cachetta for raw content.

Every method performs exactly one remote call and reports what happened
(status, rate limit headers, cursor). Retrying is the executor's job.
"""

import base64
import hashlib
import json
import logging
import re
import time
from datetime import timedelta
from pathlib import Path
from urllib.parse import parse_qs, quote, urlparse

import httpx
from cachetta import Cachetta
from github import Auth, Github

from .errors import ConfigurationError, TransientError
from .models import ATTEMPT_TIMEOUT, PER_PAGE, ApiResponse, Page, PagedRequest, RateLimit
from .settings import get_settings

DEFAULT_DURATION = timedelta(days=30)

# Status handling and retries happen in the executor, not in PyGithub
logging.getLogger("github").setLevel(logging.ERROR)
logging.getLogger("github.Requester").setLevel(logging.ERROR)
logging.getLogger("urllib3").setLevel(logging.ERROR)

_NEXT_LINK = re.compile(r'<([^>]+)>;\s*rel="next"')


class _Uncacheable(Exception):
    """Raised for non-200 downloads so Cachetta never stores them."""

    def __init__(self, data):
        self.data = data


class GitHubClient:
    """Single-call GitHub client.

    Auth is handled via the GITHUB_TOKEN environment variable (or an explicit
    token). PyGithub's own retry logic is disabled so that rate limits and
    transient errors surface to the caller.
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        cache_dir: Path | None = None,
        skip_cache: bool | None = None,
    ):
        settings = get_settings()
        self._token = token or settings.github_token
        if not self._token:
            raise ConfigurationError("GITHUB_TOKEN is not set")
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self._github: Github | None = None
        self._http = httpx.Client(
            headers={
                "Authorization": f"bearer {self._token}",
                "Accept": "application/vnd.github.raw+json",
            },
            timeout=ATTEMPT_TIMEOUT,
        )

        cache_dir = Path(cache_dir or settings.cache_dir)
        skip_cache = settings.skip_cache if skip_cache is None else skip_cache

        def _download_cache_path(owner, repo, path, ref=None):
            params = {"owner": owner, "repo": repo, "path": path, "ref": ref}
            raw = f"contents|{json.dumps(params, sort_keys=True)}"
            key = hashlib.sha256(raw.encode()).hexdigest()[:16]
            return cache_dir / f"{key}.json"

        # Pure fetch function -- Cachetta stores what it returns, exceptions are not cached.
        def _do_download(owner, repo, path, ref=None):
            resp = self._http.get(
                f"{self.api_url}{_contents_path(owner, repo, path)}",
                params={"ref": ref} if ref else None,
            )
            data = {
                "status": resp.status_code,
                "content": base64.b64encode(resp.content).decode(),
                "etag": resp.headers.get("etag"),
            }
            if resp.status_code == 200:
                # Rate headers are not cached; a cache hit would replay stale quota
                return data
            data["headers"] = dict(resp.headers)
            raise _Uncacheable(data)

        cache = Cachetta(path=_download_cache_path, duration=DEFAULT_DURATION)
        if skip_cache:
            cache = cache.copy(read=False)
        self._cached_download = cache(_do_download)

    @property
    def github(self) -> Github:
        """Lazy-initialize the PyGithub client."""
        if self._github is None:
            self._github = Github(
                auth=Auth.Token(self._token),
                base_url=self.api_url,
                timeout=int(ATTEMPT_TIMEOUT),
                retry=None,
                per_page=PER_PAGE,
            )
        return self._github

    def _request(self, path: str, params: dict | None = None) -> tuple[int, dict, object]:
        try:
            status, headers, output = self.github.requester.requestJson(
                "GET", path, parameters=params
            )
        except OSError as e:
            # requests' ConnectionError and Timeout are IOErrors
            raise TransientError(f"error while executing request: {e}") from e
        headers = {k.lower(): v for k, v in (headers or {}).items()}
        try:
            body = json.loads(output) if output else None
        except ValueError as e:
            raise TransientError(f"invalid JSON from {path} (status {status})") from e
        return status, headers, body

    def get(self, path: str, params: dict | None = None) -> ApiResponse:
        """GET a single resource, e.g. "/repos/owner/repo"."""
        status, headers, body = self._request(path, params)
        return ApiResponse(
            status=status,
            body=body,
            rate=_rate_from_headers(headers),
            etag=headers.get("etag"),
            link=headers.get("link"),
            message=_message(body),
        )

    def list_page(self, path: str, request: PagedRequest, params: dict | None = None) -> Page:
        """GET one page of a list endpoint, e.g. "/orgs/foo/repos"."""
        query = dict(params or {})
        query.update({"per_page": request.per_page, "page": request.page})
        status, headers, body = self._request(path, query)
        return Page(
            items=body if isinstance(body, list) else [],
            next_page=_parse_next_page(headers.get("link")),
            rate=_rate_from_headers(headers),
            status=status,
            message=_message(body),
        )

    def search_page(
        self,
        kind: str,
        query: str,
        request: PagedRequest,
        sort: str | None = None,
        order: str = "desc",
    ) -> Page:
        """GET one page of /search/<kind> ("repositories", "code", ...)."""
        params = {"q": query, "per_page": request.per_page, "page": request.page}
        if sort:
            params["sort"] = sort
            params["order"] = order
        status, headers, body = self._request(f"/search/{kind}", params)
        body = body if isinstance(body, dict) else {}
        return Page(
            items=body.get("items") or [],
            next_page=_parse_next_page(headers.get("link")),
            rate=_rate_from_headers(headers),
            status=status,
            total_count=body.get("total_count"),
            message=body.get("message"),
        )

    def list_contents(self, owner: str, repo: str, path: str = "", ref: str | None = None) -> ApiResponse:
        """List a directory (body is a list) or describe a file (body is a dict)."""
        return self.get(_contents_path(owner, repo, path), {"ref": ref} if ref else None)

    def download(self, owner: str, repo: str, path: str, ref: str | None = None) -> ApiResponse:
        """Download raw file content; ``body`` is bytes."""
        try:
            data = self._cached_download(owner, repo, path, ref)
        except _Uncacheable as e:
            data = e.data
        except httpx.TransportError as e:
            raise TransientError(f"error while downloading {owner}/{repo}/{path}: {e}") from e
        headers = {k.lower(): v for k, v in data.get("headers", {}).items()}
        return ApiResponse(
            status=data["status"],
            body=base64.b64decode(data["content"]),
            rate=_rate_from_headers(headers),
            etag=data.get("etag") or headers.get("etag"),
        )

    def close(self):
        self._http.close()
        if self._github is not None:
            self._github.close()


# Client instances keyed by config
_clients: dict[tuple, GitHubClient] = {}


def get_client(cache_dir: Path | None = None, skip_cache: bool | None = None) -> GitHubClient:
    """Get or create a GitHub client with the given configuration."""
    key = (str(cache_dir) if cache_dir else None, skip_cache)
    if key not in _clients:
        _clients[key] = GitHubClient(cache_dir=cache_dir, skip_cache=skip_cache)
    return _clients[key]


def _contents_path(owner: str, repo: str, path: str) -> str:
    return f"/repos/{owner}/{repo}/contents/{quote(path.strip('/'))}"


def _message(body) -> str | None:
    if isinstance(body, dict):
        return body.get("message")
    return None


def _parse_next_page(link: str | None) -> int:
    """Page number of the rel="next" link, 0 when there is none."""
    if not link:
        return 0
    match = _NEXT_LINK.search(link)
    if match is None:
        return 0
    pages = parse_qs(urlparse(match.group(1)).query).get("page")
    try:
        return int(pages[0]) if pages else 0
    except ValueError:
        return 0


def _parse_int(val) -> int | None:
    if val is None:
        return None
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _rate_from_headers(headers: dict) -> RateLimit:
    reset = _parse_int(headers.get("x-ratelimit-reset"))
    retry_after = _parse_retry_after(headers)
    reset_at = float(reset) if reset is not None else None
    if retry_after is not None:
        reset_at = time.time() + retry_after
    return RateLimit(
        remaining=_parse_int(headers.get("x-ratelimit-remaining")),
        limit=_parse_int(headers.get("x-ratelimit-limit")),
        reset_at=reset_at,
    )


def _parse_retry_after(headers: dict) -> float | None:
    val = headers.get("retry-after")
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        return None
