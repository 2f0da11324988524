"""Data models and constants for repository exploration."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

GITHUB_SEARCH_RESULT_LIMIT = 1000  # GitHub Search API hard limit per query
PER_PAGE = 100  # Maximum page size for REST list and search endpoints
ATTEMPT_TIMEOUT = 10.0  # seconds, per individual network attempt
WEB_FLOW_LOGIN = "web-flow"  # Committer identity of merges done through the web UI


@dataclass
class RateLimit:
    """Rate limit metadata reported alongside a response."""

    remaining: int | None = None
    limit: int | None = None
    reset_at: float | None = None  # unix timestamp

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0


@dataclass
class ApiResponse:
    """Response from a single, non-paginated API call."""

    status: int
    body: Any
    rate: RateLimit = field(default_factory=RateLimit)
    etag: str | None = None
    link: str | None = None
    message: str | None = None


@dataclass
class Page:
    """One page of a paginated list or search endpoint.

    ``next_page`` is 0 when there are no more pages.
    """

    items: list
    next_page: int = 0
    rate: RateLimit = field(default_factory=RateLimit)
    status: int = 200
    total_count: int | None = None
    message: str | None = None


@dataclass
class PagedRequest:
    """Cursor state for a paginated call, advanced by the page aggregator."""

    per_page: int = PER_PAGE
    page: int = 1


@dataclass
class ContentNode:
    """One entry of a repository file tree."""

    kind: str  # "file", "dir", "symlink" or "submodule"
    path: str
    name: str
    owner: str
    repo: str
    sha: str | None = None
    size: int | None = None
    download_url: str | None = None
    html_url: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind == "dir"

    @classmethod
    def from_json(cls, data: dict, owner: str = "", repo: str = "") -> "ContentNode":
        """Build a node from a contents API entry; owner/repo come from its html_url when present."""
        html_url = data.get("html_url")
        if html_url:
            owner, repo = owner_repo_from_url(html_url)
        return cls(
            kind=data.get("type", "file"),
            path=data.get("path", ""),
            name=data.get("name", ""),
            owner=owner,
            repo=repo,
            sha=data.get("sha"),
            size=data.get("size"),
            download_url=data.get("download_url"),
            html_url=html_url,
        )


@dataclass
class CommitRecord:
    """Authorship facts of one commit, as listed by the commits endpoint."""

    sha: str
    author_login: str | None
    committer_login: str | None
    authored_at: datetime | None = None

    @classmethod
    def from_json(cls, data: dict) -> "CommitRecord":
        # Top-level author/committer are the linked accounts and may be null
        author = data.get("author") or {}
        committer = data.get("committer") or {}
        git_author = (data.get("commit") or {}).get("author") or {}
        date = git_author.get("date")
        return cls(
            sha=data.get("sha", ""),
            author_login=author.get("login"),
            committer_login=committer.get("login"),
            authored_at=datetime.fromisoformat(date.replace("Z", "+00:00")) if date else None,
        )


def owner_repo_from_url(html_url: str) -> tuple[str, str]:
    """Extract (owner, repo) from a github.com URL like /owner/repo/blob/..."""
    parts = urlparse(html_url).path.split("/")
    if len(parts) < 3 or not parts[1] or not parts[2]:
        raise ValueError(f"Cannot derive owner/repo from URL: {html_url}")
    return parts[1], parts[2]
