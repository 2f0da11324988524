"""Read-only bulk exploration of GitHub users, organizations and repositories."""

import sys
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Any

from .contributions import is_shadow_member
from .errors import ClientMisuseError, NotFoundError
from .executor import RequestExecutor
from .github import GitHubClient, get_client
from .models import CommitRecord, ContentNode
from .pagination import PageAggregator
from .search import ExhaustiveSearch, ListAllReposByLanguageOpts, SearchCodeOpts, SearchReposOpts
from .settings import get_settings
from .tree import TreeWalker, Visitor


def _log(msg: str):
    sys.stderr.write(f"\033[2K\r[explorer] {msg}\n")
    sys.stderr.flush()


def _require(**params):
    for name, value in params.items():
        if not value:
            raise ClientMisuseError(f"{name} not provided")


class GitHubExplorer:
    """Complete, retried listings and searches over the GitHub API.

    Every operation either returns a complete result or raises; partial
    results are never returned alongside an error.

    Args:
        client: Platform client; defaults to the shared client from settings.
        observer: Called with every API response (telemetry).
        should_stop: Polled once per contributor by find_shadow_members;
            returning True ends the scan early with what was found so far.
    """

    def __init__(
        self,
        client: GitHubClient | None = None,
        observer: Callable[[Any], None] | None = None,
        should_stop: Callable[[], bool] | None = None,
        retries: int | None = None,
        search_retries: int | None = None,
    ):
        settings = get_settings()
        self.client = client or get_client()
        self.executor = RequestExecutor(
            retries=retries if retries is not None else settings.max_retries,
            observer=observer,
        )
        self.search_retries = search_retries if search_retries is not None else settings.search_max_retries
        self.pages = PageAggregator(self.executor)
        self.tree = TreeWalker(self.client, self.executor)
        self.should_stop = should_stop or (lambda: False)

    def _get(self, path: str, params: dict | None = None):
        return self.executor.run(partial(self.client.get, path, params)).body

    def _list(self, path: str, params: dict | None = None, stop=None) -> list[dict]:
        return self.pages.collect(partial(self.client.list_page, path, params=params), stop=stop)

    # Listings

    def list_repos_by_user(self, user: str = "") -> list[dict]:
        """Repositories of ``user``; the authenticated user's when empty."""
        return self._list(f"/users/{user}/repos" if user else "/user/repos")

    def list_repos_by_org(self, org: str) -> list[dict]:
        _require(org=org)
        return self._list(f"/orgs/{org}/repos")

    def list_org_members(self, org: str) -> list[dict]:
        _require(org=org)
        return self._list(f"/orgs/{org}/members")

    def list_orgs_of_user(self, user: str = "") -> list[dict]:
        return self._list(f"/users/{user}/orgs" if user else "/user/orgs")

    def list_contributors(self, owner: str, repo: str) -> list[dict]:
        _require(owner=owner, repo=repo)
        return self._list(f"/repos/{owner}/{repo}/contributors")

    def list_pulls(self, owner: str, repo: str, state: str = "closed") -> list[dict]:
        _require(owner=owner, repo=repo)
        return self._list(f"/repos/{owner}/{repo}/pulls", {"state": state})

    def list_commits(
        self,
        owner: str,
        repo: str,
        author: str | None = None,
        path: str | None = None,
        max_age: timedelta | None = None,
    ) -> list[dict]:
        """Commits newest first; with ``max_age``, stops at the first older commit."""
        _require(owner=owner, repo=repo)
        params = {}
        if author:
            params["author"] = author
        if path:
            params["path"] = path

        stop = None
        if max_age:
            now = datetime.now(timezone.utc)

            def stop(item):
                authored_at = CommitRecord.from_json(item).authored_at
                return authored_at is not None and now - authored_at > max_age

        return self._list(f"/repos/{owner}/{repo}/commits", params, stop=stop)

    def list_commits_by_author(self, owner: str, repo: str, author: str, max_age: timedelta | None = None) -> list[dict]:
        _require(author=author)
        return self.list_commits(owner, repo, author=author, max_age=max_age)

    def list_commits_by_path(self, owner: str, repo: str, path: str, max_age: timedelta | None = None) -> list[dict]:
        _require(path=path)
        return self.list_commits(owner, repo, path=path, max_age=max_age)

    # Single resources

    def api(self, path: str, params: dict | None = None):
        """GET any API path, e.g. "repos/owner/repo/topics"."""
        _require(path=path)
        return self._get(path if path.startswith("/") else f"/{path}", params)

    def get_user(self, user: str) -> dict:
        _require(user=user)
        return self._get(f"/users/{user}")

    def get_org(self, org: str) -> dict:
        _require(org=org)
        return self._get(f"/orgs/{org}")

    def get_repo(self, owner: str, repo: str) -> dict:
        _require(owner=owner, repo=repo)
        return self._get(f"/repos/{owner}/{repo}")

    def get_pull(self, owner: str, repo: str, number: int) -> dict:
        _require(owner=owner, repo=repo, number=number)
        return self._get(f"/repos/{owner}/{repo}/pulls/{number}")

    def list_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Bytes of code per language."""
        _require(owner=owner, repo=repo)
        return self._get(f"/repos/{owner}/{repo}/languages") or {}

    def is_owner_an_org(self, owner: str) -> tuple[dict | None, bool]:
        try:
            return self.get_org(owner), True
        except NotFoundError:
            return None, False

    def is_owner_a_user(self, owner: str) -> tuple[dict | None, bool]:
        """Returns the user object even when the owner turns out to be an organization."""
        try:
            user = self.get_user(owner)
        except NotFoundError:
            return None, False
        return user, user.get("type") != "Organization"

    # Search

    def _search_fetch(self, kind: str, sort: str | None = None):
        return partial(self.client.search_page, kind, sort=sort)

    def list_repos_by_language(self, owner: str, language: str) -> list[dict]:
        """Repositories of ``owner`` written in ``language`` (at most one search window)."""
        _require(owner=owner, language=language)
        query = f'user:"{owner}" language:"{language}"'
        return self.pages.collect(
            partial(self._search_fetch("repositories"), query), retries=self.search_retries
        )

    def list_all_repos_by_language(self, opts: ListAllReposByLanguageOpts) -> list[dict]:
        """(Almost) every repository in a language, most starred first.

        See ExhaustiveSearch for how the 1000-result window is worked around.
        """
        opts.validate()
        fragments = [f'language:"{opts.language}"']
        if opts.exclude_forks:
            fragments.append("fork:false")
        engine = ExhaustiveSearch(
            self.pages,
            self._search_fetch("repositories", sort="stars"),
            retries=self.search_retries,
        )
        return engine.run(fragments, min_key=opts.min_stars, limit=opts.limit)

    def search_repos_with_callback(self, query: str, callback: Callable[[list[dict]], bool]) -> None:
        """Like search_repos, but hands each page to ``callback``; False stops paging."""
        _require(query=query)
        self.pages.each_page(
            partial(self._search_fetch("repositories"), query),
            lambda page: callback(page.items) is not False,
            retries=self.search_retries,
        )

    def search_repos(self, opts: SearchReposOpts) -> list[dict]:
        """Repositories whose metadata (name, description, topics) match the query."""
        opts.validate()
        repos: list[dict] = []

        def on_page(items):
            for repo in items:
                if (repo.get("stargazers_count") or 0) < opts.min_stars:
                    continue
                repos.append(repo)
                if opts.limit and len(repos) >= opts.limit:
                    return False
            return True

        self.search_repos_with_callback(opts.query, on_page)
        return repos

    def search_code(self, opts: SearchCodeOpts) -> list[dict]:
        opts.validate()
        results: list[dict] = []

        def on_page(page):
            for item in page.items:
                results.append(item)
                if opts.limit and len(results) >= opts.limit:
                    return False
            return True

        self.pages.each_page(
            partial(self._search_fetch("code"), opts.query), on_page, retries=self.search_retries
        )
        return results

    # Content

    def walk_files(self, owner: str, repo: str, path: str, visitor: Visitor, ref: str | None = None):
        """Visit every file and directory below ``path``; see TreeWalker.walk."""
        return self.tree.walk(owner, repo, path, visitor, ref=ref)

    def download_file(self, owner: str, repo: str, path: str, ref: str | None = None) -> bytes:
        _require(owner=owner, repo=repo, path=path)
        return self.executor.run(partial(self.client.download, owner, repo, path, ref)).body

    def download_content(self, node: ContentNode, ref: str | None = None) -> bytes:
        return self.download_file(node.owner, node.repo, node.path, ref=ref)

    # Contributions

    def find_shadow_members(self, owner: str, repo: str, max_age: timedelta | None = None) -> list[dict]:
        """Contributors who pushed at least one commit directly (see contributions.py)."""
        contributors = self.list_contributors(owner, repo)

        shadow_members = []
        for i, contributor in enumerate(contributors):
            if self.should_stop():
                _log(f"Stopping after {i}/{len(contributors)} contributors")
                return shadow_members
            login = contributor.get("login")
            if not login:
                continue
            commits = [
                CommitRecord.from_json(item)
                for item in self.list_commits_by_author(owner, repo, login, max_age=max_age)
            ]
            if is_shadow_member(commits):
                shadow_members.append(contributor)

        return shadow_members

    def close(self):
        self.client.close()
