"""Depth-first walk over a repository's content tree."""

from collections.abc import Callable
from functools import partial
from typing import Any

from .errors import ClientMisuseError
from .executor import RequestExecutor
from .github import GitHubClient
from .models import ContentNode

# Return None to keep walking; any other value aborts the walk and is returned by walk()
Visitor = Callable[[ContentNode], Any]


class TreeWalker:
    """Visits every node below a start path.

    Directories are expanded before the visitor sees them, so a directory is
    visited after its whole subtree. Files are visited in listing order.
    Each directory listing is a separate call through the executor.
    """

    def __init__(self, client: GitHubClient, executor: RequestExecutor):
        self.client = client
        self.executor = executor
        self.listings = 0

    def list_nodes(self, owner: str, repo: str, path: str = "", ref: str | None = None) -> list[ContentNode]:
        """List the immediate children of ``path`` (or the file itself if it is one)."""
        response = self.executor.run(partial(self.client.list_contents, owner, repo, path, ref))
        self.listings += 1
        entries = response.body
        if isinstance(entries, dict):
            entries = [entries]
        return [ContentNode.from_json(entry, owner=owner, repo=repo) for entry in entries or []]

    def walk(
        self,
        owner: str,
        repo: str,
        path: str,
        visitor: Visitor,
        ref: str | None = None,
    ) -> Any:
        """Walk the tree rooted at ``path``.

        Returns None when every node was visited, or the first non-None value
        returned by ``visitor``. Listing failures propagate.
        """
        if not owner:
            raise ClientMisuseError("owner not provided")
        if not repo:
            raise ClientMisuseError("repo not provided")
        nodes = self.list_nodes(owner, repo, path or "", ref)
        return self._walk(owner, repo, nodes, visitor, ref)

    def _walk(self, owner, repo, nodes, visitor, ref):
        for node in nodes:
            if node.is_dir:
                children = self.list_nodes(owner, repo, node.path, ref)
                result = self._walk(owner, repo, children, visitor, ref)
                if result is not None:
                    return result

            result = visitor(node)
            if result is not None:
                return result
        return None
