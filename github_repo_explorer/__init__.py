"""Read-only bulk exploration of GitHub.

Complete listings of users, organizations and repositories with retries and
rate limit backoff, exhaustive repository search past GitHub's 1000-result
limit, repository tree walking, and shadow member detection.
"""

from .cli import main
from .errors import ClientMisuseError, ExplorerError, NotFoundError, RetriesExhaustedError
from .explorer import GitHubExplorer
from .models import ApiResponse, ContentNode, Page

__all__ = [
    "main",
    "GitHubExplorer",
    "ApiResponse",
    "ContentNode",
    "Page",
    "ExplorerError",
    "ClientMisuseError",
    "NotFoundError",
    "RetriesExhaustedError",
]

if __name__ == "__main__":
    main()
