"""Classify commit authorship to find contributors with push access.

How a commit landed on the default branch shows up in who authored it
versus who committed it:

- direct: the author is also the committer (pushed by the author).
- web-merged: the committer is GitHub's web-flow account (merged through
  the UI, usually by whoever clicked "Merge").
- moderated: author and committer differ (a PR merged by someone else).

A contributor who made at least one direct commit has push access, whether
or not they appear in the organization's member list.
"""

from collections import Counter
from collections.abc import Iterable
from enum import Enum

from .models import WEB_FLOW_LOGIN, CommitRecord


class CommitKind(str, Enum):
    DIRECT = "direct"
    WEB_MERGED = "web_merged"
    MODERATED = "moderated"
    UNATTRIBUTED = "unattributed"  # neither author nor committer is a linked account


def is_direct_commit(commit: CommitRecord) -> bool:
    return commit.author_login is not None and commit.author_login == commit.committer_login


def is_web_merged_commit(commit: CommitRecord) -> bool:
    # Not fully reliable: web-flow also commits edits made in the browser
    return commit.committer_login == WEB_FLOW_LOGIN


def is_moderated_commit(commit: CommitRecord) -> bool:
    return commit.author_login != commit.committer_login


def classify_commit(commit: CommitRecord) -> CommitKind:
    if is_direct_commit(commit):
        return CommitKind.DIRECT
    if is_web_merged_commit(commit):
        return CommitKind.WEB_MERGED
    if is_moderated_commit(commit):
        return CommitKind.MODERATED
    return CommitKind.UNATTRIBUTED


def is_shadow_member(commits: Iterable[CommitRecord]) -> bool:
    """True if any commit was pushed directly by its author."""
    return any(is_direct_commit(commit) for commit in commits)


def summarize(commits: Iterable[CommitRecord]) -> Counter:
    """Count commits per CommitKind."""
    return Counter(classify_commit(commit) for commit in commits)
