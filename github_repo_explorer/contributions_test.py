"""Unit tests for commit authorship classification."""

from .contributions import (
    CommitKind,
    classify_commit,
    is_direct_commit,
    is_moderated_commit,
    is_shadow_member,
    is_web_merged_commit,
    summarize,
)
from .models import CommitRecord


def _commit(author, committer, sha="abc"):
    return CommitRecord(sha=sha, author_login=author, committer_login=committer)


def describe_commit_predicates():
    def it_flags_direct_commits():
        assert is_direct_commit(_commit("alice", "alice"))
        assert not is_direct_commit(_commit("alice", "bob"))

    def it_does_not_treat_unlinked_accounts_as_direct():
        assert not is_direct_commit(_commit(None, None))

    def it_flags_web_merges_regardless_of_author():
        assert is_web_merged_commit(_commit("alice", "web-flow"))
        assert is_web_merged_commit(_commit(None, "web-flow"))
        assert not is_web_merged_commit(_commit("alice", "alice"))

    def it_flags_moderated_commits():
        assert is_moderated_commit(_commit("alice", "bob"))
        assert is_moderated_commit(_commit("alice", None))
        assert not is_moderated_commit(_commit("alice", "alice"))


def describe_classify_commit():
    def it_prefers_direct():
        assert classify_commit(_commit("alice", "alice")) is CommitKind.DIRECT

    def it_reports_web_merges_before_moderation():
        assert classify_commit(_commit("alice", "web-flow")) is CommitKind.WEB_MERGED

    def it_reports_moderated():
        assert classify_commit(_commit("alice", "bob")) is CommitKind.MODERATED

    def it_reports_unattributed():
        assert classify_commit(_commit(None, None)) is CommitKind.UNATTRIBUTED


def describe_is_shadow_member():
    def it_is_true_with_one_direct_commit():
        commits = [_commit("x", "y"), _commit("x", "x")]
        assert is_shadow_member(commits)

    def it_is_false_with_only_moderated_commits():
        assert not is_shadow_member([_commit("x", "y")])

    def it_is_false_with_only_web_merges():
        assert not is_shadow_member([_commit("x", "web-flow"), _commit("x", "web-flow")])

    def it_is_false_without_commits():
        assert not is_shadow_member([])

    def it_accepts_generators():
        assert is_shadow_member(_commit("x", c) for c in ["y", "z", "x"])


def describe_summarize():
    def it_counts_each_kind():
        commits = [
            _commit("a", "a"),
            _commit("a", "a"),
            _commit("a", "web-flow"),
            _commit("a", "b"),
            _commit(None, None),
        ]

        counts = summarize(commits)

        assert counts[CommitKind.DIRECT] == 2
        assert counts[CommitKind.WEB_MERGED] == 1
        assert counts[CommitKind.MODERATED] == 1
        assert counts[CommitKind.UNATTRIBUTED] == 1
