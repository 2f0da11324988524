"""CLI commands for repository exploration."""

import argparse
import json
import sys
from datetime import timedelta


def _dump(data):
    json.dump(data, sys.stdout, indent=2)
    sys.stdout.write("\n")


def _progress(msg: str):
    sys.stderr.write(f"\033[2K\r{msg}")
    sys.stderr.flush()


def main():
    parser = argparse.ArgumentParser(
        description="Explore GitHub users, organizations and repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--skip-cache",
        action="store_true",
        help="Skip reading downloaded content from cache (still writes to cache)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # repos subcommand
    repos_parser = subparsers.add_parser("repos", help="List repositories of a user or organization")
    owner_group = repos_parser.add_mutually_exclusive_group(required=True)
    owner_group.add_argument("--user", help="User login")
    owner_group.add_argument("--org", help="Organization login")

    # members subcommand
    members_parser = subparsers.add_parser("members", help="List members of an organization")
    members_parser.add_argument("org", help="Organization login")

    # orgs subcommand
    orgs_parser = subparsers.add_parser("orgs", help="List organizations of a user")
    orgs_parser.add_argument("user", nargs="?", default="", help="User login (default: authenticated user)")

    # contributors subcommand
    contributors_parser = subparsers.add_parser("contributors", help="List contributors of a repository")
    contributors_parser.add_argument("repo", help="Repository as owner/name")

    # search-repos subcommand
    search_parser = subparsers.add_parser("search-repos", help="Search repositories by metadata")
    search_parser.add_argument("query", help="Search query (e.g., topic:cli)")
    search_parser.add_argument("--min-stars", type=int, default=0, help="Skip repos with fewer stars")
    search_parser.add_argument("--limit", type=int, default=0, help="Maximum results (default: all)")

    # search-code subcommand
    code_parser = subparsers.add_parser("search-code", help="Search code")
    code_parser.add_argument("query", help="Search query (e.g., filename:SKILL.md)")
    code_parser.add_argument("--limit", type=int, default=0, help="Maximum results (default: all)")

    # repos-by-language subcommand
    lang_parser = subparsers.add_parser(
        "repos-by-language",
        help="List (almost) all repositories in a language, past the 1000-result search limit",
    )
    lang_parser.add_argument("language", help="Language (e.g., go)")
    lang_parser.add_argument("--exclude-forks", action="store_true", help="Exclude forks")
    lang_parser.add_argument("--min-stars", type=int, default=0, help="Stop below this many stars")
    lang_parser.add_argument("--limit", type=int, default=0, help="Maximum results (default: all)")

    # walk subcommand
    walk_parser = subparsers.add_parser("walk", help="List every file and directory of a repository")
    walk_parser.add_argument("repo", help="Repository as owner/name")
    walk_parser.add_argument("--path", default="", help="Start path (default: repository root)")
    walk_parser.add_argument("--ref", default=None, help="Branch, tag or commit")

    # download subcommand
    download_parser = subparsers.add_parser("download", help="Print raw file content")
    download_parser.add_argument("repo", help="Repository as owner/name")
    download_parser.add_argument("path", help="File path")
    download_parser.add_argument("--ref", default=None, help="Branch, tag or commit")

    # shadow-members subcommand
    shadow_parser = subparsers.add_parser(
        "shadow-members",
        help="Find contributors who pushed commits directly",
    )
    shadow_parser.add_argument("repo", help="Repository as owner/name")
    shadow_parser.add_argument(
        "--max-age-days",
        type=int,
        default=0,
        help="Only consider commits from the last N days (default: all)",
    )

    # api subcommand
    api_parser = subparsers.add_parser("api", help="Make a retried GitHub API GET call")
    api_parser.add_argument("endpoint", help="API endpoint path (e.g., repos/owner/repo/topics)")
    api_parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter (repeatable, e.g., --param per_page=100)",
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    from .errors import ExplorerError, NotFoundError
    from .explorer import GitHubExplorer
    from .github import get_client

    calls = [0]

    def observer(response):
        calls[0] += 1
        remaining = response.rate.remaining
        _progress(f"  {calls[0]} API calls" + (f", {remaining} remaining" if remaining is not None else ""))

    try:
        explorer = GitHubExplorer(get_client(skip_cache=args.skip_cache or None), observer=observer)
        _run(args, explorer)
    except NotFoundError:
        sys.stderr.write("\nNot found\n")
        sys.exit(1)
    except ExplorerError as e:
        sys.stderr.write(f"\nError: {e}\n")
        sys.exit(1)
    finally:
        sys.stderr.write("\n")


def _split_repo(value: str) -> tuple[str, str]:
    owner, _, repo = value.partition("/")
    if not owner or not repo:
        raise SystemExit(f"Expected owner/name, got: {value}")
    return owner, repo


def _run(args, explorer):
    if args.command == "repos":
        if args.user:
            _dump(explorer.list_repos_by_user(args.user))
        else:
            _dump(explorer.list_repos_by_org(args.org))
    elif args.command == "members":
        _dump(explorer.list_org_members(args.org))
    elif args.command == "orgs":
        _dump(explorer.list_orgs_of_user(args.user))
    elif args.command == "contributors":
        _dump(explorer.list_contributors(*_split_repo(args.repo)))
    elif args.command == "search-repos":
        from .search import SearchReposOpts

        _dump(explorer.search_repos(SearchReposOpts(args.query, min_stars=args.min_stars, limit=args.limit)))
    elif args.command == "search-code":
        from .search import SearchCodeOpts

        _dump(explorer.search_code(SearchCodeOpts(args.query, limit=args.limit)))
    elif args.command == "repos-by-language":
        from .search import ListAllReposByLanguageOpts

        opts = ListAllReposByLanguageOpts(
            args.language,
            exclude_forks=args.exclude_forks,
            min_stars=args.min_stars,
            limit=args.limit,
        )
        _dump(explorer.list_all_repos_by_language(opts))
    elif args.command == "walk":
        owner, repo = _split_repo(args.repo)
        nodes = []

        def visit(node):
            nodes.append({"type": node.kind, "path": node.path, "size": node.size})

        explorer.walk_files(owner, repo, args.path, visit, ref=args.ref)
        _dump(nodes)
    elif args.command == "download":
        owner, repo = _split_repo(args.repo)
        sys.stdout.buffer.write(explorer.download_file(owner, repo, args.path, ref=args.ref))
        sys.stdout.flush()
    elif args.command == "shadow-members":
        owner, repo = _split_repo(args.repo)
        max_age = timedelta(days=args.max_age_days) if args.max_age_days else None
        members = explorer.find_shadow_members(owner, repo, max_age=max_age)
        _dump([m.get("login") for m in members])
    elif args.command == "api":
        params = {}
        for p in args.param:
            k, _, v = p.partition("=")
            params[k] = v
        _dump(explorer.api(args.endpoint, params or None))


if __name__ == "__main__":
    main()
