"""Main entry point for the diff style reviewer."""

import os
import sys
import json
import logging
import argparse
from pathlib import Path
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Flag style issues in a pull request diff and post inline review comments"
    )
    parser.add_argument(
        "--pr",
        type=int,
        help="Pull request number to review",
    )
    parser.add_argument(
        "--repo",
        type=str,
        help="Repository in owner/repo format",
    )
    parser.add_argument(
        "--no-post",
        action="store_true",
        help="Don't post comments to GitHub (dry run)",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Also post a summary comment on the pull request",
    )
    parser.add_argument(
        "--diff-file",
        type=str,
        help="Analyze a local diff file ('-' for stdin) instead of a pull request",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Output file for the event log (JSONL format)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to rules config file",
    )
    return parser


def pr_number_from_event(event_path: Optional[str]) -> int:
    """Read the pull request number from a GitHub Actions event payload."""
    if not event_path or not Path(event_path).is_file():
        return 0
    try:
        with open(event_path) as f:
            event = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read event payload {event_path}: {e}")
        return 0
    return int((event.get("pull_request") or {}).get("number") or 0)


def analyze_local_diff(diff_file: str, config_path: Optional[str]) -> int:
    """Analyze a diff from disk or stdin and print the findings."""
    from review_bot.analysis.diff_analyzer import DiffAnalyzer
    from review_bot.analysis.rules_engine import RulesEngine

    if diff_file == "-":
        diff_text = sys.stdin.read()
    else:
        diff_text = Path(diff_file).read_text(encoding="utf-8")

    findings = DiffAnalyzer(RulesEngine(config_path=config_path)).analyze(diff_text)
    logger.info(f"Found {len(findings)} findings in {diff_file}")
    print(json.dumps([f.to_dict() for f in findings], indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Run the diff style reviewer."""
    load_dotenv()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args = build_parser().parse_args(argv)

    if args.diff_file:
        return analyze_local_diff(args.diff_file, args.config)

    env_pr_number = os.environ.get("PR_NUMBER") or "0"
    if not args.pr and not env_pr_number.isdigit():
        logger.error(f"PR_NUMBER must be a number, got {env_pr_number!r}.")
        return 1

    # Get PR number from args, environment or the Actions event payload
    pr_number = (
        args.pr
        or int(env_pr_number)
        or pr_number_from_event(os.environ.get("GITHUB_EVENT_PATH"))
    )
    if not pr_number:
        logger.error("PR number is required. Set --pr or PR_NUMBER env var.")
        return 1

    repo = args.repo or os.environ.get("GITHUB_REPOSITORY")
    if not repo:
        logger.error("Repository is required. Set --repo or GITHUB_REPOSITORY env var.")
        return 1

    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        logger.error("GitHub token is required. Set GITHUB_TOKEN env var.")
        return 1

    logger.info(f"Starting review of PR #{pr_number} in {repo}")

    from github import GithubException

    from review_bot.github.client import GitHubClient, DEFAULT_API_URL
    from review_bot.analysis.rules_engine import RulesEngine
    from review_bot.agents.orchestrator import ReviewOrchestrator

    try:
        github_client = GitHubClient(
            token=token, repo_name=repo,
            api_url=os.environ.get("GITHUB_API_URL", DEFAULT_API_URL),
        )
    except (ValueError, GithubException) as e:
        logger.error(f"Could not initialize GitHub client: {e}")
        return 1

    log_path = args.output
    if not log_path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = Path("logs") / f"review_pr{pr_number}_{timestamp}.jsonl"

    orchestrator = ReviewOrchestrator(
        github_client=github_client,
        rules_engine=RulesEngine(config_path=args.config),
        post_comments=not args.no_post,
        post_summary=args.summary,
        log_path=log_path,
    )

    try:
        final_state = orchestrator.run(pr_number)
    finally:
        github_client.close()

    summary = final_state.get("summary")
    if summary:
        print("\n" + "=" * 60)
        print(summary.to_markdown())
        print("=" * 60 + "\n")

    if args.no_post and final_state.get("findings"):
        print("\nFindings (JSON):")
        print(json.dumps(orchestrator.get_findings_json(final_state), indent=2))

    if final_state.get("error"):
        logger.error(f"Review failed: {final_state['error']}")
        return 1

    if not orchestrator.succeeded(final_state):
        logger.error(f"{summary.failed_count} of {summary.total_findings} comments failed to post")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
