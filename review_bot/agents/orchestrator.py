"""LangGraph orchestrator for the diff review workflow."""

import logging
import json
from datetime import datetime, timezone
from typing import TypedDict, Literal, Optional
from pathlib import Path

import httpx
import requests
from github import GithubException
from langgraph.graph import StateGraph, END

from review_bot.github.models import (
    Finding, PullRequest, ReviewComment, ReviewSummary, PostFailure,
)
from review_bot.github.client import GitHubClient
from review_bot.analysis.rules_engine import RulesEngine
from review_bot.analysis.diff_analyzer import DiffAnalyzer
from review_bot.analysis.context import build_context_window

logger = logging.getLogger(__name__)

NEW_SIDE_PREFIX = "b/"
DEV_NULL = "/dev/null"


class ReviewState(TypedDict):
    """State for the review workflow."""
    pr_number: int
    pr: PullRequest | None
    diff: str
    findings: list[Finding]
    posted: list[Finding]
    failures: list[PostFailure]
    summary: ReviewSummary | None
    logs: list[dict]
    error: str | None


class CommentPostError(Exception):
    """Raised when a finding cannot be turned into a posted comment."""

    def __init__(self, message: str, status: Optional[int] = None, response: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.response = response


def add_log(event: str, **kwargs) -> dict:
    return {"timestamp": datetime.now(timezone.utc).isoformat(), "event": event, **kwargs}


def repository_path(diff_path: str) -> str:
    """Map a ``+++`` header path to a path inside the repository."""
    if diff_path.startswith(NEW_SIDE_PREFIX):
        return diff_path[len(NEW_SIDE_PREFIX):]
    return diff_path


class ReviewOrchestrator:
    """LangGraph-based orchestrator for the review workflow."""

    def __init__(
        self, github_client: GitHubClient, rules_engine: RulesEngine | None = None,
        post_comments: bool = True, post_summary: bool = False,
        log_path: Path | str | None = None,
    ):
        self.github = github_client
        self.analyzer = DiffAnalyzer(rules_engine)
        self.post_comments = post_comments
        self.post_summary = post_summary
        self.log_path = Path(log_path) if log_path else None

        self.graph = self._build_graph()
        self.app = self.graph.compile()
        logger.info("Initialized ReviewOrchestrator")

    def _build_graph(self) -> StateGraph:
        graph = StateGraph(ReviewState)

        graph.add_node("fetch_pr", self._fetch_pr)
        graph.add_node("fetch_diff", self._fetch_diff)
        graph.add_node("analyze_diff", self._analyze_diff)
        graph.add_node("post_comments", self._post_comments)
        graph.add_node("generate_summary", self._generate_summary)

        graph.set_entry_point("fetch_pr")
        graph.add_conditional_edges("fetch_pr", self._continue_or_abort,
            {"continue": "fetch_diff", "abort": "generate_summary"})
        graph.add_conditional_edges("fetch_diff", self._continue_or_abort,
            {"continue": "analyze_diff", "abort": "generate_summary"})
        graph.add_edge("analyze_diff", "post_comments")
        graph.add_edge("post_comments", "generate_summary")
        graph.add_edge("generate_summary", END)

        return graph

    def _continue_or_abort(self, state: ReviewState) -> Literal["continue", "abort"]:
        return "abort" if state.get("error") else "continue"

    def _fetch_pr(self, state: ReviewState) -> dict:
        pr_number = state["pr_number"]
        logs = state.get("logs", [])
        logs.append(add_log("review_started", pr=pr_number))

        try:
            pr = self.github.get_pull_request(pr_number)
            logs.append(add_log("pr_fetched", head_sha=pr.head_sha))
            return {"pr": pr, "logs": logs}
        except (GithubException, httpx.HTTPError, requests.RequestException) as e:
            logger.error(f"Could not fetch PR #{pr_number}: {e}")
            logs.append(add_log("error", message=str(e)))
            return {"error": str(e), "logs": logs}

    def _fetch_diff(self, state: ReviewState) -> dict:
        logs = state.get("logs", [])
        try:
            diff = self.github.get_pull_request_diff(state["pr_number"])
            logs.append(add_log("diff_fetched", size=len(diff)))
            return {"diff": diff, "logs": logs}
        except (GithubException, httpx.HTTPError, requests.RequestException) as e:
            logger.error(f"Could not fetch diff for PR #{state['pr_number']}: {e}")
            logs.append(add_log("error", message=str(e)))
            return {"error": str(e), "logs": logs}

    def _analyze_diff(self, state: ReviewState) -> dict:
        logs = state.get("logs", [])
        findings = self.analyzer.analyze(state.get("diff", ""))
        for f in findings:
            logs.append(add_log("rule_triggered", rule_id=f.rule_id, file=f.file, line=f.line))
        logger.info(f"Analysis found {len(findings)} findings")
        return {"findings": findings, "logs": logs}

    def _post_comments(self, state: ReviewState) -> dict:
        logs = state.get("logs", [])
        findings = state.get("findings", [])
        pr = state.get("pr")
        if not self.post_comments or not pr:
            return {"logs": logs}

        posted: list[Finding] = []
        failures: list[PostFailure] = []
        file_cache: dict[str, Optional[str]] = {}

        for finding in findings:
            try:
                comment = self._build_comment(pr, finding, file_cache)
                self.github.create_review_comment(pr.number, comment)
            except CommentPostError as e:
                failure = PostFailure(finding=finding, error=str(e),
                                      status=e.status, response=e.response)
            except GithubException as e:
                failure = PostFailure(finding=finding, error=str(e), status=e.status,
                                      response=json.dumps(e.data) if e.data else None)
            except httpx.HTTPStatusError as e:
                failure = PostFailure(finding=finding, error=str(e),
                                      status=e.response.status_code, response=e.response.text)
            except httpx.HTTPError as e:
                failure = PostFailure(finding=finding, error=str(e))
            except requests.RequestException as e:
                status = e.response.status_code if e.response is not None else None
                failure = PostFailure(finding=finding, error=str(e), status=status)
            except UnicodeDecodeError as e:
                failure = PostFailure(finding=finding, error=f"File is not valid UTF-8: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error posting comment on {finding.file}:{finding.line}")
                failure = PostFailure(finding=finding, error=str(e))
            else:
                posted.append(finding)
                logs.append(add_log("comment_posted", file=finding.file, line=finding.line,
                                    rule_id=finding.rule_id))
                continue

            logger.error(f"Error posting comment on {finding.file}:{finding.line}: {failure.error}")
            logger.error(f"Status: {failure.status}")
            logger.error(f"Response: {failure.response}")
            failures.append(failure)
            logs.append(add_log("comment_failed", **failure.to_dict()))

        logger.info(f"Added {len(posted)} review comments ({len(failures)} failed)")
        return {"posted": posted, "failures": failures, "logs": logs}

    def _build_comment(
        self, pr: PullRequest, finding: Finding, file_cache: dict[str, Optional[str]],
    ) -> ReviewComment:
        path = repository_path(finding.file)
        if not path or path == DEV_NULL:
            raise CommentPostError(f"Finding has no file to comment on: {finding.file!r}")

        if path not in file_cache:
            file_cache[path] = self.github.get_file_contents(path, ref=pr.head_sha)
        content = file_cache[path]
        if content is None:
            raise CommentPostError(f"File not found: {path} at {pr.head_sha[:7]}", status=404)

        window = build_context_window(content, finding.line)
        return ReviewComment(
            path=path, line=finding.line, body=finding.message, commit_id=pr.head_sha,
            start_line=window.start_line, diff_hunk=window.diff_hunk,
        )

    def _generate_summary(self, state: ReviewState) -> dict:
        logs = state.get("logs", [])
        findings = state.get("findings", [])
        summary = ReviewSummary(
            total_findings=len(findings),
            posted_count=len(state.get("posted", [])),
            failures=state.get("failures", []),
            files_with_findings=list(dict.fromkeys(f.file for f in findings)),
        )

        if self.post_summary and self.post_comments and not state.get("error"):
            self.github.post_summary_comment(state["pr_number"], summary.to_markdown())

        logs.append(add_log("review_completed", total_findings=summary.total_findings,
                            comments_posted=summary.posted_count,
                            comments_failed=summary.failed_count))
        if self.log_path:
            self._save_logs(logs)
        return {"summary": summary, "logs": logs}

    def _save_logs(self, logs: list[dict]) -> None:
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_path, "a") as f:
                for log in logs:
                    f.write(json.dumps(log) + "\n")
        except OSError as e:
            logger.error(f"Failed to save logs: {e}")

    def run(self, pr_number: int) -> ReviewState:
        initial_state: ReviewState = {
            "pr_number": pr_number, "pr": None, "diff": "", "findings": [], "posted": [],
            "failures": [], "summary": None, "logs": [], "error": None,
        }
        return self.app.invoke(initial_state)

    @staticmethod
    def succeeded(state: ReviewState) -> bool:
        """True when the run completed and every comment was posted."""
        return not state.get("error") and not state.get("failures")

    def get_findings_json(self, state: ReviewState) -> list[dict]:
        return [f.to_dict() for f in state.get("findings", [])]
