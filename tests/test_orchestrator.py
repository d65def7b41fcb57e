"""Tests for the review workflow."""

import json

import httpx
import requests
import pytest
from unittest.mock import Mock
from github import GithubException

from review_bot.github.client import GitHubClient
from review_bot.github.models import PullRequest, ReviewComment
from review_bot.analysis.rules_engine import RulesEngine
from review_bot.agents.orchestrator import ReviewOrchestrator, repository_path


DIFF = """diff --git a/src/app.ts b/src/app.ts
--- a/src/app.ts
+++ b/src/app.ts
@@ -0,0 +1,3 @@
+const x: any = 1;
+console.log(x);
+export default x;
"""

FILE_TEXT = "const x: any = 1;\nconsole.log(x);\nexport default x;\n"

TWO_FILE_DIFF = """+++ b/a.ts
+console.log(1);
+++ b/b.ts
+console.log(2);
"""


@pytest.fixture
def github_client():
    client = Mock(spec=GitHubClient)
    client.get_pull_request.return_value = PullRequest(
        number=7, title="Add app", owner="octo", repo="demo",
        head_sha="0123456789abcdef", head_branch="feature", base_branch="main",
    )
    client.get_pull_request_diff.return_value = DIFF
    client.get_file_contents.return_value = FILE_TEXT
    client.create_review_comment.return_value = {"id": 1}
    return client


def make_orchestrator(github_client, **kwargs):
    return ReviewOrchestrator(
        github_client=github_client,
        rules_engine=RulesEngine(config_path="/nonexistent/path.yaml"),
        **kwargs,
    )


class TestRepositoryPath:
    """Tests for mapping diff paths to repository paths."""

    def test_strips_new_side_prefix(self):
        assert repository_path("b/src/app.ts") == "src/app.ts"

    def test_leaves_plain_paths(self):
        assert repository_path("src/app.ts") == "src/app.ts"


class TestReviewOrchestrator:
    """Tests for the orchestrator."""

    def test_posts_one_comment_per_finding(self, github_client):
        """Test the happy path end to end."""
        state = make_orchestrator(github_client).run(7)

        assert len(state["findings"]) == 2
        assert github_client.create_review_comment.call_count == 2

        pr_number, comment = github_client.create_review_comment.call_args_list[0].args
        assert pr_number == 7
        assert isinstance(comment, ReviewComment)
        assert comment.path == "src/app.ts"
        assert comment.line == 1
        assert comment.commit_id == "0123456789abcdef"
        assert comment.diff_hunk.startswith("@@ -1,4 +1,4 @@\n")

        assert state["summary"].posted_count == 2
        assert state["summary"].failed_count == 0
        assert ReviewOrchestrator.succeeded(state)

    def test_file_contents_fetched_once_per_file(self, github_client):
        """Test that file contents are cached within a run."""
        make_orchestrator(github_client).run(7)

        github_client.get_file_contents.assert_called_once_with("src/app.ts", ref="0123456789abcdef")

    def test_failure_does_not_stop_later_findings(self, github_client):
        """Test that one posting failure leaves the rest to be attempted."""
        github_client.create_review_comment.side_effect = [
            GithubException(422, {"message": "Validation Failed"}),
            {"id": 2},
        ]

        state = make_orchestrator(github_client).run(7)

        assert github_client.create_review_comment.call_count == 2
        assert len(state["posted"]) == 1
        assert len(state["failures"]) == 1
        failure = state["failures"][0]
        assert failure.status == 422
        assert "Validation Failed" in failure.response
        assert not ReviewOrchestrator.succeeded(state)

    def test_http_error_recorded(self, github_client):
        """Test that httpx status errors are recorded with the response body."""
        request = httpx.Request("POST", "https://api.github.com/repos/octo/demo/pulls/7/comments")
        response = httpx.Response(403, request=request, text='{"message": "rate limited"}')
        github_client.create_review_comment.side_effect = httpx.HTTPStatusError(
            "forbidden", request=request, response=response,
        )

        state = make_orchestrator(github_client).run(7)

        assert len(state["failures"]) == 2
        assert state["failures"][0].status == 403
        assert "rate limited" in state["failures"][0].response

    def test_file_fetch_connection_error_does_not_stop_later_findings(self, github_client):
        """Test that a transport failure fetching one file leaves the next file to be posted."""
        github_client.get_pull_request_diff.return_value = TWO_FILE_DIFF
        github_client.get_file_contents.side_effect = [
            requests.exceptions.ConnectionError("reset"),
            "console.log(2);\n",
        ]

        state = make_orchestrator(github_client).run(7)

        assert github_client.create_review_comment.call_count == 1
        _, comment = github_client.create_review_comment.call_args.args
        assert comment.path == "b.ts"
        assert len(state["failures"]) == 1
        assert state["failures"][0].finding.file == "b/a.ts"
        assert "reset" in state["failures"][0].error
        assert not ReviewOrchestrator.succeeded(state)

    def test_undecodable_file_does_not_stop_later_findings(self, github_client):
        """Test that a non UTF-8 file is a per-finding failure."""
        github_client.get_pull_request_diff.return_value = TWO_FILE_DIFF
        github_client.get_file_contents.side_effect = [
            UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
            "console.log(2);\n",
        ]

        state = make_orchestrator(github_client).run(7)

        assert github_client.create_review_comment.call_count == 1
        assert len(state["failures"]) == 1
        assert "UTF-8" in state["failures"][0].error

    def test_unexpected_error_does_not_stop_later_findings(self, github_client):
        """Test that any other error is recorded and posting continues."""
        github_client.get_pull_request_diff.return_value = TWO_FILE_DIFF
        github_client.create_review_comment.side_effect = [RuntimeError("boom"), {"id": 2}]

        state = make_orchestrator(github_client).run(7)

        assert github_client.create_review_comment.call_count == 2
        assert len(state["posted"]) == 1
        assert state["failures"][0].error == "boom"

    def test_missing_file_recorded_as_failure(self, github_client):
        """Test that a missing file is a per-finding failure."""
        github_client.get_file_contents.return_value = None

        state = make_orchestrator(github_client).run(7)

        github_client.create_review_comment.assert_not_called()
        assert len(state["failures"]) == 2
        assert state["failures"][0].status == 404

    def test_empty_path_not_posted(self, github_client):
        """Test that findings without a file are not sent to GitHub."""
        github_client.get_pull_request_diff.return_value = "+console.log(1);\n"

        state = make_orchestrator(github_client).run(7)

        github_client.get_file_contents.assert_not_called()
        github_client.create_review_comment.assert_not_called()
        assert len(state["failures"]) == 1

    def test_pr_fetch_failure_aborts(self, github_client):
        """Test that failing to fetch the PR ends the run with an error."""
        github_client.get_pull_request.side_effect = GithubException(401, {"message": "Bad credentials"})

        state = make_orchestrator(github_client).run(7)

        assert state["error"]
        github_client.get_pull_request_diff.assert_not_called()
        github_client.create_review_comment.assert_not_called()
        assert state["summary"].total_findings == 0
        assert not ReviewOrchestrator.succeeded(state)

    def test_diff_fetch_failure_aborts(self, github_client):
        """Test that failing to fetch the diff ends the run with an error."""
        github_client.get_pull_request_diff.side_effect = httpx.ConnectError("unreachable")

        state = make_orchestrator(github_client).run(7)

        assert "unreachable" in state["error"]
        github_client.create_review_comment.assert_not_called()

    def test_dry_run_does_not_post(self, github_client):
        """Test that findings are collected without posting."""
        state = make_orchestrator(github_client, post_comments=False).run(7)

        assert len(state["findings"]) == 2
        github_client.create_review_comment.assert_not_called()
        github_client.post_summary_comment.assert_not_called()

    def test_posts_summary_when_enabled(self, github_client):
        """Test the optional summary comment."""
        make_orchestrator(github_client, post_summary=True).run(7)

        pr_number, body = github_client.post_summary_comment.call_args.args
        assert pr_number == 7
        assert "| Findings | 2 |" in body

    def test_writes_event_log(self, github_client, tmp_path):
        """Test that events are appended as JSONL."""
        log_path = tmp_path / "logs" / "review.jsonl"

        make_orchestrator(github_client, log_path=log_path).run(7)

        events = [json.loads(line)["event"] for line in log_path.read_text().splitlines()]
        assert events[0] == "review_started"
        assert events.count("rule_triggered") == 2
        assert events.count("comment_posted") == 2
        assert events[-1] == "review_completed"

    def test_findings_json(self, github_client):
        orchestrator = make_orchestrator(github_client, post_comments=False)
        state = orchestrator.run(7)

        data = orchestrator.get_findings_json(state)

        assert [d["rule_id"] for d in data] == ["TS002", "TS001"]
        assert data[0]["file"] == "b/src/app.ts"
