"""GitHub API client for PR operations."""

import logging
from typing import Optional

import httpx
from github import Auth, Github, GithubException

from .models import PullRequest, ReviewComment

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class GitHubClient:
    """Client for interacting with GitHub API.

    PyGithub covers pull request metadata and file contents. The raw diff
    media type and the ``diff_hunk`` comment field are not exposed by
    PyGithub, so those two calls go through httpx against the same API.
    """

    def __init__(
        self,
        token: str,
        repo_name: str,
        api_url: str = DEFAULT_API_URL,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        if not token:
            raise ValueError("GitHub token is required.")
        if not repo_name or "/" not in repo_name:
            raise ValueError(f"Repository must be in owner/repo format, got {repo_name!r}")

        self.repo_name = repo_name
        self.owner, self.repo = repo_name.split("/", 1)
        self.api_url = api_url.rstrip("/")

        self._github = Github(auth=Auth.Token(token), base_url=self.api_url)
        self._repo = self._github.get_repo(self.repo_name)
        self._http = http_client or httpx.Client(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        logger.info(f"Initialized GitHub client for {self.repo_name}")

    def _pulls_url(self, pr_number: int) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/pulls/{pr_number}"

    def get_pull_request(self, pr_number: int) -> PullRequest:
        """Fetch pull request metadata."""
        logger.info(f"Fetching PR #{pr_number}")

        try:
            gh_pr = self._repo.get_pull(pr_number)
        except GithubException as e:
            logger.error(f"Failed to fetch PR #{pr_number}: {e}")
            raise

        pr = PullRequest(
            number=gh_pr.number, title=gh_pr.title,
            owner=self.owner, repo=self.repo, head_sha=gh_pr.head.sha,
            head_branch=gh_pr.head.ref, base_branch=gh_pr.base.ref,
            author=gh_pr.user.login if gh_pr.user else "",
        )

        logger.info(f"Fetched PR #{pr_number} at {pr.head_sha[:7]}")
        return pr

    def get_pull_request_diff(self, pr_number: int) -> str:
        """Fetch the unified diff of a pull request."""
        headers = {**self._headers, "Accept": DIFF_MEDIA_TYPE}
        try:
            response = self._http.get(self._pulls_url(pr_number), headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch diff for PR #{pr_number}: {e}")
            raise

        logger.info(f"Fetched diff for PR #{pr_number} ({len(response.text)} bytes)")
        return response.text

    def get_file_contents(self, path: str, ref: str) -> Optional[str]:
        """Get contents of a file at a specific git ref."""
        try:
            content = self._repo.get_contents(path, ref=ref)
            if isinstance(content, list):
                return None
            return content.decoded_content.decode("utf-8")
        except GithubException as e:
            if e.status == 404:
                logger.debug(f"File not found: {path} at {ref}")
                return None
            raise

    def create_review_comment(self, pr_number: int, comment: ReviewComment) -> dict:
        """Post an inline review comment on a pull request."""
        response = self._http.post(
            f"{self._pulls_url(pr_number)}/comments",
            headers=self._headers,
            json=comment.to_payload(),
        )
        response.raise_for_status()
        logger.debug(f"Posted comment on {comment.path}:{comment.line}")
        return response.json()

    def post_summary_comment(self, pr_number: int, summary: str) -> bool:
        """Post a summary comment on the PR."""
        try:
            gh_pr = self._repo.get_pull(pr_number)
            gh_pr.create_issue_comment(summary)
            logger.info(f"Posted summary comment on PR #{pr_number}")
            return True
        except GithubException as e:
            logger.error(f"Failed to post summary: {e}")
            return False

    def close(self) -> None:
        self._http.close()
        self._github.close()
