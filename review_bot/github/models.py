"""Data models for GitHub PR review."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    """Severity levels for findings."""
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Finding:
    """A rule match on one added line of a diff."""
    file: str
    line: int
    message: str
    rule_id: str = ""
    severity: Severity = Severity.WARNING

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "rule_id": self.rule_id,
            "severity": self.severity.value,
        }


@dataclass
class PullRequest:
    """Represents a GitHub Pull Request."""
    number: int
    title: str
    owner: str
    repo: str
    head_sha: str
    head_branch: str = ""
    base_branch: str = ""
    author: str = ""


@dataclass
class ReviewComment:
    """Represents an inline review comment to post on GitHub."""
    path: str
    line: int
    body: str
    commit_id: str
    start_line: int
    diff_hunk: str
    side: str = "RIGHT"
    start_side: str = "RIGHT"

    def to_payload(self) -> dict:
        """Build the request body for the pull request comments endpoint."""
        payload = {
            "body": self.body,
            "commit_id": self.commit_id,
            "path": self.path,
            "line": self.line,
            "side": self.side,
            "diff_hunk": self.diff_hunk,
        }
        # GitHub rejects a start_line that does not precede line
        if self.start_line < self.line:
            payload["start_line"] = self.start_line
            payload["start_side"] = self.start_side
        return payload


@dataclass
class PostFailure:
    """A finding whose comment could not be posted."""
    finding: Finding
    error: str
    status: Optional[int] = None
    response: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            **self.finding.to_dict(),
            "error": self.error,
            "status": self.status,
            "response": self.response,
        }


@dataclass
class ReviewSummary:
    """Summary of a review run."""
    total_findings: int
    posted_count: int = 0
    failures: list[PostFailure] = field(default_factory=list)
    files_with_findings: list[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def to_markdown(self) -> str:
        """Generate markdown summary for PR comment."""
        lines = [
            "## 🔍 Diff Style Review Summary\n",
            "| Metric | Count |",
            "|--------|-------|",
            f"| Findings | {self.total_findings} |",
            f"| 💬 Comments Posted | {self.posted_count} |",
            f"| ❌ Failed | {self.failed_count} |",
        ]

        if self.files_with_findings:
            lines.append("\n### Files with Findings\n")
            for f in self.files_with_findings:
                lines.append(f"- `{f}`")

        if self.total_findings == 0:
            lines.append("\n✅ **No issues found! Great job!**")

        return "\n".join(lines)
