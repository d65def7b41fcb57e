"""Scanner that turns unified diff text into line-level findings."""

import logging
from typing import Optional

from review_bot.github.models import Finding
from review_bot.analysis.rules_engine import RulesEngine

logger = logging.getLogger(__name__)

FILE_HEADER_PREFIX = "+++"
ADDED_LINE_PREFIX = "+"


class DiffAnalyzer:
    """Applies the rules engine to every added line of a diff."""

    def __init__(self, rules_engine: Optional[RulesEngine] = None):
        self.rules = rules_engine or RulesEngine()

    def analyze(self, diff_text: str) -> list[Finding]:
        """
        Scan diff text and collect a finding per matching rule per added line.

        Line numbers count added lines since the last ``+++`` header, starting
        at 1. Context and removed lines are skipped and do not advance the
        count, so the number only matches the new file's line number when
        the additions of a file are contiguous from its first line.

        Args:
            diff_text: Unified diff with one or more ``+++ <path>`` sections.

        Returns:
            Findings in discovery order.
        """
        findings: list[Finding] = []
        current_file = ""
        line_number = 0

        for line in diff_text.split("\n"):
            # Headers start with "+" too, so they are checked first
            if line.startswith(FILE_HEADER_PREFIX):
                current_file = line[len(FILE_HEADER_PREFIX) + 1:].strip()
                line_number = 0
            elif line.startswith(ADDED_LINE_PREFIX):
                line_number += 1
                code = line[len(ADDED_LINE_PREFIX):]
                for rule in self.rules.check_line(code):
                    findings.append(Finding(
                        file=current_file,
                        line=line_number,
                        message=rule.message,
                        rule_id=rule.rule_id,
                        severity=rule.severity,
                    ))

        logger.debug(f"Found {len(findings)} findings")
        return findings


def analyze(diff_text: str, rules_engine: Optional[RulesEngine] = None) -> list[Finding]:
    """Analyze diff text with a fresh analyzer."""
    return DiffAnalyzer(rules_engine).analyze(diff_text)
