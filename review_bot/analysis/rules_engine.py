"""Rules engine for line-level style checks."""

import re
import logging
from pathlib import Path
from typing import Optional
from abc import ABC, abstractmethod

import yaml

from review_bot.github.models import Severity

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "review_rules.yaml"


class Rule(ABC):
    """Base class for line-level rules.

    A rule looks at the text of one added line, without the leading ``+``,
    and says whether it matches. Rules hold no state between lines.
    """

    rule_id: str = ""
    name: str = ""
    message: str = ""
    default_severity: Severity = Severity.WARNING

    def __init__(self, severity: Optional[Severity] = None):
        self.severity = severity or self.default_severity

    @abstractmethod
    def matches(self, code: str) -> bool:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rule_id}, severity={self.severity.value})"


class ConsoleLogRule(Rule):
    """TS001: Debug output left in production code."""

    rule_id = "TS001"
    name = "console_log"
    message = "Avoid using console.log in production code"

    def matches(self, code: str) -> bool:
        return "console.log" in code


class AnyTypeRule(Rule):
    """TS002: Loose ``any`` annotations."""

    rule_id = "TS002"
    name = "any_type"
    message = 'Avoid using the "any" type. Specify a more precise type instead'

    def matches(self, code: str) -> bool:
        return ": any" in code


class NonNullAssertionRule(Rule):
    """TS003: Non-null assertions."""

    rule_id = "TS003"
    name = "non_null_assertion"
    message = "Avoid using non-null assertions (!). Use optional chaining (?.) instead"

    def matches(self, code: str) -> bool:
        return "!." in code or code.endswith("!")


class UntypedUseStateRule(Rule):
    """TS004: useState without a generic type parameter."""

    rule_id = "TS004"
    name = "untyped_use_state"
    message = "Specify explicit type for useState"

    def matches(self, code: str) -> bool:
        return "useState(" in code and "useState<" not in code


class InlineStyleRule(Rule):
    """TS005: Inline style objects in JSX."""

    rule_id = "TS005"
    name = "inline_style"
    message = "Avoid inline styles. Use styled-components or CSS modules instead"

    def matches(self, code: str) -> bool:
        return "style={{" in code


class HardcodedStringRule(Rule):
    """TS006: Long string literals that probably need translation."""

    rule_id = "TS006"
    name = "hardcoded_string"
    message = "Consider using internationalization for user-facing strings"
    default_severity = Severity.INFO

    PATTERN = re.compile(r'"[A-Za-z\s]{10,}"')

    def matches(self, code: str) -> bool:
        return bool(self.PATTERN.search(code))


class TodoCommentRule(Rule):
    """TS007: Leftover TODOs."""

    rule_id = "TS007"
    name = "todo_comment"
    message = "TODO found. Consider creating an issue instead"
    default_severity = Severity.INFO

    def matches(self, code: str) -> bool:
        return "todo" in code.lower()


class RulesEngine:
    """Engine for loading and applying line-level rules."""

    # Evaluation order; findings on one line come out in this order
    RULE_CLASSES = {
        "console_log": ConsoleLogRule,
        "any_type": AnyTypeRule,
        "non_null_assertion": NonNullAssertionRule,
        "untyped_use_state": UntypedUseStateRule,
        "inline_style": InlineStyleRule,
        "hardcoded_string": HardcodedStringRule,
        "todo_comment": TodoCommentRule,
    }

    def __init__(self, config_path: Optional[str | Path] = None):
        self.rules: list[Rule] = []

        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH
        self._load_config(config_path)

    def _load_config(self, config_path: str | Path) -> None:
        config_path = Path(config_path)
        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            self._load_defaults()
            return

        with open(config_path) as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict) or not isinstance(config.get("rules", []), list):
            logger.warning(f"Invalid config in {config_path}: expected a 'rules' list, using defaults")
            self._load_defaults()
            return

        settings: dict[str, dict] = {}
        for rule_config in config.get("rules", []):
            if not isinstance(rule_config, dict):
                logger.warning(f"Invalid rule entry: {rule_config!r}")
                continue
            name = rule_config.get("name")
            if name not in self.RULE_CLASSES:
                logger.warning(f"Unknown rule: {name}")
                continue
            severity = rule_config.get("severity")
            if severity and severity not in {s.value for s in Severity}:
                logger.warning(f"Unknown severity {severity!r} for rule {name}, ignoring entry")
                continue
            settings[name] = rule_config

        for name, rule_class in self.RULE_CLASSES.items():
            rule_config = settings.get(name, {})
            if not rule_config.get("enabled", True):
                continue
            severity = rule_config.get("severity")
            self.rules.append(rule_class(severity=Severity(severity) if severity else None))

        logger.info(f"Loaded {len(self.rules)} rules from {config_path}")

    def _load_defaults(self) -> None:
        self.rules = [rule_class() for rule_class in self.RULE_CLASSES.values()]

    def check_line(self, code: str) -> list[Rule]:
        """Return every rule that matches a line, in evaluation order."""
        return [rule for rule in self.rules if rule.matches(code)]
