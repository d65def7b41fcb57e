"""Code analysis modules."""

from .diff_analyzer import DiffAnalyzer, analyze
from .rules_engine import RulesEngine
from .context import build_context_window

__all__ = ["DiffAnalyzer", "RulesEngine", "analyze", "build_context_window"]
