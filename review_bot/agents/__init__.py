"""Review workflow."""

from .orchestrator import ReviewOrchestrator

__all__ = ["ReviewOrchestrator"]
