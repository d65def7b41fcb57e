"""Context windows around a commented line."""

from dataclasses import dataclass

DEFAULT_RADIUS = 3


@dataclass(frozen=True)
class ContextWindow:
    """A clamped slice of a file around a target line."""
    start_line: int
    end_line: int
    code: str

    @property
    def length(self) -> int:
        return self.end_line - self.start_line + 1

    @property
    def header(self) -> str:
        return f"@@ -{self.start_line},{self.length} +{self.start_line},{self.length} @@"

    @property
    def diff_hunk(self) -> str:
        return f"{self.header}\n{self.code}"


def build_context_window(file_text: str, line: int, radius: int = DEFAULT_RADIUS) -> ContextWindow:
    """
    Take ``radius`` lines either side of ``line``, clamped to the file.

    Args:
        file_text: Full contents of the file.
        line: 1-based target line.
        radius: Lines of context before and after.

    Returns:
        ContextWindow covering the clamped range.
    """
    file_lines = file_text.split("\n")
    start_line = max(1, line - radius)
    end_line = min(len(file_lines), line + radius)
    code = "\n".join(file_lines[start_line - 1:end_line])
    return ContextWindow(start_line=start_line, end_line=end_line, code=code)
