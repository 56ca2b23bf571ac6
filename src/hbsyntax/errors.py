"""Error types with formatted source context."""

from __future__ import annotations

from hbsyntax.tokens import Location


class ScanError(Exception):
    """Raised when no scanner rule matches the remaining input."""

    def __init__(self, message: str, location: Location, source: str) -> None:
        self.message = message
        self.location = location
        self.source = source
        super().__init__(self.format())

    @property
    def line(self) -> int:
        return self.location.first_line

    @property
    def column(self) -> int:
        """1-based column of the offending text."""
        return self.location.first_column + 1

    def format(self, filename: str = "template.hbs") -> str:
        lines = self.source.split("\n")
        line_idx = self.line - 1
        col = self.column

        if 0 <= line_idx < len(lines):
            source_line = lines[line_idx].rstrip("\r")
        else:
            source_line = ""

        # Underline to the end of the line, at least one caret
        underline_len = max(1, len(source_line) - col + 1)

        pad = " " * (col - 1)
        carets = "^" * underline_len

        line_num = str(self.line)
        gutter_width = len(line_num) + 1

        blank_gutter = " " * gutter_width + "|"
        line_gutter = f"{line_num:>{gutter_width - 1}} |"

        return (
            f"error: {self.message}\n"
            f"{' ' * gutter_width}--> {filename}:{self.line}:{col}\n"
            f"{blank_gutter}\n"
            f"{line_gutter} {source_line}\n"
            f"{blank_gutter} {pad}{carets}"
        )
