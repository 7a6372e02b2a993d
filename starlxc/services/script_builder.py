"""Small line-oriented text builder for generated shell scripts and unit files."""
from contextlib import contextmanager
from typing import Iterator, List


class ScriptBuilder:
    """Accumulates lines with block indentation.

    Example:
        b = ScriptBuilder()
        with b.block('main() {', '}'):
            b.line('echo hi')
        text = b.render()
    """

    def __init__(self, indent: str = "  "):
        self._lines: List[str] = []
        self._indent = indent
        self._depth = 0

    def line(self, text: str = "") -> "ScriptBuilder":
        self._lines.append(f"{self._indent * self._depth}{text}" if text else "")
        return self

    def lines(self, *texts: str) -> "ScriptBuilder":
        for text in texts:
            self.line(text)
        return self

    def blank(self) -> "ScriptBuilder":
        if self._lines and self._lines[-1] != "":
            self._lines.append("")
        return self

    @contextmanager
    def block(self, opener: str, closer: str) -> Iterator["ScriptBuilder"]:
        self.line(opener)
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            self.line(closer)

    def render(self) -> str:
        return "\n".join(self._lines).rstrip("\n") + "\n"
