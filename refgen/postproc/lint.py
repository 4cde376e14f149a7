"""Normalises generated markdown before it is written to disk."""

from __future__ import annotations

from typing import List


class MarkdownLinter:
    """Collapses blank runs and separates headings and tables from surrounding text.

    Fenced code blocks are copied through untouched.
    """

    def lint(self, markdown: str) -> str:
        normalized = markdown.replace("\r\n", "\n").replace("\r", "\n")
        cleaned: List[str] = []
        in_code = False
        previous_kind = "blank"

        for line in normalized.split("\n"):
            stripped = line.rstrip()
            if stripped.lstrip().startswith("```"):
                if not in_code:
                    self._separate(cleaned)
                in_code = not in_code
                cleaned.append(stripped)
                previous_kind = "fence"
                continue
            if in_code:
                cleaned.append(line)
                continue

            if not stripped:
                if cleaned and cleaned[-1] != "":
                    cleaned.append("")
                previous_kind = "blank"
                continue

            kind = self._kind(stripped)
            if kind == "heading" or previous_kind in {"heading", "fence"}:
                self._separate(cleaned)
            elif kind == "table" and previous_kind not in {"table", "blank"}:
                self._separate(cleaned)
            elif previous_kind == "table" and kind != "table":
                self._separate(cleaned)

            cleaned.append(stripped)
            previous_kind = kind

        while cleaned and cleaned[-1] == "":
            cleaned.pop()

        return "\n".join(cleaned) + "\n"

    @staticmethod
    def _kind(line: str) -> str:
        if line.startswith("#"):
            return "heading"
        if line.lstrip().startswith("|"):
            return "table"
        return "text"

    @staticmethod
    def _separate(cleaned: List[str]) -> None:
        if cleaned and cleaned[-1] != "":
            cleaned.append("")
