"""
Base class for pattern analyzers.

An analyzer is a stateless unit that detects one vulnerability class by
textual pattern matching. ``check`` is a pure function of the source text:
analyzers may run concurrently and in any order.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from chainguard.models import AnalysisOutcome, Finding, Severity
from chainguard.scope_resolver import strip_comments


class BaseAnalyzer(ABC):
    """Common plumbing for the pattern analyzers."""

    name: str = "Analyzer"
    languages: Tuple[str, ...] = ("solidity",)

    def supports(self, language: str) -> bool:
        return language.lower() in self.languages

    @abstractmethod
    def check(self, source: str) -> AnalysisOutcome:
        """Scan ``source`` and report what this analyzer detects."""

    def _split(self, source: str) -> Tuple[List[str], List[str]]:
        """
        Split source into (raw_lines, code_lines).

        ``code_lines`` have comments blanked and are what the patterns run
        against; ``raw_lines`` feed snippets and brace counting.
        """
        raw_lines = source.split('\n')
        code_lines = strip_comments(source).split('\n')
        return raw_lines, code_lines

    def _finding(self, type_: str, severity: Severity, description: str,
                 recommendation: str, index: Optional[int] = None,
                 raw_lines: Optional[List[str]] = None, **extra) -> Finding:
        """Build a finding; ``index`` is the 0-based line it points at."""
        line = None
        snippet = None
        if index is not None:
            line = index + 1
            if raw_lines is not None and index < len(raw_lines):
                snippet = raw_lines[index].strip()
        return Finding(
            type=type_,
            severity=severity,
            description=description,
            recommendation=recommendation,
            line=line,
            snippet=snippet,
            **extra,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
