"""
Integer Overflow/Underflow Analyzer

Solidity version-aware arithmetic checks: pre-0.8 contracts without SafeMath,
``unchecked`` blocks that switch the 0.8 protection off, underflow-prone
decrements and precision loss from multiplying before dividing.
"""

import re
from typing import List, Optional, Tuple

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity

PRAGMA_VERSION = re.compile(r'pragma\s+solidity\s+[\^~>=<\s]*(\d+)\.(\d+)(?:\.(\d+))?')
SAFE_MATH = re.compile(r'using\s+SafeMath|\.(?:add|sub|mul|div)\(')
UNCHECKED_BLOCK = re.compile(r'unchecked\s*\{')
STRING_LITERAL = re.compile(r'"[^"\n]*"|\'[^\'\n]*\'')
ARITHMETIC = re.compile(r'[\w)\]]\s*[+\-*/%]\s*[\w(]|\+\+|--|[+\-*/]=')
DIRECTIVE_LINE = re.compile(r'^\s*(?:import|pragma)\b')
MUL_BEFORE_DIV = re.compile(r'\*.*/')
DIV_BEFORE_MUL = re.compile(r'/.*\*')
DECREMENT_ASSIGN = re.compile(r'-=')

# First release with checked arithmetic by default
CHECKED_ARITHMETIC_VERSION = (0, 8)


def parse_solidity_version(source: str) -> Optional[Tuple[int, int, int]]:
    """(major, minor, patch) of the first ``pragma solidity``, or None."""
    match = PRAGMA_VERSION.search(source)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)


class OverflowAnalyzer(BaseAnalyzer):
    """Detects potential integer overflow and underflow."""

    name = "Integer Overflow Analyzer"

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        # String literals and import paths are not arithmetic.
        math_lines = [
            '' if DIRECTIVE_LINE.match(line) else STRING_LITERAL.sub('""', line)
            for line in code_lines
        ]
        code = '\n'.join(code_lines)
        vulnerabilities: List[Finding] = []

        version = parse_solidity_version(code)
        has_builtin_protection = version is not None and version[:2] >= CHECKED_ARITHMETIC_VERSION
        has_safe_math = bool(SAFE_MATH.search(code))
        has_arithmetic = any(ARITHMETIC.search(line) for line in math_lines)
        protected = has_builtin_protection or has_safe_math

        if has_arithmetic and not protected:
            version_label = '.'.join(str(part) for part in version) if version else 'unknown'
            vulnerabilities.append(self._finding(
                'Integer Overflow/Underflow',
                Severity.HIGH,
                f"Solidity {version_label} lacks overflow protection and SafeMath is not used",
                'Upgrade to Solidity 0.8+ or use SafeMath library',
            ))

        for i, line in enumerate(math_lines):
            if has_builtin_protection and UNCHECKED_BLOCK.search(line):
                vulnerabilities.append(self._finding(
                    'Integer Overflow/Underflow',
                    Severity.MEDIUM,
                    'Unchecked block bypasses overflow protection',
                    'Ensure unchecked arithmetic is intentional and safe',
                    index=i,
                    raw_lines=raw_lines,
                ))

            if MUL_BEFORE_DIV.search(line) and not DIV_BEFORE_MUL.search(line):
                vulnerabilities.append(self._finding(
                    'Precision Loss',
                    Severity.LOW,
                    'Multiplication before division can cause precision loss',
                    'Consider order of operations for better precision',
                    index=i,
                    raw_lines=raw_lines,
                ))

            if DECREMENT_ASSIGN.search(line) and not protected:
                vulnerabilities.append(self._finding(
                    'Integer Underflow',
                    Severity.MEDIUM,
                    'Subtraction without underflow protection',
                    'Add check: require(a >= b) before a -= b',
                    index=i,
                    raw_lines=raw_lines,
                ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)
