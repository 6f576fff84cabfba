"""
Unchecked Call Analyzer

Low-level calls (call, send, delegatecall) return a success flag instead of
reverting. This analyzer flags the ones whose result is never looked at.
"""

import re
from typing import List

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity

LOW_LEVEL_CALL = re.compile(r'\.call\s*[({]')
SEND_CALL = re.compile(r'\.send\s*\(')
DELEGATE_CALL = re.compile(r'\.delegatecall\s*[({]')

SAME_LINE_CHECK = re.compile(r'require\s*\(|if\s*\(|\(\s*bool\s+\w+')
SUCCESS_CHECK = re.compile(r'require\s*\(.*success|if\s*\(.*success|assert\s*\(.*success')
DELEGATE_CHECK = re.compile(r'require\s*\(|\(\s*bool\b')

EXTERNAL_MEMBER_CALL = re.compile(r'\w+\(.*\)\.\w+\(')
TRY_STATEMENT = re.compile(r'\btry\s+')


class UncheckedCallAnalyzer(BaseAnalyzer):
    """Detects low-level calls whose return value is ignored."""

    name = "Unchecked Call Analyzer"

    # Lines after the call searched for a success check.
    UNCHECKED_CALL_LOOKAHEAD = 2
    # Lines before an external member call searched for a try statement.
    TRY_LOOKBACK = 2

    def __init__(self, lookahead: int = UNCHECKED_CALL_LOOKAHEAD,
                 lookback: int = TRY_LOOKBACK):
        self.lookahead = lookahead
        self.lookback = lookback

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        vulnerabilities: List[Finding] = []

        for i, line in enumerate(code_lines):
            if LOW_LEVEL_CALL.search(line) and not self._is_checked(code_lines, i):
                vulnerabilities.append(self._finding(
                    'Unchecked Call',
                    Severity.HIGH,
                    'Low-level call return value not checked',
                    'Always check return value: (bool success, ) = addr.call(...); require(success);',
                    index=i,
                    raw_lines=raw_lines,
                ))

            if SEND_CALL.search(line) and not self._is_checked(code_lines, i):
                vulnerabilities.append(self._finding(
                    'Unchecked Send',
                    Severity.MEDIUM,
                    'send() return value not checked',
                    'Use transfer() or check send() return value',
                    index=i,
                    raw_lines=raw_lines,
                ))

            if DELEGATE_CALL.search(line) and not DELEGATE_CHECK.search(line):
                vulnerabilities.append(self._finding(
                    'Unchecked Delegatecall',
                    Severity.CRITICAL,
                    'delegatecall return value not checked',
                    'Always check delegatecall success and validate target',
                    index=i,
                    raw_lines=raw_lines,
                ))

            if EXTERNAL_MEMBER_CALL.search(line) and not self._inside_try(code_lines, i):
                vulnerabilities.append(self._finding(
                    'External Call Without Error Handling',
                    Severity.LOW,
                    'External contract call without try-catch',
                    'Consider using try-catch for external calls',
                    index=i,
                    raw_lines=raw_lines,
                ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)

    def _is_checked(self, lines: List[str], index: int) -> bool:
        if SAME_LINE_CHECK.search(lines[index]):
            return True
        window = lines[index:index + self.lookahead + 1]
        return any(SUCCESS_CHECK.search(line) for line in window)

    def _inside_try(self, lines: List[str], index: int) -> bool:
        window = lines[max(0, index - self.lookback):index + 1]
        return any(TRY_STATEMENT.search(line) for line in window)
