"""
Reentrancy Analyzer

Flags external calls that are textually followed by state writes (a
Checks-Effects-Interactions violation) and contracts that move value without
any reentrancy guard.
"""

import re
from typing import List

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity

# '.send' must not match 'msg.sender'
EXTERNAL_CALL_PATTERNS = [
    re.compile(r'\.call\s*[({]'),
    re.compile(r'\.transfer\s*\('),
    re.compile(r'\.send\s*\('),
    re.compile(r'\.delegatecall\s*[({]'),
]

# Assignment or compound assignment; '==' and mapping '=>' are excluded.
STATE_WRITE_PATTERN = re.compile(r'\b\w+(?:\s*\[[^\]]*\])*(?:\.\w+)*\s*[+\-*/%]?=(?![=>])')

# Locals are not state; neither is the init clause of a for loop.
LOCAL_DECLARATION_PATTERN = re.compile(
    r'^\s*(?:u?int\d*|bool|address|bytes\d*|string)\b|\b(?:memory|calldata)\b|^\s*for\s*\('
)

VALUE_TRANSFER_PATTERN = re.compile(r'\.call\s*\{\s*value\s*:|\bpayable\b')


class ReentrancyAnalyzer(BaseAnalyzer):
    """Detects external calls made before state is updated."""

    name = "Reentrancy Analyzer"

    REENTRANCY_GUARD_MARKERS = [
        'nonReentrant',
        'noReentrancy',
        'ReentrancyGuard',
        'reentrancyGuard',
    ]

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        vulnerabilities: List[Finding] = []

        # Backward pass: does any state write occur strictly after line i?
        write_after = [False] * len(code_lines)
        seen_write = False
        for i in range(len(code_lines) - 1, -1, -1):
            write_after[i] = seen_write
            if self._is_state_write(code_lines[i]):
                seen_write = True

        for i, line in enumerate(code_lines):
            if self._is_external_call(line) and write_after[i]:
                vulnerabilities.append(self._finding(
                    'Reentrancy',
                    Severity.HIGH,
                    'External call detected before state change',
                    'Move state changes before external calls (Checks-Effects-Interactions pattern)',
                    index=i,
                    raw_lines=raw_lines,
                ))

        code = '\n'.join(code_lines)
        if VALUE_TRANSFER_PATTERN.search(code) and not self._has_guard(code):
            vulnerabilities.append(self._finding(
                'Reentrancy',
                Severity.MEDIUM,
                'Contract handles value transfers without reentrancy guard',
                'Consider using OpenZeppelin ReentrancyGuard',
            ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)

    def _is_external_call(self, line: str) -> bool:
        return any(pattern.search(line) for pattern in EXTERNAL_CALL_PATTERNS)

    def _is_state_write(self, line: str) -> bool:
        if not STATE_WRITE_PATTERN.search(line):
            return False
        if LOCAL_DECLARATION_PATTERN.search(line):
            return False
        return True

    def _has_guard(self, code: str) -> bool:
        return any(marker in code for marker in self.REENTRANCY_GUARD_MARKERS)
