"""
Timestamp Dependence Analyzer

Miners can nudge ``block.timestamp`` by a few seconds. Using it in a branch is
harmless for coarse deadlines but exploitable when it feeds randomness.
"""

import re
from typing import List

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity

TIMESTAMP = re.compile(r'block\.timestamp|\bnow\b')
TIMESTAMP_CONDITION = re.compile(
    r'(?:if|require)\s*\(.*(?:block\.timestamp|\bnow\b)'
    r'|(?:block\.timestamp|\bnow\b)\s*(?:[<>]=?|==|!=)'
    r'|(?:[<>]=?|==|!=)\s*(?:block\.timestamp|\bnow\b)'
)
RANDOMNESS_CONTEXT = re.compile(r'random|\brand\b|lottery|winner', re.IGNORECASE)
DEADLINE_CONTEXT = re.compile(r'deadline|expir|auction|timeout', re.IGNORECASE)

BLOCK_NUMBER = re.compile(r'block\.number')
TIME_CONTEXT = re.compile(r'expir|deadline|timeout|duration', re.IGNORECASE)


class TimestampAnalyzer(BaseAnalyzer):
    """Detects branches that depend on the block timestamp."""

    name = "Timestamp Dependence Analyzer"

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        code = '\n'.join(code_lines)
        vulnerabilities: List[Finding] = []

        uses_randomness = bool(RANDOMNESS_CONTEXT.search(code))

        for i, line in enumerate(code_lines):
            if TIMESTAMP.search(line) and TIMESTAMP_CONDITION.search(line):
                if uses_randomness:
                    vulnerabilities.append(self._finding(
                        'Timestamp Dependence',
                        Severity.HIGH,
                        'Block timestamp used in a contract that derives randomness or picks winners',
                        'Use a verifiable randomness source (e.g. a VRF oracle) instead of block.timestamp',
                        index=i,
                        raw_lines=raw_lines,
                    ))
                elif DEADLINE_CONTEXT.search(line):
                    vulnerabilities.append(self._finding(
                        'Timestamp Dependence',
                        Severity.MEDIUM,
                        'Block timestamp used for a deadline or auction condition',
                        'Allow a tolerance of at least 15 seconds or use block numbers for critical timing',
                        index=i,
                        raw_lines=raw_lines,
                    ))
                else:
                    vulnerabilities.append(self._finding(
                        'Timestamp Dependence',
                        Severity.LOW,
                        'Block timestamp used in a conditional',
                        'Ensure the logic tolerates small timestamp manipulation by miners',
                        index=i,
                        raw_lines=raw_lines,
                    ))

            if BLOCK_NUMBER.search(line) and TIME_CONTEXT.search(line):
                vulnerabilities.append(self._finding(
                    'Block Number as Time',
                    Severity.LOW,
                    'block.number used to measure time',
                    'Block times vary; use block.timestamp for time measurements',
                    index=i,
                    raw_lines=raw_lines,
                ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)
