"""
tx.origin Analyzer

``tx.origin`` is the externally owned account that started the transaction,
so authorizing on it lets any contract the owner interacts with act as the
owner.
"""

import re
from typing import List

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity

TX_ORIGIN = re.compile(r'tx\.origin')
TX_ORIGIN_AUTH = re.compile(r'require\s*\(.*tx\.origin|if\s*\(.*tx\.origin|tx\.origin\s*[!=]=')


class TxOriginAnalyzer(BaseAnalyzer):
    """Detects authorization based on tx.origin."""

    name = "tx.origin Analyzer"

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        vulnerabilities: List[Finding] = []

        for i, line in enumerate(code_lines):
            if not TX_ORIGIN.search(line):
                continue
            if TX_ORIGIN_AUTH.search(line):
                vulnerabilities.append(self._finding(
                    'tx.origin Authentication',
                    Severity.HIGH,
                    'tx.origin used for authorization',
                    'Use msg.sender instead of tx.origin for authorization',
                    index=i,
                    raw_lines=raw_lines,
                    details='A malicious contract called by the owner can pass a tx.origin check',
                ))
            else:
                vulnerabilities.append(self._finding(
                    'tx.origin Usage',
                    Severity.LOW,
                    'tx.origin referenced',
                    'Prefer msg.sender unless the transaction originator is explicitly required',
                    index=i,
                    raw_lines=raw_lines,
                ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)
