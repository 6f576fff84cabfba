"""
Self-Destruct Analyzer

Finds ``selfdestruct``/``suicide`` calls and checks the enclosing function for
an owner guard. The function body is located with the scope resolver;
calls outside any recognised header are judged by their own block.
"""

import re
from typing import List

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity
from chainguard.scope_resolver import enclosing_block_start, enclosing_function_start, function_span

SELF_DESTRUCT = re.compile(r'selfdestruct\s*\(|suicide\s*\(')
SUICIDE = re.compile(r'suicide\s*\(')
OWNER_GUARD = re.compile(
    r'onlyOwner|onlyAdmin|require\(\s*msg\.sender|msg\.sender\s*==\s*owner|owner\s*==\s*msg\.sender'
)


class SelfDestructAnalyzer(BaseAnalyzer):
    """Detects unprotected contract destruction."""

    name = "Self-Destruct Analyzer"

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        vulnerabilities: List[Finding] = []

        for i, line in enumerate(code_lines):
            match = SELF_DESTRUCT.search(line)
            if not match:
                continue

            start = enclosing_function_start(code_lines, i)
            if start is None or function_span(code_lines, start) < i:
                # the nearest header closes before the call; use the call's own block
                start = enclosing_block_start(code_lines, i, match.start())
                if start is None:
                    start = i
            end = max(function_span(code_lines, start), i)
            body = '\n'.join(code_lines[start:end + 1])

            if OWNER_GUARD.search(body):
                vulnerabilities.append(self._finding(
                    'Self-Destruct Present',
                    Severity.MEDIUM,
                    'Contract can be destroyed by its owner',
                    'Consider whether permanent destruction is required; selfdestruct is deprecated since Solidity 0.8.18',
                    index=i,
                    raw_lines=raw_lines,
                ))
            else:
                vulnerabilities.append(self._finding(
                    'Unprotected Self-Destruct',
                    Severity.CRITICAL,
                    'selfdestruct can be called without an owner check',
                    'Restrict the function with onlyOwner or remove selfdestruct',
                    index=i,
                    raw_lines=raw_lines,
                    details='Anyone can destroy the contract and send its balance to an arbitrary address',
                ))

            if SUICIDE.search(line):
                vulnerabilities.append(self._finding(
                    'Deprecated Suicide',
                    Severity.LOW,
                    'suicide() is a deprecated alias of selfdestruct()',
                    'Replace suicide() with selfdestruct()',
                    index=i,
                    raw_lines=raw_lines,
                ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)
