"""
Access Control Analyzer

Detects administrative functions that lack an access-control guard, contracts
with admin functions but no access-control mechanism at all, and tx.origin
usage.
"""

import re
from typing import List

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity

ADMIN_FUNCTION_PATTERNS = [
    re.compile(r'function\s+(?:set|update|change)\w+', re.IGNORECASE),
    re.compile(r'function\s+(?:configure|initialize|pause|unpause|withdraw|destroy|kill)', re.IGNORECASE),
]

ACCESS_CONTROL_PATTERNS = [
    re.compile(r'onlyOwner', re.IGNORECASE),
    re.compile(r'onlyAdmin', re.IGNORECASE),
    re.compile(r'require\(\s*msg\.sender\s*==\s*owner', re.IGNORECASE),
    re.compile(r'require\(\s*msg\.sender\s*==\s*admin', re.IGNORECASE),
    re.compile(r'modifier\s+only\w+', re.IGNORECASE),
]

FUNCTION_NAME = re.compile(r'function\s+(\w+)', re.IGNORECASE)
TX_ORIGIN = re.compile(r'tx\.origin')


class AccessControlAnalyzer(BaseAnalyzer):
    """Detects missing or weak access control."""

    name = "Access Control Analyzer"

    # Lines, starting at the function header, searched for a guard.
    ACCESS_CONTROL_LOOKAHEAD = 10

    def __init__(self, lookahead: int = ACCESS_CONTROL_LOOKAHEAD):
        self.lookahead = lookahead

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        code = '\n'.join(code_lines)
        vulnerabilities: List[Finding] = []

        for i, line in enumerate(code_lines):
            if not self._is_admin_function(line):
                continue
            window = code_lines[i:i + self.lookahead]
            if any(self._has_access_control(w) for w in window):
                continue
            function_name = FUNCTION_NAME.search(line).group(1)
            vulnerabilities.append(self._finding(
                'Access Control',
                Severity.MEDIUM,
                f"Administrative function '{function_name}' lacks access control",
                'Add onlyOwner or appropriate access control modifier',
                index=i,
                raw_lines=raw_lines,
                location=f"function {function_name}",
            ))

        if TX_ORIGIN.search(code):
            vulnerabilities.append(self._finding(
                'Access Control',
                Severity.MEDIUM,
                'Use of tx.origin for authorization',
                'Use msg.sender instead of tx.origin',
            ))

        has_admin_functions = self._is_admin_function(code)
        if has_admin_functions and not self._has_access_control(code):
            vulnerabilities.append(self._finding(
                'Access Control',
                Severity.HIGH,
                'Contract has administrative functions but no access control mechanism',
                'Implement Ownable or AccessControl pattern from OpenZeppelin',
            ))

        return AnalysisOutcome.from_findings(self.name, vulnerabilities)

    def _is_admin_function(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in ADMIN_FUNCTION_PATTERNS)

    def _has_access_control(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in ACCESS_CONTROL_PATTERNS)
