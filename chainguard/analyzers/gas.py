"""
Gas Analyzer

Identifies gas optimization opportunities. Everything found here is reported
as an informational issue: a gas inefficiency is never a vulnerability, so
the outcome is never marked vulnerable and never affects the security score.
"""

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Set

from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, Severity
from chainguard.scope_resolver import function_span

logger = logging.getLogger(__name__)

LOOP_HEADER = re.compile(r'\b(?:for|while)\s*\(')
STORAGE_ACCESS = re.compile(r'storage\s+\w+|\.slot\b|\.offset\b')

STATE_VARIABLE = re.compile(
    r'^\s*(?:mapping\s*\(.*\)|u?int\d*|address(?:\s+payable)?|bool|bytes\d*|string)'
    r'(?:\s*\[\s*\d*\s*\])?(?:\s+(?:public|private|internal))*\s+(\w+)\s*(?:=[^;]*)?;'
)
CONSTANT_OR_IMMUTABLE = re.compile(r'\b(?:constant|immutable)\b')

LOCAL_DECLARATION = re.compile(
    r'^\s*(?:u?int\d*|address(?:\s+payable)?|bool|bytes\d*|string)(?:\s*\[\s*\])?'
    r'(?:\s+(?:memory|storage|calldata))?\s+(\w+)\s*(?:=|;)'
)
WORD = re.compile(r'\b\w+\b')

NARROW_INTEGER = re.compile(r'\bu?int(?:8|16|32)\b')
STRUCT_HEADER = re.compile(r'\bstruct\s+\w+')

PUBLIC_FUNCTION = re.compile(r'function\s+(\w+)\s*\([^)]*\)[^{;]*\bpublic\b')
CALL_SITE = re.compile(r'\b(\w+)\s*\(')

IMMUTABLE_CANDIDATE = re.compile(r'^\s*(?:u?int\d*|address|bool|bytes32)\s+public\s+(\w+)\s*;')
CONSTRUCTOR = re.compile(r'\bconstructor\s*\(')

MAP_INDEX_WRITE = re.compile(r'\w+\[\w+\]\s*=(?!=)')

# Map-index writes on one line above which batching is suggested.
MAX_STORAGE_WRITES_PER_LINE = 2


class GasAnalyzer(BaseAnalyzer):
    """Reports gas optimization opportunities as issues."""

    name = "Gas Optimizer"

    def __init__(self):
        self.line_patterns = self._initialize_line_patterns()

    def _initialize_line_patterns(self) -> List[Dict[str, Any]]:
        """Single-line checks that need no surrounding context."""
        return [
            {
                'pattern': re.compile(r'for\s*\(.*\.length'),
                'type': 'Unbounded Loop',
                'severity': Severity.MEDIUM,
                'description': 'Loop bound reads a dynamic array length on every iteration',
                'recommendation': 'Cache the array length in a local variable and bound the loop size',
                'estimated_savings': '~100 gas per iteration',
            },
            {
                'pattern': re.compile(r'==.*string|string.*=='),
                'exclude': re.compile(r'keccak256'),
                'type': 'String Comparison',
                'severity': Severity.LOW,
                'description': 'Direct string comparison',
                'recommendation': 'Compare keccak256(abi.encodePacked(a)) == keccak256(abi.encodePacked(b))',
                'estimated_savings': '~500 gas',
            },
        ]

    def check(self, source: str) -> AnalysisOutcome:
        raw_lines, code_lines = self._split(source)
        code = '\n'.join(code_lines)
        issues: List[Finding] = []

        for i, line in enumerate(code_lines):
            for entry in self.line_patterns:
                if not entry['pattern'].search(line):
                    continue
                if 'exclude' in entry and entry['exclude'].search(line):
                    continue
                issues.append(self._finding(
                    entry['type'],
                    entry['severity'],
                    entry['description'],
                    entry['recommendation'],
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings=entry['estimated_savings'],
                ))

            if len(MAP_INDEX_WRITE.findall(line)) > MAX_STORAGE_WRITES_PER_LINE:
                issues.append(self._finding(
                    'Multiple Storage Writes',
                    Severity.MEDIUM,
                    'Several storage writes on one line',
                    'Batch the updates in memory and write storage once',
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings='~5000 gas per avoided write',
                ))

        issues.extend(self._storage_reads_in_loops(raw_lines, code_lines))
        issues.extend(self._unused_variables(raw_lines, code_lines))
        issues.extend(self._inefficient_types(raw_lines, code_lines))
        issues.extend(self._external_candidates(raw_lines, code_lines, code))
        issues.extend(self._immutable_candidates(raw_lines, code_lines))

        # Keep source order across the individual passes.
        issues.sort(key=lambda f: f.line or 0)
        logger.debug(f"Gas analysis found {len(issues)} optimization opportunities")
        return AnalysisOutcome.from_findings(self.name, [], issues)

    def _depths(self, code_lines: List[str]) -> List[int]:
        """Brace depth at the start of each line."""
        depths = []
        depth = 0
        for line in code_lines:
            depths.append(depth)
            depth += line.count('{') - line.count('}')
        return depths

    def _state_variables(self, code_lines: List[str]) -> Set[str]:
        depths = self._depths(code_lines)
        names = set()
        for line, depth in zip(code_lines, depths):
            if depth != 1 or CONSTANT_OR_IMMUTABLE.search(line):
                continue
            match = STATE_VARIABLE.match(line)
            if match:
                names.add(match.group(1))
        return names

    def _storage_reads_in_loops(self, raw_lines, code_lines) -> List[Finding]:
        state_variables = self._state_variables(code_lines)
        state_pattern = None
        if state_variables:
            state_pattern = re.compile(r'\b(?:' + '|'.join(sorted(state_variables)) + r')\b')

        found = []
        for i, line in enumerate(code_lines):
            if not LOOP_HEADER.search(line):
                continue
            end = function_span(raw_lines, i)
            body = code_lines[i + 1:end + 1]
            reads_storage = any(
                STORAGE_ACCESS.search(b) or (state_pattern and state_pattern.search(b))
                for b in body
            )
            if reads_storage:
                found.append(self._finding(
                    'Storage Read in Loop',
                    Severity.MEDIUM,
                    'State variable accessed inside a loop body',
                    'Cache storage values in memory before the loop',
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings='~2100 gas per iteration',
                ))
        return found

    def _unused_variables(self, raw_lines, code_lines) -> List[Finding]:
        last_seen: Dict[str, int] = {}
        for i, line in enumerate(code_lines):
            for word in WORD.findall(line):
                last_seen[word] = i

        depths = self._depths(code_lines)
        found = []
        for i, line in enumerate(code_lines):
            if depths[i] < 2:
                continue
            match = LOCAL_DECLARATION.match(line)
            if not match:
                continue
            name = match.group(1)
            if last_seen.get(name) == i and len(re.findall(rf'\b{name}\b', line)) == 1:
                found.append(self._finding(
                    'Unused Variable',
                    Severity.LOW,
                    f"Local variable '{name}' is declared but never used",
                    'Remove the unused variable',
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings='~200 gas',
                ))
        return found

    def _inefficient_types(self, raw_lines, code_lines) -> List[Finding]:
        in_struct = set()
        for i, line in enumerate(code_lines):
            if STRUCT_HEADER.search(line):
                in_struct.update(range(i, function_span(raw_lines, i) + 1))

        found = []
        for i, line in enumerate(code_lines):
            if i in in_struct or 'packed' in line:
                continue
            if NARROW_INTEGER.search(line):
                found.append(self._finding(
                    'Inefficient Type',
                    Severity.LOW,
                    'Integer narrower than 256 bits used outside a packed struct',
                    'Use uint256 unless the value is packed with its neighbours',
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings='~20 gas per operation',
                ))
        return found

    def _external_candidates(self, raw_lines, code_lines, code: str) -> List[Finding]:
        call_counts = Counter(CALL_SITE.findall(code))
        found = []
        for i, line in enumerate(code_lines):
            match = PUBLIC_FUNCTION.search(line)
            if match and call_counts[match.group(1)] <= 1:
                found.append(self._finding(
                    'Function Visibility',
                    Severity.LOW,
                    f"Public function '{match.group(1)}' is never called internally",
                    'Declare the function external',
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings='~100 gas per call',
                ))
        return found

    def _immutable_candidates(self, raw_lines, code_lines) -> List[Finding]:
        constructor_lines = set()
        for i, line in enumerate(code_lines):
            if CONSTRUCTOR.search(line):
                constructor_lines.update(range(i, function_span(raw_lines, i) + 1))

        found = []
        for i, line in enumerate(code_lines):
            match = IMMUTABLE_CANDIDATE.match(line)
            if not match:
                continue
            assignment = re.compile(rf'\b{match.group(1)}\s*[+\-*/]?=(?!=)')
            assigned_at = [j for j, other in enumerate(code_lines) if assignment.search(other)]
            if len(assigned_at) == 1 and assigned_at[0] in constructor_lines:
                found.append(self._finding(
                    'State Variable',
                    Severity.LOW,
                    f"State variable '{match.group(1)}' is only set in the constructor",
                    'Declare it immutable',
                    index=i,
                    raw_lines=raw_lines,
                    estimated_savings='~2100 gas per read',
                ))
        return found
