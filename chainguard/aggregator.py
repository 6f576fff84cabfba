"""
Finding Aggregator

Merges the raw outcomes of every analyzer with findings from the AI
collaborator into one deduplicated, severity-sorted report.

Steps:
1. Flatten outcome vulnerabilities, tagging each with its analyzer
2. Append AI findings
3. Drop duplicates (first occurrence wins)
4. Stable sort by severity
5. Count by severity and by category
"""

import logging
from collections import Counter
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from chainguard.exceptions import AggregationError
from chainguard.models import (
    SEVERITY_ORDER,
    AggregatedReport,
    AnalysisOutcome,
    Finding,
    FindingSource,
)
from chainguard.registry import flatten_outcomes

logger = logging.getLogger(__name__)

SEVERITY_RANK = {severity: rank for rank, severity in enumerate(SEVERITY_ORDER)}


class FindingAggregator:
    """Deduplicates, ranks and counts findings."""

    def aggregate(self, static_outcomes: Sequence[AnalysisOutcome],
                  ai_findings: Optional[Sequence[Finding]] = None) -> AggregatedReport:
        """Build an AggregatedReport from analyzer outcomes and AI findings."""
        static_outcomes = list(static_outcomes or [])
        for outcome in static_outcomes:
            if not isinstance(outcome, AnalysisOutcome):
                raise AggregationError(
                    f"Expected AnalysisOutcome, got {type(outcome).__name__}"
                )

        static_findings = flatten_outcomes(static_outcomes)
        issues = [
            replace(issue, source=FindingSource.STATIC, analyzer=outcome.analyzer)
            for outcome in static_outcomes
            for issue in outcome.issues
        ]
        report = self.format_report(static_findings, ai_findings)
        return replace(report, optimizations=tuple(self.sort_findings(self.deduplicate(issues))))

    def format_report(self, static_findings: Sequence[Finding],
                      ai_findings: Optional[Sequence[Finding]] = None) -> AggregatedReport:
        """Aggregate findings that are already flattened and tagged."""
        static_findings = self._validate(static_findings, 'static')
        ai_findings = [
            replace(f, source=FindingSource.AI)
            for f in self._validate(ai_findings, 'AI')
        ]

        combined = static_findings + ai_findings
        unique = self.deduplicate(combined)
        ordered = self.sort_findings(unique)

        logger.debug(
            f"Aggregated {len(combined)} findings into {len(ordered)} "
            f"({len(combined) - len(ordered)} duplicates removed)"
        )
        return AggregatedReport(
            vulnerabilities=tuple(ordered),
            severity_counts=self.count_by_severity(ordered),
            category_counts=self.count_by_category(ordered),
        )

    def deduplicate(self, findings: Iterable[Finding]) -> List[Finding]:
        """Keep the first finding for each dedup key."""
        seen = set()
        unique = []
        for finding in findings:
            key = finding.dedup_key()
            if key in seen:
                logger.debug(f"Dropping duplicate finding {key}")
                continue
            seen.add(key)
            unique.append(finding)
        return unique

    def sort_findings(self, findings: List[Finding]) -> List[Finding]:
        """Stable sort, most severe first; unknown severities go last."""
        return sorted(findings, key=lambda f: SEVERITY_RANK.get(f.severity, len(SEVERITY_ORDER)))

    def count_by_severity(self, findings: Iterable[Finding]) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in SEVERITY_ORDER}
        for finding in findings:
            if finding.severity.value in counts:
                counts[finding.severity.value] += 1
        return counts

    def count_by_category(self, findings: Iterable[Finding]) -> Dict[str, int]:
        return dict(Counter(finding.type for finding in findings))

    def _validate(self, findings: Optional[Sequence[Finding]], label: str) -> List[Finding]:
        findings = list(findings or [])
        for finding in findings:
            if not isinstance(finding, Finding):
                raise AggregationError(
                    f"Expected Finding in {label} findings, got {type(finding).__name__}"
                )
        return findings


def format_report(static_findings: Sequence[Finding],
                  ai_findings: Optional[Sequence[Finding]] = None) -> AggregatedReport:
    """Module-level shortcut for ``FindingAggregator().format_report``."""
    return FindingAggregator().format_report(static_findings, ai_findings)
