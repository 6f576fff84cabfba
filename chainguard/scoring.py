"""
Scoring Engine

Turns a finding list into a 0-100 security score and an overall risk level.
The engine's result is authoritative; scores self-reported by the AI
collaborator are only cross-checked against it.
"""

import logging
from typing import Dict, List, Optional, Sequence, Union

from chainguard.models import SEVERITY_ORDER, Finding, ScoreResult, Severity

logger = logging.getLogger(__name__)

MAX_SCORE = 100
MIN_SCORE = 0

SEVERITY_DEDUCTIONS: Dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}


class ScoringEngine:
    """Computes security score and overall risk."""

    def __init__(self, deductions: Optional[Dict[Severity, int]] = None):
        self.deductions = dict(deductions or SEVERITY_DEDUCTIONS)

    def score(self, findings: Sequence[Finding]) -> ScoreResult:
        return ScoreResult(
            security_score=self.security_score(findings),
            overall_risk=self.overall_risk(findings),
        )

    def security_score(self, findings: Sequence[Finding]) -> int:
        score = MAX_SCORE
        for finding in findings:
            score -= self.deductions.get(finding.severity, 0)
        return max(MIN_SCORE, min(MAX_SCORE, score))

    def overall_risk(self, findings: Sequence[Finding]) -> Severity:
        present = {finding.severity for finding in findings}
        for severity in SEVERITY_ORDER:
            if severity in present:
                return severity
        return Severity.LOW

    def cross_check(self, result: ScoreResult,
                    reported_score: Optional[Union[int, float]] = None,
                    reported_risk: Optional[Union[Severity, str]] = None) -> List[str]:
        """Describe where the AI's self-reported score or risk disagrees."""
        notes = []
        if reported_score is not None:
            try:
                reported = int(round(float(reported_score)))
            except (TypeError, ValueError):
                notes.append(f"AI reported a non-numeric security score: {reported_score!r}")
            else:
                if reported != result.security_score:
                    notes.append(
                        f"AI reported security score {reported}, "
                        f"engine computed {result.security_score}"
                    )
        if reported_risk is not None:
            label = reported_risk.value if isinstance(reported_risk, Severity) else str(reported_risk).upper()
            if label != result.overall_risk.value:
                notes.append(
                    f"AI reported overall risk {label}, "
                    f"engine computed {result.overall_risk.value}"
                )
        for note in notes:
            logger.info(note)
        return notes
