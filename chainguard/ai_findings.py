"""
AI collaborator boundary.

The hosted model is an external collaborator: this module only defines the
interfaces the audit service talks to and the normalisation applied to what
comes back. Model output is untrusted input; every finding is validated here
before it reaches the aggregator.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chainguard.exceptions import InvalidFindingError
from chainguard.models import Finding, FindingSource, Severity

logger = logging.getLogger(__name__)

SEVERITY_ALIASES = {
    'CRITICAL': Severity.CRITICAL,
    'HIGH': Severity.HIGH,
    'MEDIUM': Severity.MEDIUM,
    'MODERATE': Severity.MEDIUM,
    'LOW': Severity.LOW,
    'INFO': Severity.LOW,
    'INFORMATIONAL': Severity.LOW,
    'NOTE': Severity.LOW,
}

_CODE_FENCE = re.compile(r'```(?:json)?\s*\n?')

AUDIT_PROMPT = """You are an expert smart contract security auditor. Analyze the following {language} smart contract for security vulnerabilities.

SMART CONTRACT CODE:
```{language}
{source}
```

Respond ONLY with valid JSON in this exact format (no markdown, no backticks):

{{
  "overallRisk": "LOW|MEDIUM|HIGH|CRITICAL",
  "securityScore": 0-100,
  "summary": "Brief 2-3 sentence overview of the contract and main findings",
  "vulnerabilities": [
    {{
      "type": "vulnerability type (e.g., Reentrancy, Access Control, etc.)",
      "severity": "LOW|MEDIUM|HIGH|CRITICAL",
      "description": "Detailed description of the vulnerability",
      "location": "Function or line reference",
      "recommendation": "How to fix this issue"
    }}
  ],
  "recommendations": [
    "List of general recommendations for improving the contract"
  ]
}}
"""


@dataclass
class AIAnalysis:
    """Normalised result of one AI analysis"""
    findings: List[Finding] = field(default_factory=list)
    overall_risk: Optional[str] = None
    security_score: Optional[float] = None
    summary: str = ""
    recommendations: List[str] = field(default_factory=list)
    parse_error: bool = False


class AIAnalysisProvider(ABC):
    """Something that can ask a language model about a contract."""

    @abstractmethod
    async def analyze(self, source: str, language: str) -> AIAnalysis:
        """Analyze ``source`` and return normalised findings."""


class CompletionAIProvider(AIAnalysisProvider):
    """
    Provider for text-completion models.

    Subclasses only implement ``complete``; prompting and the tolerant
    parsing of the answer happen here.
    """

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send ``prompt`` to the model and return its raw text answer."""

    async def analyze(self, source: str, language: str) -> AIAnalysis:
        response = await self.complete(build_prompt(source, language))
        analysis = parse_ai_response(response)
        logger.debug(f"AI analysis returned {len(analysis.findings)} finding(s)")
        return analysis


class ReportStore(ABC):
    """Content-addressed storage for finished reports."""

    @abstractmethod
    async def store(self, content: str) -> str:
        """Persist ``content`` and return its content identifier."""


def build_prompt(source: str, language: str = "solidity") -> str:
    return AUDIT_PROMPT.format(source=source, language=language)


def normalize_severity(value: Any) -> Optional[Severity]:
    if isinstance(value, Severity):
        return value
    if not isinstance(value, str):
        return None
    return SEVERITY_ALIASES.get(value.strip().upper())


def normalize_ai_finding(raw: Dict[str, Any]) -> Optional[Finding]:
    """
    Convert one raw AI vulnerability into a Finding.

    Returns None (and logs why) for entries that are not mappings, have no
    type, or carry a severity that cannot be mapped.
    """
    if not isinstance(raw, dict):
        logger.warning(f"Discarding AI finding that is not an object: {raw!r}")
        return None

    finding_type = str(raw.get('type') or '').strip()
    if not finding_type:
        logger.warning("Discarding AI finding without a type")
        return None

    severity = normalize_severity(raw.get('severity'))
    if severity is None:
        logger.warning(f"Discarding AI finding '{finding_type}' with unknown severity {raw.get('severity')!r}")
        return None

    line = raw.get('line')
    if not isinstance(line, int) or isinstance(line, bool) or line < 1:
        line = None

    try:
        return Finding(
            type=finding_type,
            severity=severity,
            description=str(raw.get('description') or ''),
            recommendation=str(raw.get('recommendation') or ''),
            line=line,
            snippet=raw.get('code') or None,
            source=FindingSource.AI,
            location=raw.get('location') or None,
        )
    except InvalidFindingError as e:
        logger.warning(f"Discarding malformed AI finding: {e}")
        return None


def parse_ai_response(text: str) -> AIAnalysis:
    """
    Parse the model's JSON answer, tolerating Markdown code fences.

    Malformed responses yield an empty AIAnalysis with ``parse_error`` set.
    """
    cleaned = _CODE_FENCE.sub('', text or '').strip()
    try:
        data = json.loads(cleaned)
        if not isinstance(data, dict) or not isinstance(data.get('vulnerabilities'), list):
            raise ValueError("Invalid analysis response format")
    except ValueError as e:
        logger.error(f"Failed to parse AI response: {e}")
        return AIAnalysis(
            summary='Failed to parse analysis results',
            recommendations=['Manual review required - automated analysis failed'],
            parse_error=True,
        )

    findings = []
    for raw in data['vulnerabilities']:
        finding = normalize_ai_finding(raw)
        if finding is not None:
            findings.append(finding)

    score = data.get('securityScore')
    if not isinstance(score, (int, float)) or isinstance(score, bool):
        score = None

    risk = data.get('overallRisk')
    recommendations = data.get('recommendations')
    return AIAnalysis(
        findings=findings,
        overall_risk=str(risk).upper() if risk else None,
        security_score=score,
        summary=str(data.get('summary') or ''),
        recommendations=[str(r) for r in recommendations] if isinstance(recommendations, list) else [],
    )
