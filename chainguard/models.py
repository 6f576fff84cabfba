"""
Data model shared by the analyzers, the aggregator, the scoring engine and
the report renderer.

All entities are created fresh per analysis request and are immutable once
produced. Serialization uses camelCase keys so the JSON artifact matches what
downstream consumers (storage, signing, the web UI) already read.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from chainguard.exceptions import InvalidFindingError


class Severity(Enum):
    """Ordinal urgency label, CRITICAL highest."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Sort rank: CRITICAL=0 ... LOW=3."""
        return SEVERITY_ORDER.index(self)

    @classmethod
    def coerce(cls, value: Union["Severity", str]) -> "Severity":
        """Turn a Severity or its (case-insensitive) name into a Severity."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise InvalidFindingError(f"Unknown severity: {value!r}")


SEVERITY_ORDER: Tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
)


class FindingSource(Enum):
    """Provenance of a finding."""
    STATIC = "static"
    AI = "ai"


@dataclass(frozen=True)
class Finding:
    """One detected issue."""
    type: str
    severity: Severity
    description: str
    recommendation: str = ""
    line: Optional[int] = None
    snippet: Optional[str] = None
    source: FindingSource = FindingSource.STATIC
    analyzer: Optional[str] = None
    location: Optional[str] = None
    details: Optional[str] = None
    estimated_savings: Optional[str] = None

    def __post_init__(self):
        if not self.type:
            raise InvalidFindingError("Finding requires a type")
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, 'severity', Severity.coerce(self.severity))
        if not isinstance(self.source, FindingSource):
            try:
                object.__setattr__(self, 'source', FindingSource(self.source))
            except ValueError:
                raise InvalidFindingError(f"Unknown finding source: {self.source!r}")
        if self.line is not None and (not isinstance(self.line, int) or isinstance(self.line, bool) or self.line < 1):
            raise InvalidFindingError(f"Line must be a positive integer, got {self.line!r}")

    def dedup_key(self) -> str:
        """Key used by the aggregator to drop repeated findings."""
        return f"{self.type}-{self.line or 'general'}-{self.description}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'type': self.type,
            'severity': self.severity.value,
            'description': self.description,
            'recommendation': self.recommendation,
            'source': self.source.value,
        }
        optional = {
            'line': self.line,
            'snippet': self.snippet,
            'analyzer': self.analyzer,
            'location': self.location,
            'details': self.details,
            'estimatedSavings': self.estimated_savings,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of running one analyzer over one source text."""
    analyzer: str
    vulnerable: bool
    vulnerabilities: Tuple[Finding, ...] = ()
    severity: Optional[Severity] = None
    issues: Tuple[Finding, ...] = ()
    error: Optional[str] = None

    @classmethod
    def from_findings(cls, analyzer: str, vulnerabilities: List[Finding],
                      issues: Optional[List[Finding]] = None) -> "AnalysisOutcome":
        """Build an outcome whose aggregate severity is the worst finding's."""
        return cls(
            analyzer=analyzer,
            vulnerable=bool(vulnerabilities),
            vulnerabilities=tuple(vulnerabilities),
            severity=worst_severity(vulnerabilities),
            issues=tuple(issues or ()),
        )

    @classmethod
    def failed(cls, analyzer: str, error: str) -> "AnalysisOutcome":
        """Outcome recorded for an analyzer that raised; counts as no findings."""
        return cls(analyzer=analyzer, vulnerable=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'analyzer': self.analyzer,
            'vulnerable': self.vulnerable,
            'vulnerabilities': [f.to_dict() for f in self.vulnerabilities],
            'severity': self.severity.value if self.severity else 'NONE',
            'issues': [f.to_dict() for f in self.issues],
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass(frozen=True)
class AggregatedReport:
    """Deduplicated, severity-sorted findings with their counts."""
    vulnerabilities: Tuple[Finding, ...]
    severity_counts: Dict[str, int]
    category_counts: Dict[str, int]
    optimizations: Tuple[Finding, ...] = ()

    @property
    def total(self) -> int:
        return len(self.vulnerabilities)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vulnerabilities': [f.to_dict() for f in self.vulnerabilities],
            'severityCounts': dict(self.severity_counts),
            'categoryCounts': dict(self.category_counts),
            'optimizations': [f.to_dict() for f in self.optimizations],
        }


@dataclass(frozen=True)
class ScoreResult:
    """Numeric score and discrete risk level derived from a finding list."""
    security_score: int
    overall_risk: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'securityScore': self.security_score,
            'overallRisk': self.overall_risk.value,
        }


@dataclass(frozen=True)
class ContractMetadata:
    """Structural summary of a contract, produced by the contract parser."""
    language: str
    version: str = "unknown"
    contracts: Tuple[str, ...] = ()
    functions: Tuple[str, ...] = ()
    modifiers: Tuple[str, ...] = ()
    events: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    inheritance: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    name: Optional[str] = None
    pragmas: Dict[str, str] = field(default_factory=dict)
    structs: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'language': self.language,
            'version': self.version,
            'contractCount': len(self.contracts),
            'functionCount': len(self.functions),
            'modifierCount': len(self.modifiers),
            'eventCount': len(self.events),
            'structCount': len(self.structs),
            'imports': len(self.imports),
            'hasInheritance': bool(self.inheritance),
            'pragmas': dict(self.pragmas),
        }
        if self.name:
            data['name'] = self.name
        return data


@dataclass(frozen=True)
class AuditReport:
    """Canonical report model projected by every renderer format."""
    findings: AggregatedReport
    score: ScoreResult
    metadata: Optional[ContractMetadata] = None
    degraded: bool = False
    notes: Tuple[str, ...] = ()
    # '0x'-prefixed SHA-256 of the analysed source text
    contract_hash: Optional[str] = None
    summary: str = ""
    recommendations: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = self.score.to_dict()
        data['totalVulnerabilities'] = self.findings.total
        data.update(self.findings.to_dict())
        data['degraded'] = self.degraded
        data['notes'] = list(self.notes)
        if self.metadata is not None:
            data['metadata'] = self.metadata.to_dict()
        if self.contract_hash:
            data['contractHash'] = self.contract_hash
        if self.summary:
            data['summary'] = self.summary
        if self.recommendations:
            data['recommendations'] = list(self.recommendations)
        return data

    def canonical_json(self) -> str:
        """Deterministic serialization suitable for hashing or signing."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(',', ':'), ensure_ascii=False)


def worst_severity(findings) -> Optional[Severity]:
    """Highest severity present in ``findings``, or None for an empty list."""
    present = {f.severity for f in findings}
    for severity in SEVERITY_ORDER:
        if severity in present:
            return severity
    return None
