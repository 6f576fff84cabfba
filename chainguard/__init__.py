"""
ChainGuard: heuristic smart-contract static analysis.

A registry of pattern analyzers scans contract source text; the aggregator,
scoring engine and report renderer turn their findings into one ranked,
deduplicated report.
"""

__version__ = "1.0.0"

from chainguard.aggregator import FindingAggregator, format_report
from chainguard.models import (
    AggregatedReport,
    AnalysisOutcome,
    AuditReport,
    ContractMetadata,
    Finding,
    FindingSource,
    ScoreResult,
    Severity,
)
from chainguard.registry import AnalyzerRegistry, default_registry, run_static_analysis
from chainguard.report_renderer import ReportFormat, ReportRenderer
from chainguard.scoring import ScoringEngine

__all__ = [
    'AggregatedReport',
    'AnalysisOutcome',
    'AnalyzerRegistry',
    'AuditReport',
    'ContractMetadata',
    'Finding',
    'FindingAggregator',
    'FindingSource',
    'ReportFormat',
    'ReportRenderer',
    'ScoreResult',
    'ScoringEngine',
    'Severity',
    'default_registry',
    'format_report',
    'run_static_analysis',
]
