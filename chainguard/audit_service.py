"""
Audit Service

Orchestrates one audit: asks the AI collaborator (if any) for its findings,
runs the static core, scores and renders the combined report and hands it to
the report store. Collaborator failures degrade the result instead of failing
the audit.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from chainguard.aggregator import FindingAggregator
from chainguard.ai_findings import AIAnalysis, AIAnalysisProvider, ReportStore
from chainguard.config_manager import ConfigManager, build_registry
from chainguard.contract_parser import extract_metadata
from chainguard.models import AuditReport
from chainguard.registry import AnalyzerRegistry, default_registry
from chainguard.report_renderer import ReportFormat, ReportRenderer
from chainguard.scoring import ScoringEngine

logger = logging.getLogger(__name__)

DEFAULT_AI_TIMEOUT = 120.0


def contract_hash(source: str) -> str:
    """'0x'-prefixed SHA-256 of the source text, tying a report to the code it covers."""
    return '0x' + hashlib.sha256(source.encode('utf-8')).hexdigest()


@dataclass
class AuditResult:
    """Outcome of AuditService.audit"""
    report: AuditReport
    content_id: Optional[str] = None
    rendered: Dict[str, str] = field(default_factory=dict)


class AuditService:
    """Runs the static core together with the optional collaborators."""

    def __init__(self, registry: Optional[AnalyzerRegistry] = None,
                 ai_provider: Optional[AIAnalysisProvider] = None,
                 store: Optional[ReportStore] = None,
                 renderer: Optional[ReportRenderer] = None,
                 scoring: Optional[ScoringEngine] = None,
                 ai_timeout: float = DEFAULT_AI_TIMEOUT,
                 formats: Iterable[ReportFormat] = (ReportFormat.JSON, ReportFormat.MARKDOWN),
                 parallel: bool = False,
                 max_workers: Optional[int] = None):
        self.registry = registry or default_registry()
        self.ai_provider = ai_provider
        self.store = store
        self.renderer = renderer or ReportRenderer()
        self.scoring = scoring or ScoringEngine()
        self.aggregator = FindingAggregator()
        self.ai_timeout = ai_timeout
        self.formats = tuple(ReportFormat.coerce(f) for f in formats)
        self.parallel = parallel
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, config_manager: ConfigManager,
                    ai_provider: Optional[AIAnalysisProvider] = None,
                    store: Optional[ReportStore] = None,
                    parallel: Optional[bool] = None) -> "AuditService":
        """Service wired from configuration; ``parallel`` overrides the configured value when given."""
        config = config_manager.config
        return cls(
            registry=build_registry(config_manager),
            ai_provider=ai_provider,
            store=store,
            ai_timeout=config.ai_timeout,
            parallel=config.parallel_analysis if parallel is None else parallel,
            max_workers=config.max_workers,
        )

    async def audit(self, source: str, language: str = "solidity",
                    name: Optional[str] = None) -> AuditResult:
        ai_analysis, degraded = await self._run_ai(source, language)

        report = await asyncio.to_thread(
            self.analyze, source, language, ai_analysis, name, degraded
        )

        content_id = await self._store(report)
        rendered = {fmt.value: self.renderer.render(report, fmt) for fmt in self.formats}

        logger.info(
            f"Audit completed: score {report.score.security_score}, "
            f"risk {report.score.overall_risk.value}, "
            f"{report.findings.total} vulnerabilities"
        )
        return AuditResult(report=report, content_id=content_id, rendered=rendered)

    def analyze(self, source: str, language: str = "solidity",
                ai_analysis: Optional[AIAnalysis] = None,
                name: Optional[str] = None,
                degraded: bool = False) -> AuditReport:
        """Synchronous core: static analysis, aggregation and scoring."""
        language = (language or "solidity").lower()
        if self.registry.supports(language):
            outcomes = self.registry.run(source, parallel=self.parallel, max_workers=self.max_workers)
        else:
            logger.info(f"No pattern analyzers for {language}; reporting metadata only")
            outcomes = []

        ai_findings = ai_analysis.findings if ai_analysis else []
        aggregated = self.aggregator.aggregate(outcomes, ai_findings)
        score = self.scoring.score(aggregated.vulnerabilities)

        notes = [f"Analyzer {o.analyzer} failed: {o.error}" for o in outcomes if o.error]
        if degraded:
            notes.append("AI analysis unavailable; static analysis only")
        elif ai_analysis is not None:
            notes.extend(self.scoring.cross_check(
                score, ai_analysis.security_score, ai_analysis.overall_risk
            ))

        return AuditReport(
            findings=aggregated,
            score=score,
            metadata=extract_metadata(source, language, name=name),
            degraded=degraded,
            notes=tuple(notes),
            contract_hash=contract_hash(source),
            summary=ai_analysis.summary if ai_analysis else "",
            recommendations=tuple(ai_analysis.recommendations) if ai_analysis else (),
        )

    async def _run_ai(self, source: str, language: str) -> Tuple[Optional[AIAnalysis], bool]:
        if self.ai_provider is None:
            return None, False
        try:
            analysis = await asyncio.wait_for(
                self.ai_provider.analyze(source, language), timeout=self.ai_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"AI analysis timed out after {self.ai_timeout}s, continuing with static analysis")
            return None, True
        except Exception as e:
            logger.warning(f"AI analysis failed, continuing with static analysis: {e}")
            return None, True

        if analysis.parse_error:
            logger.warning("AI response could not be parsed, continuing with static analysis")
            return None, True
        return analysis, False

    async def _store(self, report: AuditReport) -> Optional[str]:
        if self.store is None:
            return None
        try:
            return await self.store.store(report.canonical_json())
        except Exception as e:
            logger.warning(f"Report storage failed, continuing with local report: {e}")
            return None
