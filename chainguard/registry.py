"""
Analyzer Registry

Holds the ordered, immutable set of analyzers and runs all of them over one
source text. A fault in one analyzer is isolated: it is logged and recorded as
an empty outcome carrying the error, and the rest of the batch still runs.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Iterable, List, Optional

from chainguard.analyzers import ANALYZER_CLASSES
from chainguard.analyzers.base import BaseAnalyzer
from chainguard.models import AnalysisOutcome, Finding, FindingSource

logger = logging.getLogger(__name__)


class AnalyzerRegistry:
    """Ordered collection of analyzers."""

    def __init__(self, analyzers: Iterable[BaseAnalyzer]):
        self._analyzers = tuple(analyzers)

    @property
    def analyzers(self):
        return self._analyzers

    @property
    def names(self) -> List[str]:
        return [analyzer.name for analyzer in self._analyzers]

    def __len__(self) -> int:
        return len(self._analyzers)

    def __iter__(self):
        return iter(self._analyzers)

    def supports(self, language: str) -> bool:
        return any(analyzer.supports(language) for analyzer in self._analyzers)

    def run(self, source: str, parallel: bool = False,
            max_workers: Optional[int] = None) -> List[AnalysisOutcome]:
        """
        Run every analyzer over ``source``.

        Outcomes come back in registry order whether or not the analyzers ran
        in parallel.
        """
        if parallel and len(self._analyzers) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                outcomes = list(executor.map(lambda a: self._run_one(a, source), self._analyzers))
        else:
            outcomes = [self._run_one(analyzer, source) for analyzer in self._analyzers]

        failed = [o.analyzer for o in outcomes if o.error]
        if failed:
            logger.warning(f"{len(failed)} analyzer(s) failed: {', '.join(failed)}")
        return outcomes

    def _run_one(self, analyzer: BaseAnalyzer, source: str) -> AnalysisOutcome:
        try:
            return analyzer.check(source)
        except Exception as e:
            logger.exception(f"Analyzer {analyzer.name} failed")
            return AnalysisOutcome.failed(analyzer.name, str(e) or e.__class__.__name__)


def default_registry() -> AnalyzerRegistry:
    """Registry with every built-in analyzer at its default settings."""
    return AnalyzerRegistry(cls() for cls in ANALYZER_CLASSES.values())


def flatten_outcomes(outcomes: Iterable[AnalysisOutcome]) -> List[Finding]:
    """Vulnerabilities of all outcomes, tagged with their analyzer."""
    findings = []
    for outcome in outcomes:
        for finding in outcome.vulnerabilities:
            findings.append(replace(finding, source=FindingSource.STATIC, analyzer=outcome.analyzer))
    return findings


def run_static_analysis(source: str, language: str = "solidity",
                        registry: Optional[AnalyzerRegistry] = None) -> List[Finding]:
    """
    Run the registry over ``source`` and return the flattened findings.

    Languages no analyzer supports (Vyper, Rust) yield an empty list.
    """
    registry = registry or default_registry()
    language = (language or "solidity").lower()
    if not registry.supports(language):
        logger.info(f"No pattern analyzers for {language}; skipping static analysis")
        return []
    return flatten_outcomes(registry.run(source))
