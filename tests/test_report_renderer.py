"""
Tests for JSON, Markdown and HTML report rendering.
"""

import json
from dataclasses import replace

import pytest

from chainguard.aggregator import FindingAggregator
from chainguard.exceptions import UnsupportedFormatError
from chainguard.models import AuditReport, ContractMetadata, Finding, ScoreResult, Severity
from chainguard.report_renderer import ReportFormat, ReportRenderer


def build_report(findings, optimizations=(), degraded=False, notes=(), metadata=None, **extra):
    aggregated = FindingAggregator().format_report(findings)
    if optimizations:
        aggregated = replace(aggregated, optimizations=tuple(optimizations))
    return AuditReport(
        findings=aggregated,
        score=ScoreResult(security_score=75, overall_risk=Severity.HIGH),
        metadata=metadata,
        degraded=degraded,
        notes=tuple(notes),
        **extra,
    )


REENTRANCY = Finding(
    type="Reentrancy",
    severity="HIGH",
    description="External call detected before state change",
    recommendation="Move state changes before external calls",
    line=15,
    snippet='msg.sender.call{value: amount}("");',
)

AI_FINDING = Finding(
    type="Logic Error",
    severity="MEDIUM",
    description="Fee can be set above 100%",
    recommendation="Bound the fee",
    location="function setFee",
    source="ai",
)


class TestReportRenderer:
    """Every format projects the same AuditReport"""

    def setup_method(self):
        self.renderer = ReportRenderer()

    def test_json_round_trips_report_dict(self):
        report = build_report([REENTRANCY, AI_FINDING])
        data = json.loads(self.renderer.render(report, "json"))
        assert data == json.loads(json.dumps(report.to_dict()))
        assert data["securityScore"] == 75
        assert data["overallRisk"] == "HIGH"
        assert data["totalVulnerabilities"] == 2
        assert data["severityCounts"]["HIGH"] == 1

    def test_markdown_sections(self):
        report = build_report([REENTRANCY, AI_FINDING])
        md = self.renderer.render(report, ReportFormat.MARKDOWN)

        assert md.startswith("# Security Audit Report")
        assert "**Security Score:** 75/100" in md
        assert "**Overall Risk:** HIGH" in md
        assert "**Total Vulnerabilities:** 2" in md
        assert "- High: 1" in md
        assert "- Medium: 1" in md
        assert "### 1. Reentrancy (HIGH)" in md
        assert "### 2. Logic Error (MEDIUM)" in md
        assert "**Location:** line 15" in md
        assert "**Location:** function setFee" in md
        assert '```solidity\nmsg.sender.call{value: amount}("");\n```' in md

    def test_markdown_optional_sections(self):
        gas = Finding(type="Unbounded Loop", severity="MEDIUM", description="Loop over length",
                      line=6, estimated_savings="~100 gas per iteration")
        metadata = ContractMetadata(language="solidity", version="0.8.20",
                                    contracts=("Vault",), name="Vault")
        report = build_report([], optimizations=[gas], degraded=True,
                              notes=["AI analysis unavailable"], metadata=metadata)
        md = self.renderer.render(report, "markdown")

        assert "## Contract" in md
        assert "**Name:** Vault" in md
        assert "## Gas Optimizations" in md
        assert "~100 gas per iteration" in md
        assert "static analysis findings only" in md
        assert "- AI analysis unavailable" in md
        assert "## Vulnerabilities" not in md

    def test_html_escapes_values(self):
        hostile = Finding(
            type="XSS <b>",
            severity="LOW",
            description='<script>alert("x")</script>',
            recommendation="Escape & sanitize",
            line=3,
        )
        html_out = self.renderer.render(build_report([hostile]), "html")

        assert "<script>" not in html_out
        assert "&lt;script&gt;" in html_out
        assert "XSS &lt;b&gt;" in html_out
        assert "Escape &amp; sanitize" in html_out
        assert html_out.lstrip().startswith("<!DOCTYPE html>")

    def test_html_summary(self):
        html_out = self.renderer.render(build_report([REENTRANCY]), "HTML")
        assert "<strong>Security Score:</strong> 75/100" in html_out
        assert "<li>High: 1</li>" in html_out
        assert "#ea580c" in html_out

    def test_unknown_format(self):
        with pytest.raises(UnsupportedFormatError):
            self.renderer.render(build_report([]), "pdf")
        with pytest.raises(ValueError):
            ReportFormat.coerce("xml")

    def test_write(self, tmp_path):
        path = self.renderer.write(build_report([REENTRANCY]), "markdown", tmp_path / "out" / "report.md")
        assert path.exists()
        assert "Reentrancy" in path.read_text()

    def test_deterministic(self):
        report = build_report([REENTRANCY, AI_FINDING])
        for fmt in ReportFormat:
            assert self.renderer.render(report, fmt) == self.renderer.render(report, fmt)

    def test_canonical_json_is_compact_and_sorted(self):
        report = build_report([REENTRANCY])
        canonical = report.canonical_json()
        data = json.loads(canonical)
        assert canonical == json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
        assert list(data) == sorted(data)

    def test_ai_summary_and_recommendations(self):
        report = build_report(
            [AI_FINDING],
            summary="Fee logic is unbounded & unchecked.",
            recommendations=("Cap the fee", "Add <events>"),
        )

        data = json.loads(self.renderer.render(report, "json"))
        assert data["summary"] == "Fee logic is unbounded & unchecked."
        assert data["recommendations"] == ["Cap the fee", "Add <events>"]

        md = self.renderer.render(report, "markdown")
        assert "Fee logic is unbounded & unchecked." in md
        assert "## Recommendations\n\n- Cap the fee\n- Add <events>\n" in md

        html_out = self.renderer.render(report, "html")
        assert "Fee logic is unbounded &amp; unchecked." in html_out
        assert "<li>Add &lt;events&gt;</li>" in html_out

    def test_static_only_report_has_no_ai_sections(self):
        report = build_report([REENTRANCY])
        assert "summary" not in report.to_dict()
        assert "recommendations" not in report.to_dict()
        assert "## Recommendations" not in self.renderer.render(report, "markdown")

    def test_contract_hash_in_headers(self):
        digest = "0x" + "ab" * 32
        report = build_report([], contract_hash=digest)

        assert report.to_dict()["contractHash"] == digest
        md = self.renderer.render(report, "markdown")
        assert "## Contract" in md
        assert f"**Contract Hash:** `{digest}`" in md
        assert f"<code>{digest}</code>" in self.renderer.render(report, "html")
