"""
Report rendering for ChainGuard audits.

Every format is a projection of the same AuditReport; none of them computes
anything the model does not already hold.
"""

import html
import json
import logging
from enum import Enum
from pathlib import Path
from typing import List, Union

from chainguard.exceptions import UnsupportedFormatError
from chainguard.models import AuditReport, Finding

logger = logging.getLogger(__name__)


class ReportFormat(Enum):
    """Supported output formats"""
    JSON = "json"
    MARKDOWN = "markdown"
    HTML = "html"

    @classmethod
    def coerce(cls, value: Union["ReportFormat", str]) -> "ReportFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedFormatError(f"Unsupported report format: {value!r}")

    @property
    def extension(self) -> str:
        return {"json": "json", "markdown": "md", "html": "html"}[self.value]


SEVERITY_COLORS = {
    'CRITICAL': '#dc2626',
    'HIGH': '#ea580c',
    'MEDIUM': '#f59e0b',
    'LOW': '#3b82f6',
}
DEFAULT_COLOR = '#6b7280'

HTML_STYLE = """
    body { font-family: Arial, sans-serif; max-width: 1000px; margin: 40px auto; padding: 20px; }
    h1 { color: #1f2937; }
    .summary { background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0; }
    .vulnerability { border-left: 4px solid #e5e7eb; padding: 15px; margin: 15px 0; }
    .severity { display: inline-block; padding: 4px 12px; border-radius: 4px; color: white; font-weight: bold; }
    .code { background: #1f2937; color: #f3f4f6; padding: 15px; border-radius: 4px; overflow-x: auto; }
    .degraded { background: #fef3c7; padding: 10px; border-radius: 4px; }
"""


class ReportRenderer:
    """Render an AuditReport as JSON, Markdown or HTML."""

    def render(self, report: AuditReport, fmt: Union[ReportFormat, str] = ReportFormat.JSON) -> str:
        fmt = ReportFormat.coerce(fmt)
        if fmt is ReportFormat.JSON:
            return self.render_json(report)
        if fmt is ReportFormat.MARKDOWN:
            return self.render_markdown(report)
        return self.render_html(report)

    def write(self, report: AuditReport, fmt: Union[ReportFormat, str], path: Union[str, Path]) -> Path:
        """Render ``report`` and write it to ``path``."""
        content = self.render(report, fmt)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        logger.info(f"Report written to {path}")
        return path

    def render_json(self, report: AuditReport) -> str:
        return json.dumps(report.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)

    def render_markdown(self, report: AuditReport) -> str:
        findings = report.findings
        counts = findings.severity_counts

        md = "# Security Audit Report\n\n"
        if report.metadata is not None or report.contract_hash:
            md += self._markdown_metadata(report)

        md += "## Summary\n\n"
        md += f"**Security Score:** {report.score.security_score}/100\n"
        md += f"**Overall Risk:** {report.score.overall_risk.value}\n"
        md += f"**Total Vulnerabilities:** {findings.total}\n\n"

        if report.summary:
            md += f"{report.summary}\n\n"

        if report.degraded:
            md += "> AI analysis was unavailable; this report contains static analysis findings only.\n\n"

        md += "### Severity Breakdown\n\n"
        md += f"- Critical: {counts.get('CRITICAL', 0)}\n"
        md += f"- High: {counts.get('HIGH', 0)}\n"
        md += f"- Medium: {counts.get('MEDIUM', 0)}\n"
        md += f"- Low: {counts.get('LOW', 0)}\n\n"

        if findings.vulnerabilities:
            md += "## Vulnerabilities\n\n"
            for index, vuln in enumerate(findings.vulnerabilities, 1):
                md += self._markdown_finding(index, vuln)

        if findings.optimizations:
            md += "## Gas Optimizations\n\n"
            for vuln in findings.optimizations:
                line = f" (line {vuln.line})" if vuln.line else ""
                savings = f" - {vuln.estimated_savings}" if vuln.estimated_savings else ""
                md += f"- **{vuln.type}**{line}: {vuln.description}{savings}\n"
            md += "\n"

        if report.recommendations:
            md += "## Recommendations\n\n"
            for recommendation in report.recommendations:
                md += f"- {recommendation}\n"
            md += "\n"

        if report.notes:
            md += "## Notes\n\n"
            for note in report.notes:
                md += f"- {note}\n"
            md += "\n"

        return md

    def _markdown_metadata(self, report: AuditReport) -> str:
        meta = report.metadata
        md = "## Contract\n\n"
        if meta is not None:
            if meta.name:
                md += f"**Name:** {meta.name}\n"
            md += f"**Language:** {meta.language}\n"
            md += f"**Version:** {meta.version}\n"
            if meta.contracts:
                md += f"**Contracts:** {', '.join(meta.contracts)}\n"
            md += f"**Functions:** {len(meta.functions)}\n"
        if report.contract_hash:
            md += f"**Contract Hash:** `{report.contract_hash}`\n"
        md += "\n"
        return md

    def _markdown_finding(self, index: int, vuln: Finding) -> str:
        md = f"### {index}. {vuln.type} ({vuln.severity.value})\n\n"
        md += f"**Description:** {vuln.description}\n\n"
        location = self._location(vuln)
        if location:
            md += f"**Location:** {location}\n\n"
        if vuln.snippet:
            md += f"**Code:**\n```solidity\n{vuln.snippet}\n```\n\n"
        md += f"**Recommendation:** {vuln.recommendation}\n\n"
        md += "---\n\n"
        return md

    def render_html(self, report: AuditReport) -> str:
        esc = html.escape
        findings = report.findings
        counts = findings.severity_counts

        parts: List[str] = [f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Security Audit Report</title>
  <style>{HTML_STYLE}  </style>
</head>
<body>
  <h1>Security Audit Report</h1>
"""]

        if report.metadata is not None or report.contract_hash:
            meta = report.metadata
            rows = []
            if meta is not None:
                if meta.name:
                    rows.append(f"<p><strong>Name:</strong> {esc(meta.name)}</p>")
                rows.append(f"<p><strong>Language:</strong> {esc(meta.language)}</p>")
                rows.append(f"<p><strong>Version:</strong> {esc(meta.version)}</p>")
                rows.append(f"<p><strong>Contracts:</strong> {esc(', '.join(meta.contracts))}</p>")
            if report.contract_hash:
                rows.append(f"<p><strong>Contract Hash:</strong> <code>{esc(report.contract_hash)}</code></p>")
            parts.append('\n  <div class="summary">\n    <h2>Contract</h2>\n')
            parts.extend(f"    {row}\n" for row in rows)
            parts.append("  </div>\n")

        parts.append(f"""
  <div class="summary">
    <h2>Summary</h2>
    <p><strong>Security Score:</strong> {report.score.security_score}/100</p>
    <p><strong>Overall Risk:</strong> {esc(report.score.overall_risk.value)}</p>
    <p><strong>Total Vulnerabilities:</strong> {findings.total}</p>
    <ul>
      <li>Critical: {counts.get('CRITICAL', 0)}</li>
      <li>High: {counts.get('HIGH', 0)}</li>
      <li>Medium: {counts.get('MEDIUM', 0)}</li>
      <li>Low: {counts.get('LOW', 0)}</li>
    </ul>
  </div>
""")

        if report.summary:
            parts.append(f'  <p class="overview">{esc(report.summary)}</p>\n')

        if report.degraded:
            parts.append('  <p class="degraded">AI analysis was unavailable; '
                         'this report contains static analysis findings only.</p>\n')

        parts.append("  <h2>Vulnerabilities</h2>\n")
        for index, vuln in enumerate(findings.vulnerabilities, 1):
            parts.append(self._html_finding(index, vuln))

        if findings.optimizations:
            parts.append("  <h2>Gas Optimizations</h2>\n  <ul>\n")
            for vuln in findings.optimizations:
                line = f" (line {vuln.line})" if vuln.line else ""
                savings = f" - {esc(vuln.estimated_savings)}" if vuln.estimated_savings else ""
                parts.append(f"    <li><strong>{esc(vuln.type)}</strong>{line}: "
                             f"{esc(vuln.description)}{savings}</li>\n")
            parts.append("  </ul>\n")

        if report.recommendations:
            parts.append("  <h2>Recommendations</h2>\n  <ul>\n")
            parts.extend(f"    <li>{esc(recommendation)}</li>\n" for recommendation in report.recommendations)
            parts.append("  </ul>\n")

        if report.notes:
            parts.append("  <h2>Notes</h2>\n  <ul>\n")
            parts.extend(f"    <li>{esc(note)}</li>\n" for note in report.notes)
            parts.append("  </ul>\n")

        parts.append("</body>\n</html>\n")
        return ''.join(parts)

    def _html_finding(self, index: int, vuln: Finding) -> str:
        esc = html.escape
        color = SEVERITY_COLORS.get(vuln.severity.value, DEFAULT_COLOR)
        location = self._location(vuln)
        location_html = f"<p><strong>Location:</strong> {esc(location)}</p>" if location else ""
        code_html = f'<div class="code"><pre>{esc(vuln.snippet)}</pre></div>' if vuln.snippet else ""
        return f"""
  <div class="vulnerability">
    <h3>{index}. {esc(vuln.type)} <span class="severity" style="background: {color}">{esc(vuln.severity.value)}</span></h3>
    <p><strong>Description:</strong> {esc(vuln.description)}</p>
    {location_html}
    {code_html}
    <p><strong>Recommendation:</strong> {esc(vuln.recommendation)}</p>
  </div>
"""

    def _location(self, vuln: Finding) -> str:
        parts = []
        if vuln.location:
            parts.append(vuln.location)
        if vuln.line:
            parts.append(f"line {vuln.line}")
        return ', '.join(parts)
