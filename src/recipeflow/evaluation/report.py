"""
Analysis report generation.

Renders an analysis as a self-contained HTML document (inline base64 plots,
metric tables) and prints the same tables to the console with rich.
"""

import html
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from matplotlib.figure import Figure
from rich.console import Console
from rich.table import Table

from recipeflow.evaluation.plots import fig_to_base64
from recipeflow.utils.logging import get_logger

log = get_logger(__name__)


def _format_value(value: Any) -> str:
    if isinstance(value, float | np.floating):
        if np.isnan(value):
            return "NA"
        return f"{value:.4f}" if abs(value) < 1000 else f"{value:.1f}"
    return str(value)


def print_table(
    df: pd.DataFrame,
    title: str,
    console: Console | None = None,
    max_rows: int = 20,
) -> None:
    """Print a frame as a rich table (first ``max_rows`` rows)."""
    if console is None:
        return
    table = Table(title=title)
    for i, col in enumerate(df.columns):
        table.add_column(str(col), style="cyan" if i == 0 else None)
    for _, row in df.head(max_rows).iterrows():
        table.add_row(*(_format_value(v) for v in row))
    console.print(table)
    if len(df) > max_rows:
        console.print(f"[dim]... {len(df) - max_rows} more rows[/dim]")


def table_to_html(df: pd.DataFrame, max_rows: int = 50) -> str:
    """HTML table with the report's number formatting."""
    shown = df.head(max_rows)
    return shown.to_html(
        index=False,
        float_format=lambda x: f"{x:.4f}" if abs(x) < 1000 else f"{x:.1f}",
        classes="metrics-table",
        na_rep="NA",
    )


@dataclass
class ReportSection:
    """One section of a report: text, tables and plots."""

    title: str
    text: str = ""
    tables: list[tuple[str, pd.DataFrame]] = field(default_factory=list)
    plots: list[tuple[str, str]] = field(default_factory=list)

    def add_table(self, caption: str, df: pd.DataFrame) -> "ReportSection":
        self.tables.append((caption, df))
        return self

    def add_plot(self, caption: str, fig: Figure) -> "ReportSection":
        """Embed a figure (the figure is closed)."""
        self.plots.append((caption, fig_to_base64(fig)))
        return self


@dataclass
class AnalysisReport:
    """
    Content of an analysis document.

    Attributes:
        title: Document title.
        project: Project identifier.
        metadata: Key facts shown at the top (rows, split sizes, ...).
        sections: Ordered sections.
    """

    title: str
    project: str
    metadata: dict[str, Any] = field(default_factory=dict)
    sections: list[ReportSection] = field(default_factory=list)

    def section(self, title: str, text: str = "") -> ReportSection:
        """Append and return a new section."""
        new = ReportSection(title=title, text=text)
        self.sections.append(new)
        return new

    def print(self, console: Console | None = None) -> None:
        """Print every table to the console."""
        if console is None:
            return
        for section in self.sections:
            for caption, df in section.tables:
                print_table(df, f"{section.title}: {caption}", console)


_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
            background-color: #f5f5f5;
        }
        h1 {
            color: #333;
            border-bottom: 2px solid #4a90a4;
            padding-bottom: 10px;
        }
        h2 {
            color: #4a90a4;
            margin-top: 30px;
        }
        .section {
            background: white;
            border-radius: 8px;
            padding: 20px;
            margin-bottom: 20px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        .metadata {
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
            gap: 15px;
        }
        .metadata-item {
            background: #f8f9fa;
            padding: 10px 15px;
            border-radius: 4px;
        }
        .metadata-item strong {
            display: block;
            color: #666;
            font-size: 0.85em;
            margin-bottom: 5px;
        }
        table {
            width: 100%;
            border-collapse: collapse;
            margin: 15px 0;
        }
        th, td {
            padding: 8px 10px;
            text-align: left;
            border-bottom: 1px solid #ddd;
        }
        th {
            background-color: #4a90a4;
            color: white;
            font-weight: 600;
        }
        .plot-container {
            text-align: center;
            margin: 20px 0;
        }
        .plot-container img {
            max-width: 100%;
            height: auto;
        }
        .timestamp {
            color: #999;
            font-size: 0.9em;
            text-align: right;
        }
"""


def render_html(report: AnalysisReport) -> str:
    """Render a report as a standalone HTML document."""
    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '    <meta charset="UTF-8">',
        f"    <title>{html.escape(report.title)}</title>",
        f"    <style>{_STYLE}    </style>",
        "</head>",
        "<body>",
        f"    <h1>{html.escape(report.title)}</h1>",
        f'    <p class="timestamp">Project {html.escape(report.project)}, generated '
        f"{datetime.now():%Y-%m-%d %H:%M:%S}</p>",
    ]

    if report.metadata:
        parts.append('    <div class="section"><h2>Overview</h2><div class="metadata">')
        for key, value in report.metadata.items():
            parts.append(
                f'        <div class="metadata-item"><strong>{html.escape(str(key))}'
                f"</strong>{html.escape(_format_value(value))}</div>"
            )
        parts.append("    </div></div>")

    for section in report.sections:
        parts.append('    <div class="section">')
        parts.append(f"        <h2>{html.escape(section.title)}</h2>")
        if section.text:
            parts.append(f"        <p>{html.escape(section.text)}</p>")
        for caption, df in section.tables:
            parts.append(f"        <h3>{html.escape(caption)}</h3>")
            parts.append(table_to_html(df))
        for caption, b64 in section.plots:
            parts.append(
                '        <div class="plot-container">'
                f"<h3>{html.escape(caption)}</h3>"
                f'<img src="data:image/png;base64,{b64}" alt="{html.escape(caption)}">'
                "</div>"
            )
        parts.append("    </div>")

    parts.extend(["</body>", "</html>", ""])
    return "\n".join(parts)


def write_report(report: AnalysisReport, output_path: Path) -> Path:
    """Write the HTML document and return its path."""
    log.info("Generating report", output=str(output_path))
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_html(report), encoding="utf-8")
    log.info("Report generated", path=str(output_path))
    return output_path
