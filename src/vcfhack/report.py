from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>vcfhack {{ command }} report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>vcfhack {{ command }}</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      {% for key, value in inputs.items() %}
      <tr><th>{{ key }}</th><td><code>{{ value }}</code></td></tr>
      {% endfor %}
    </table>
  </div>
  <div class="card">
    <h3>Parameters</h3>
    <table>
      {% for key, value in params.items() %}
      <tr><th>{{ key }}</th><td>{{ value }}</td></tr>
      {% endfor %}
    </table>
  </div>
</div>

<h2>Counts</h2>
<table>
  {% for key, value in counts.items() %}
  <tr><th>{{ key | replace("_", " ") }}</th><td>{{ value }}</td></tr>
  {% endfor %}
</table>

{% if plots %}
<h2>Plots</h2>
<div class="grid">
  {% for title, src in plots.items() %}
  <div class="card">
    <h3>{{ title }}</h3>
    <img src="{{ src }}" alt="{{ title }}">
  </div>
  {% endfor %}
</div>
{% endif %}

<h2>Outputs</h2>
<ul>
  {% for path in outputs %}
  <li><code>{{ path }}</code></li>
  {% endfor %}
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<p class="small">Runtime: {{ runtime_seconds }} s</p>
<hr>
<p class="small">vcfhack {{ version }}</p>
</body>
</html>"""
)


def scalar_counts(counts: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only the scalar counters (histograms are plotted, not tabulated)."""
    return {k: v for k, v in counts.items() if not isinstance(v, (dict, list))}


def render_report(
    *,
    outdir: str | Path,
    version: str,
    command: str,
    inputs: Dict[str, Any],
    params: Dict[str, Any],
    counts: Mapping[str, Any],
    plots: Dict[str, str],
    outputs: List[str],
    runtime_seconds: float = 0.0,
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        command=command,
        inputs=inputs,
        params=params,
        counts=scalar_counts(counts),
        plots=plots,
        outputs=outputs,
        runtime_seconds=f"{runtime_seconds:.2f}",
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.debug("Report written: %s", out_path)
    return out_path
