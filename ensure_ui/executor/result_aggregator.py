import json
import logging
import os
from typing import Any, Dict, Optional

from jinja2 import Environment

from ensure_ui.data import RunResults

REPORT_TEMPLATE = """# 🔍 EnsureUI Test Results

**Summary:** {{ summary.passed_pages }}/{{ summary.total_pages }} pages passed
{%- if summary.total_flows %}, {{ summary.passed_flows }}/{{ summary.total_flows }} flows passed{% endif %}

{% if failed_pages %}
## ❌ Failed Pages ({{ failed_pages | length }})

{% for page in failed_pages %}
### {{ page.route }}
- **URL:** {{ page.url }}
- **File:** {{ page.file_path }}
- **Page loaded:** {{ "✅" if page.basic_checks.page_loaded else "❌" }}{{ " (%s)" % page.basic_checks.status if page.basic_checks.status else "" }}
{% for exp in page.expectations %}
- {{ "✅" if exp.passed else "❌" }} line {{ exp.line_number }}: {{ exp.text }}{{ ("\\n  - Error: " ~ (exp.error | oneline)) if exp.error else "" }}
{% endfor %}
{% if page.console_errors %}
- **Console Errors:**
{% for err in page.console_errors[:3] %}
  - {{ err | oneline }}
{% endfor %}
{% endif %}
{% if page.error %}
- **Error:** {{ page.error | oneline }}
{% endif %}

{% endfor %}
{% endif %}
{% if passed_pages %}
## ✅ Passed Pages ({{ passed_pages | length }})

{% for page in passed_pages %}
- {{ page.route }} - All {{ page.expectations | length }} expectations met ✅
{% endfor %}
{% endif %}
{% if flows %}

## 🔀 Flows

{% for flow in flows %}
### {{ "✅" if flow.passed else "❌" }} {{ flow.name }}
{% if flow.description %}> {{ flow.description }}
{% endif %}
{% for step in flow.steps %}
{{ step.index }}. {{ "✅" if step.passed else ("❌" if step.error else "⏭️") }} {{ step.description }}{{ ("\\n   - Error: " ~ (step.error | oneline)) if step.error else "" }}
{% endfor %}
{% if flow.error and not flow.steps %}
- **Error:** {{ flow.error | oneline }}
{% endif %}

{% endfor %}
{% endif %}
"""


def _oneline(value) -> str:
    return " ".join(str(value).split())


class ResultAggregator:
    """Summarizes run results and writes the JSON and markdown reports."""

    def __init__(self):
        self._env = Environment(trim_blocks=True, lstrip_blocks=True, autoescape=False)
        self._env.filters["oneline"] = _oneline
        self._template = self._env.from_string(REPORT_TEMPLATE)

    @staticmethod
    def summarize(results: RunResults) -> Dict[str, Any]:
        total_expectations = sum(len(p.expectations) for p in results.pages)
        passed_expectations = sum(1 for p in results.pages for e in p.expectations if e.passed)
        return {
            "total_pages": results.total_pages,
            "passed_pages": results.passed_pages,
            "failed_pages": results.failed_pages,
            "total_expectations": total_expectations,
            "passed_expectations": passed_expectations,
            "failed_expectations": total_expectations - passed_expectations,
            "total_flows": results.total_flows,
            "passed_flows": results.passed_flows,
            "failed_flows": results.failed_flows,
        }

    def render_markdown(self, results: RunResults) -> str:
        return self._template.render(
            summary=self.summarize(results),
            failed_pages=[p for p in results.pages if not p.passed],
            passed_pages=[p for p in results.pages if p.passed],
            flows=results.flows,
        ).strip() + "\n"

    def write_reports(self, results: RunResults, report_dir: Optional[str] = None) -> Dict[str, str]:
        """Write ``results.json`` and ``report.md``; returns their absolute paths."""
        if report_dir is None:
            timestamp = os.getenv("ENSURE_UI_TIMESTAMP", "latest")
            report_dir = os.path.join("./reports", f"run_{timestamp}")
        paths = {}
        try:
            os.makedirs(report_dir, exist_ok=True)

            json_path = os.path.join(report_dir, "results.json")
            with open(json_path, "w", encoding="utf-8") as f:
                json.dump(results.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
            paths["json"] = os.path.abspath(json_path)

            md_path = os.path.join(report_dir, "report.md")
            with open(md_path, "w", encoding="utf-8") as f:
                f.write(self.render_markdown(results))
            paths["markdown"] = os.path.abspath(md_path)

            logging.debug(f"Reports generated: {paths}")
        except OSError as e:
            logging.error(f"Failed to write reports to {report_dir}: {e}")
        return paths
