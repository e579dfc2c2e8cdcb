"""
PDF care summary generator for PediBrief.

Renders the structured summary and quiz score into a printable
document. Everything happens in memory; no file is written.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from jinja2 import Environment

# Try to import WeasyPrint, make it optional
try:
    from weasyprint import HTML, CSS
    WEASYPRINT_AVAILABLE = True
except (ImportError, OSError):
    WEASYPRINT_AVAILABLE = False
    HTML = None
    CSS = None

from app.config import settings
from app.models.schemas import StructuredSummary
from app.services.quiz_scorer import is_passing
from app.utils.logger import get_logger

logger = get_logger("report_generator")

PDF_FILENAME = "pedibrief-summary.pdf"
HTML_FILENAME = "pedibrief-summary.html"


@dataclass
class RenderedDocument:
    """Exported document ready to be streamed to the browser."""
    content: bytes
    media_type: str
    filename: str


class ReportGenerator:
    """
    Generates the parent-facing care summary.

    Uses a Jinja2 HTML template and WeasyPrint for PDF conversion.
    Sections:
    - Quiz score badge
    - What happened
    - Red flags (return to ER)
    - What to do / what to avoid
    - Medications (only when present)
    - Follow-up tasks
    - What to expect
    """

    REPORT_CSS = """
    @page {
        size: A4;
        margin: 2cm;
        @bottom-center {
            content: "Page " counter(page) " of " counter(pages);
            font-size: 9pt;
            color: #999;
        }
    }

    body {
        font-family: Helvetica, Arial, sans-serif;
        font-size: 11pt;
        line-height: 1.5;
        color: #323232;
    }

    .header h1 {
        color: #2d7f78;
        font-size: 24pt;
        margin: 0;
    }

    .header .subtitle {
        color: #646464;
        font-size: 14pt;
        margin-top: 4px;
    }

    .score-badge {
        display: inline-block;
        margin: 16px 0 8px 0;
        padding: 8px 14px;
        border-radius: 6px;
        color: #fff;
        font-weight: bold;
        font-size: 12pt;
    }

    .score-pass { background: #22c55e; }
    .score-review { background: #f59e0b; }

    h2 {
        font-size: 14pt;
        margin: 22px 0 8px 0;
    }

    h2.red-flags { color: #dc3545; }
    h2.what-to-do { color: #22c55e; }
    h2.medications { color: #2d7f78; }

    ul { margin: 0; padding-left: 20px; }
    li { padding: 2px 0; }

    .medication { margin: 0 0 10px 5px; }
    .medication .name { font-weight: bold; }
    .medication .notes { font-size: 10pt; }

    .footer {
        margin-top: 40px;
        font-size: 9pt;
        color: #969696;
        border-top: 1px solid #ddd;
        padding-top: 10px;
    }
    """

    TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>PediBrief - Your Child's Care Summary</title>
</head>
<body>
    <div class="header">
        <h1>PediBrief</h1>
        <div class="subtitle">Your Child's Care Summary</div>
    </div>

    {% if quiz_score is not none %}
    <div class="score-badge {{ 'score-pass' if passed else 'score-review' }}">Quiz Score: {{ quiz_score }}/100</div>
    {% endif %}

    <h2>What Happened</h2>
    <p>{{ summary.simple_explanation }}</p>

    <h2 class="red-flags">Return to ER Immediately If:</h2>
    <ul>
        {% for flag in summary.red_flags %}<li>{{ flag }}</li>{% endfor %}
    </ul>

    <h2 class="what-to-do">What To Do</h2>
    <ul>
        {% for item in summary.what_to_do %}<li>{{ item }}</li>{% endfor %}
    </ul>

    <h2>What To Avoid</h2>
    <ul>
        {% for item in summary.what_not_to_do %}<li>{{ item }}</li>{% endfor %}
    </ul>

    {% if summary.medications %}
    <h2 class="medications">Medications</h2>
    {% for med in summary.medications %}
    <div class="medication">
        <div class="name">{{ med.name }} - {{ med.dose }}</div>
        <div>Timing: {{ med.timing }}</div>
        {% if med.notes %}<div class="notes">Note: {{ med.notes }}</div>{% endif %}
    </div>
    {% endfor %}
    {% endif %}

    <h2>Follow-Up Tasks</h2>
    <ul>
        {% for item in summary.follow_up %}<li>{{ item }}</li>{% endfor %}
    </ul>

    <h2>What to Expect</h2>
    <p>{{ summary.expected_course }}</p>

    <div class="footer">
        Generated by PediBrief v{{ version }} on {{ generated_date }} &bull;
        For reference only - always consult your healthcare provider
    </div>
</body>
</html>
"""

    def __init__(self):
        self._env = Environment(autoescape=True)
        self._template = self._env.from_string(self.TEMPLATE)

    def render_html(
        self,
        summary: StructuredSummary,
        quiz_score: Optional[int] = None,
        generated_at: Optional[datetime] = None
    ) -> str:
        """
        Render the care summary as HTML (without PDF conversion).

        Args:
            summary: Normalized summary
            quiz_score: 0-100 score, omitted from the page when None
            generated_at: Timestamp for the footer (defaults to now)

        Returns:
            HTML string
        """
        generated_at = generated_at or datetime.now()
        return self._template.render(
            summary=summary,
            quiz_score=quiz_score,
            passed=quiz_score is not None and is_passing(quiz_score),
            generated_date=generated_at.strftime("%B %d, %Y"),
            version=settings.app_version,
        )

    def render_standalone_html(self, summary: StructuredSummary, quiz_score: Optional[int] = None) -> str:
        """HTML with the stylesheet inlined, for when PDF output is unavailable."""
        html_content = self.render_html(summary, quiz_score)
        return html_content.replace("</head>", f"<style>{self.REPORT_CSS}</style>\n</head>", 1)

    def generate_pdf(
        self,
        summary: StructuredSummary,
        quiz_score: Optional[int] = None
    ) -> RenderedDocument:
        """
        Generate the care summary document.

        Returns:
            RenderedDocument holding PDF bytes, or standalone HTML if
            WeasyPrint is unavailable
        """
        logger.info(
            "Generating care summary",
            has_quiz_score=quiz_score is not None,
            medications=len(summary.medications)
        )

        if not WEASYPRINT_AVAILABLE:
            logger.warning("WeasyPrint not available, generating HTML instead")
            return RenderedDocument(
                content=self.render_standalone_html(summary, quiz_score).encode("utf-8"),
                media_type="text/html",
                filename=HTML_FILENAME,
            )

        html = HTML(string=self.render_html(summary, quiz_score))
        css = CSS(string=self.REPORT_CSS)
        pdf_bytes = html.write_pdf(stylesheets=[css])

        logger.info("PDF care summary generated", size_bytes=len(pdf_bytes))

        return RenderedDocument(
            content=pdf_bytes,
            media_type="application/pdf",
            filename=PDF_FILENAME,
        )


# Lazy-loaded singleton
_report_generator: Optional[ReportGenerator] = None


def get_report_generator() -> ReportGenerator:
    """Get or create report generator singleton."""
    global _report_generator
    if _report_generator is None:
        _report_generator = ReportGenerator()
    return _report_generator
