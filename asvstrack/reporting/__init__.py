"""Results snapshot rendering and export."""

from asvstrack.reporting.pdf_export import build_pdf, export_pdf
from asvstrack.reporting.results import (
    dashboard_payload,
    filter_sections,
    load_dashboard,
    render_markdown,
    report_filename,
)

__all__ = [
    "build_pdf",
    "export_pdf",
    "dashboard_payload",
    "filter_sections",
    "load_dashboard",
    "render_markdown",
    "report_filename",
]
