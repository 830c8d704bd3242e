"""Paginated PDF export of the results snapshot."""

import logging
from io import BytesIO
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from asvstrack.aggregation import recommendations, status_band
from asvstrack.aggregation.engine import GOOD_BAND
from asvstrack.models import Dashboard

logger = logging.getLogger(__name__)

BAND_COLORS = {
    "good": colors.HexColor("#16a34a"),
    "warning": colors.HexColor("#ca8a04"),
    "critical": colors.HexColor("#dc2626"),
}


def _section_table(dashboard: Dashboard) -> Table:
    rows = [["Section", "Valid", "Total", "Validity"]]
    styles = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f2937")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
    ]
    for row_index, stat in enumerate(dashboard.sections, start=1):
        if not stat.available:
            rows.append([stat.section_name or stat.section_id, "-", "-", "unavailable"])
            continue
        if not stat.assessed:
            rows.append([stat.section_name, "0", "0", "not assessed"])
            continue
        rows.append([
            stat.section_name,
            str(stat.valid_count),
            str(stat.total_count),
            f"{stat.validity_percentage:.1f}%",
        ])
        band = status_band(stat.validity_percentage)
        styles.append(("TEXTCOLOR", (3, row_index), (3, row_index), BAND_COLORS[band]))

    # repeatRows keeps the header on every page
    table = Table(rows, colWidths=[95 * mm, 20 * mm, 20 * mm, 35 * mm], repeatRows=1)
    table.setStyle(TableStyle(styles))
    return table


def build_pdf(
    dashboard: Dashboard,
    title: str = "ASVS L1 Compliance Results",
    threshold: float = GOOD_BAND,
    limit: int = 3,
) -> bytes:
    """Render the dashboard as an A4 PDF, split across pages as needed.

    ``threshold`` and ``limit`` select the improvement recommendations.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=title,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
    )
    styles = getSampleStyleSheet()
    story = [Paragraph(title, styles["Title"]), Spacer(1, 6 * mm)]

    overall = dashboard.overall
    if not overall.available:
        story.append(Paragraph("Data unavailable: statistics could not be loaded.", styles["Normal"]))
    else:
        story.extend([
            Paragraph(f"ASVS level acquired: <b>{overall.asvs_level_acquired}</b>", styles["Normal"]),
            Paragraph(
                f"Overall validity: <b>{overall.overall_validity_percentage:.1f}%</b> "
                f"({overall.valid_sum} of {overall.total_sum} requirements valid)",
                styles["Normal"],
            ),
            Spacer(1, 6 * mm),
            _section_table(dashboard),
        ])
        items = recommendations(dashboard, threshold=threshold, limit=limit)
        if items:
            story.extend([Spacer(1, 6 * mm), Paragraph("Improvement Recommendations", styles["Heading2"])])
            story.extend(Paragraph(f"&bull; {escape(item)}", styles["Normal"]) for item in items)

    doc.build(story)
    return buffer.getvalue()


def export_pdf(
    dashboard: Dashboard,
    output_path: str | Path,
    threshold: float = GOOD_BAND,
    limit: int = 3,
) -> Path:
    """Write the PDF export to ``output_path`` and return the path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(build_pdf(dashboard, threshold=threshold, limit=limit))
    logger.info("Results exported to %s", path)
    return path
