"""
File writers for applicant exports - CSV for flattened rows, PDF for the summary table
"""

import csv
import html
import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.enums import TA_CENTER
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

PDF_FILENAME = "daftar_pelamar_lengkap.pdf"
CSV_FILENAME = "daftar_pelamar_lengkap.csv"

HEADER_COLOR = colors.Color(41 / 255, 128 / 255, 185 / 255)

# Landscape A4 widths in mm, one per summary column
SUMMARY_COLUMN_WIDTHS = [28, 28, 35, 22, 22, 18, 65, 25, 45]


def write_csv(rows: list[dict[str, str]], columns: list[str]) -> bytes:
    """UTF-8 with BOM so spreadsheet apps detect the encoding"""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8-sig")


def _cell(text: str, style: ParagraphStyle) -> Paragraph:
    # Escape HTML entities to prevent ReportLab parsing issues
    return Paragraph(html.escape(str(text)).replace("\n", "<br/>"), style)


def write_pdf(rows: list[dict[str, str]], columns: list[str], title: str = "Daftar Pelamar") -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        topMargin=10 * mm,
        bottomMargin=10 * mm,
        leftMargin=5 * mm,
        rightMargin=5 * mm,
        title=title,
    )

    styles = getSampleStyleSheet()
    body_style = ParagraphStyle("Cell", parent=styles["Normal"], fontSize=6, leading=7.5)
    head_style = ParagraphStyle(
        "HeadCell", parent=body_style, fontName="Helvetica-Bold", textColor=colors.white, alignment=TA_CENTER
    )

    data = [[_cell(column, head_style) for column in columns]]
    for row in rows:
        data.append([_cell(row.get(column, ""), body_style) for column in columns])

    widths = None
    if len(columns) == len(SUMMARY_COLUMN_WIDTHS):
        widths = [w * mm for w in SUMMARY_COLUMN_WIDTHS]

    table = Table(data, colWidths=widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("LEFTPADDING", (0, 0), (-1, -1), 2),
        ("RIGHTPADDING", (0, 0), (-1, -1), 2),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]))

    story = [Paragraph(html.escape(title), styles["Heading2"]), Spacer(1, 4 * mm), table]
    doc.build(story)
    return buffer.getvalue()
