"""CSV and PDF reports for the quotation list.

Both renderers consume the same :class:`ExportRow` projection and receive the
generation time from the caller, which keeps filenames and the "Generated"
line reproducible in tests.
"""
from __future__ import annotations

import html
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from quote_tracker import Quotation

REPORT_TITLE = "Quotation Tracker Report"
EXPORT_HEADERS = (
    "SL #",
    "Date",
    "Client",
    "Item",
    "Source",
    "Status",
    "Quote #",
    "Quoted Date",
    "Remarks",
)
FILENAME_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
DISPLAY_DATE_FORMAT = "%d %b %Y"
GENERATED_FORMAT = "%d %b %Y, %H:%M"
CSV_MIME = "text/csv;charset=utf-8"
PDF_MIME = "application/pdf"
MISSING_PDF_VALUE = "-"

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class ExportRow:
    sl_number: int
    date: DateLike
    client: str
    item: str
    source: str
    status: str
    quote_number: Optional[str] = None
    quoted_date: Optional[DateLike] = None
    remarks: Optional[str] = None


@dataclass(frozen=True)
class ReportFile:
    """A rendered report ready to be offered as a download."""

    filename: str
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class PdfTableStyle:
    header_fill: Tuple[int, int, int] = (59, 130, 246)
    header_text: Tuple[int, int, int] = (255, 255, 255)
    alternate_fill: Tuple[int, int, int] = (245, 247, 250)
    font_size: float = 8
    cell_padding_mm: float = 2
    column_widths_mm: Tuple[float, ...] = field(
        default=(12, 25, 40, 45, 20, 20, 25, 25, 45)
    )


def export_rows(quotations: Iterable[Union[Quotation, Mapping[str, Any]]]) -> List[ExportRow]:
    """Project quotations (or mappings with the same keys) onto export rows."""

    rows: List[ExportRow] = []
    for quotation in quotations:
        rows.append(
            ExportRow(
                sl_number=_field(quotation, "sl_number"),
                date=_field(quotation, "date"),
                client=_field(quotation, "client") or "",
                item=_field(quotation, "item") or "",
                source=_field(quotation, "source") or "",
                status=_field(quotation, "status") or "",
                quote_number=_field(quotation, "quote_number"),
                quoted_date=_field(quotation, "quoted_date"),
                remarks=_field(quotation, "remarks"),
            )
        )
    return rows


def _field(record: Union[Quotation, Mapping[str, Any]], name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def export_filename(base: str, extension: str, generated_at: datetime) -> str:
    return f"{base}_{generated_at.strftime(FILENAME_TIMESTAMP_FORMAT)}.{extension}"


def format_display_date(value: DateLike) -> str:
    if isinstance(value, datetime):
        return value.strftime(DISPLAY_DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DISPLAY_DATE_FORMAT)
    text = str(value)
    try:
        return date.fromisoformat(text[:10]).strftime(DISPLAY_DATE_FORMAT)
    except ValueError:
        return text


def _csv_quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _sl_text(value: Any) -> str:
    return "" if value is None else str(value)


def csv_line(row: ExportRow) -> str:
    # source and status go out unquoted; they are expected to be enum values
    cells = [
        _sl_text(row.sl_number),
        format_display_date(row.date),
        _csv_quote(row.client),
        _csv_quote(row.item),
        row.source,
        row.status,
        row.quote_number or "",
        format_display_date(row.quoted_date) if row.quoted_date else "",
        _csv_quote(row.remarks) if row.remarks else "",
    ]
    return ",".join(cells)


def render_csv(rows: Sequence[ExportRow], base_filename: str, generated_at: datetime) -> ReportFile:
    lines = [",".join(EXPORT_HEADERS)]
    lines.extend(csv_line(row) for row in rows)
    return ReportFile(
        filename=export_filename(base_filename, "csv", generated_at),
        data="\n".join(lines).encode("utf-8"),
        mime_type=CSV_MIME,
    )


def pdf_cells(row: ExportRow) -> List[str]:
    return [
        _sl_text(row.sl_number),
        format_display_date(row.date),
        row.client,
        row.item,
        row.source,
        row.status,
        row.quote_number or MISSING_PDF_VALUE,
        format_display_date(row.quoted_date) if row.quoted_date else MISSING_PDF_VALUE,
        row.remarks or MISSING_PDF_VALUE,
    ]


def _rgb(value: Tuple[int, int, int]) -> colors.Color:
    red, green, blue = value
    return colors.Color(red / 255.0, green / 255.0, blue / 255.0)


def table_commands(style: PdfTableStyle, row_count: int) -> List[Tuple[Any, ...]]:
    """Return the ``TableStyle`` commands for a header row plus ``row_count`` body rows."""

    padding = style.cell_padding_mm * mm
    commands: List[Tuple[Any, ...]] = [
        ("BACKGROUND", (0, 0), (-1, 0), _rgb(style.header_fill)),
        ("TEXTCOLOR", (0, 0), (-1, 0), _rgb(style.header_text)),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), style.font_size),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), padding),
        ("RIGHTPADDING", (0, 0), (-1, -1), padding),
        ("TOPPADDING", (0, 0), (-1, -1), padding),
        ("BOTTOMPADDING", (0, 0), (-1, -1), padding),
    ]
    if row_count:
        # the first body row carries the alternate fill
        commands.append(
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [_rgb(style.alternate_fill), colors.white])
        )
    return commands


def render_pdf(
    rows: Sequence[ExportRow],
    base_filename: str,
    generated_at: datetime,
    style: Optional[PdfTableStyle] = None,
) -> ReportFile:
    """Build a landscape A4 report with a header block and one table row per quotation."""

    style = style or PdfTableStyle()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=9 * mm,
        bottomMargin=12 * mm,
        title=REPORT_TITLE,
    )
    styles = getSampleStyleSheet()
    title_style = styles["Title"].clone("ReportTitle")
    title_style.fontSize = 18
    title_style.leading = 22
    title_style.alignment = 0
    meta_style = styles["Normal"].clone("ReportMeta")
    meta_style.fontSize = 10
    meta_style.leading = 14
    cell_style = styles["BodyText"].clone("ReportCell")
    cell_style.fontSize = style.font_size
    cell_style.leading = style.font_size + 2

    header = list(EXPORT_HEADERS)
    body = [
        [Paragraph(html.escape(cell), cell_style) for cell in pdf_cells(row)]
        for row in rows
    ]
    table = Table(
        [header] + body,
        colWidths=[width * mm for width in style.column_widths_mm],
        repeatRows=1,
        hAlign="LEFT",
    )
    table.setStyle(TableStyle(table_commands(style, len(body))))

    elements = [
        Paragraph(html.escape(REPORT_TITLE), title_style),
        Paragraph(f"Generated: {generated_at.strftime(GENERATED_FORMAT)}", meta_style),
        Paragraph(f"Total Records: {len(rows)}", meta_style),
        Spacer(1, 4 * mm),
        table,
    ]
    doc.build(elements)
    return ReportFile(
        filename=export_filename(base_filename, "pdf", generated_at),
        data=buffer.getvalue(),
        mime_type=PDF_MIME,
    )


__all__ = [
    "EXPORT_HEADERS",
    "ExportRow",
    "PdfTableStyle",
    "REPORT_TITLE",
    "ReportFile",
    "csv_line",
    "export_filename",
    "export_rows",
    "format_display_date",
    "render_csv",
    "render_pdf",
    "table_commands",
]
