import io
from datetime import date, datetime

import pytest
from pypdf import PdfReader

from report_export import (
    EXPORT_HEADERS,
    ExportRow,
    PdfTableStyle,
    export_filename,
    export_rows,
    render_csv,
    render_pdf,
    table_commands,
)

GENERATED_AT = datetime(2024, 3, 5, 14, 7, 9)


def _pdf_text(report) -> str:
    reader = PdfReader(io.BytesIO(report.data))
    return "\n".join(page.extract_text() for page in reader.pages)


def test_csv_matches_documented_layout():
    rows = export_rows(
        [
            {
                "sl_number": 400,
                "date": "2024-03-01",
                "client": 'A "B"',
                "item": "Widget",
                "source": "google_ads",
                "status": "pending",
                "quote_number": None,
                "quoted_date": None,
                "remarks": None,
            }
        ]
    )

    report = render_csv(rows, "quotations", GENERATED_AT)
    lines = report.data.decode("utf-8").split("\n")

    assert report.filename == "quotations_2024-03-05_14-07-09.csv"
    assert report.mime_type.startswith("text/csv")
    assert lines[0] == "SL #,Date,Client,Item,Source,Status,Quote #,Quoted Date,Remarks"
    assert lines[1] == '400,01 Mar 2024,"A ""B""","Widget",google_ads,pending,,,'
    assert len(lines) == 2


def test_csv_formats_optional_fields():
    row = ExportRow(
        sl_number=12,
        date=date(2024, 12, 31),
        client="Acme",
        item="Pump",
        source="mail",
        status="quoted",
        quote_number="Q-77",
        quoted_date=date(2025, 1, 2),
        remarks='Call "Sam" back',
    )

    report = render_csv([row], "quotations", GENERATED_AT)
    data_line = report.data.decode("utf-8").split("\n")[1]

    assert data_line == '12,31 Dec 2024,"Acme","Pump",mail,quoted,Q-77,02 Jan 2025,"Call ""Sam"" back"'


def test_csv_with_no_rows_is_header_only():
    report = render_csv([], "quotations", GENERATED_AT)

    assert report.data.decode("utf-8") == ",".join(EXPORT_HEADERS)


def test_export_rows_from_quotations_does_not_mutate(make_quotation):
    quotation = make_quotation(remarks="urgent", quote_number="Q-1")
    records = [quotation]

    rows = export_rows(records)
    render_csv(rows, "quotations", GENERATED_AT)
    render_pdf(rows, "quotations", GENERATED_AT)

    assert records == [quotation]
    assert rows[0].remarks == "urgent"
    assert rows[0].sl_number == quotation.sl_number
    assert rows[0].date == quotation.date


def test_export_filename_uses_supplied_time():
    assert export_filename("report", "pdf", datetime(2023, 1, 2, 3, 4, 5)) == "report_2023-01-02_03-04-05.pdf"


def test_pdf_with_zero_rows_has_title_and_count():
    report = render_pdf([], "quotations", GENERATED_AT)

    assert report.filename == "quotations_2024-03-05_14-07-09.pdf"
    assert report.data.startswith(b"%PDF")
    text = _pdf_text(report)
    assert "Quotation Tracker Report" in text
    assert "Generated: 05 Mar 2024, 14:07" in text
    assert "Total Records: 0" in text
    assert "Quoted Date" in text


def test_pdf_is_landscape_a4_with_placeholders(make_quotation):
    rows = export_rows([make_quotation(client="Orion Textiles", remarks=None)])

    report = render_pdf(rows, "quotations", GENERATED_AT)
    reader = PdfReader(io.BytesIO(report.data))
    page = reader.pages[0]
    text = _pdf_text(report)

    assert float(page.mediabox.width) > float(page.mediabox.height)
    assert round(float(page.mediabox.width)) == 842
    assert "Total Records: 1" in text
    assert "Orion Textiles" in text
    assert "-" in text


def test_missing_sl_number_is_an_empty_cell():
    rows = export_rows(
        [{"date": "2024-03-01", "client": "Acme", "item": "Widget", "source": "mail", "status": "hold"}]
    )

    report = render_csv(rows, "quotations", GENERATED_AT)
    data_line = report.data.decode("utf-8").split("\n")[1]

    assert data_line == ',01 Mar 2024,"Acme","Widget",mail,hold,,,'
    assert "None" not in _pdf_text(render_pdf(rows, "quotations", GENERATED_AT))


def test_first_body_row_gets_alternate_fill():
    style = PdfTableStyle()
    commands = {command[0]: command for command in table_commands(style, 3)}

    first, second = commands["ROWBACKGROUNDS"][3]

    assert first.rgb() == pytest.approx(tuple(channel / 255.0 for channel in style.alternate_fill))
    assert second.rgb() == pytest.approx((1.0, 1.0, 1.0))


def test_header_only_table_has_no_row_fills():
    commands = [command[0] for command in table_commands(PdfTableStyle(), 0)]

    assert "ROWBACKGROUNDS" not in commands
    assert commands[0] == "BACKGROUND"
