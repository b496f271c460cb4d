from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Sequence, Tuple

import pandas as pd
from fastapi.responses import StreamingResponse
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# PUBLIC_INTERFACE
def build_frame(records: Iterable[Dict[str, Any]], columns: Sequence[str]) -> pd.DataFrame:
    """DataFrame with a fixed column order, so empty exports still carry headers."""
    return pd.DataFrame(list(records), columns=list(columns))


def _pdf_bytes(df: pd.DataFrame, title: str) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(A4), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
    )
    styles = getSampleStyleSheet()
    stamp = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    table = Table([list(df.columns)] + df.fillna("").astype(str).values.tolist(), repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 7),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ]
        )
    )
    doc.build([Paragraph(f"{title} ({stamp})", styles["Title"]), table])
    return buffer.getvalue()


# PUBLIC_INTERFACE
def render_dataframe(df: pd.DataFrame, export_format: str, title: str = "Report") -> Tuple[bytes, str, str]:
    """
    Serialize a DataFrame; returns (payload, media type, file extension).

    csv is UTF-8 text, xlsx is written through openpyxl and pdf is a
    landscape reportlab table. Unknown formats fall back to csv.
    """
    export_format = (export_format or "csv").lower()
    if export_format in ("xlsx", "excel"):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=title[:31])
        return buffer.getvalue(), XLSX_MEDIA_TYPE, "xlsx"
    if export_format == "pdf":
        return _pdf_bytes(df, title), "application/pdf", "pdf"
    return df.to_csv(index=False).encode("utf-8"), "text/csv", "csv"


# PUBLIC_INTERFACE
def export_dataframe(df: pd.DataFrame, filename_base: str, export_format: str) -> StreamingResponse:
    """Stream a DataFrame as a file download named `<filename_base>.<ext>`."""
    payload, media_type, ext = render_dataframe(df, export_format, filename_base.replace("_", " ").title())
    headers = {"Content-Disposition": f'attachment; filename="{filename_base}.{ext}"'}
    return StreamingResponse(io.BytesIO(payload), media_type=media_type, headers=headers)
