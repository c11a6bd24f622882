"""
Tabular exports of portal data as CSV, Excel or PDF
"""
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

import pandas as pd
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlalchemy import func
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.models import (
    Booking, BookingStatus, Destination, Expense, ExpenseCategory, Member, Part, Tour, TourCategory, TourStatus,
    User,
)
from portal.services.reports import admin_dashboard

logger = logging.getLogger(__name__)

EXPORT_TYPES = ("tours", "bookings", "expenses", "users", "members", "parts", "destinations", "analytics")
EXPORT_FORMATS = ("csv", "excel", "pdf")

STATUS_ENUMS = {"tours": TourStatus, "bookings": BookingStatus}
CATEGORY_ENUMS = {"tours": TourCategory, "expenses": ExpenseCategory}

MODELS = {
    "tours": Tour, "bookings": Booking, "expenses": Expense, "users": User,
    "members": Member, "parts": Part, "destinations": Destination,
}
LABELS = {
    "tours": "Tours", "bookings": "Bookings", "expenses": "Expenses", "users": "Users",
    "members": "Misc Members", "parts": "Parts", "destinations": "Destinations", "analytics": "Analytics",
}

FILE_EXTENSIONS = {"csv": "csv", "excel": "xlsx", "pdf": "pdf"}
MEDIA_TYPES = {
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}


def _v(value):
    return value.value if hasattr(value, "value") else value


def _date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


# column title -> row getter, per export type
COLUMNS: Dict[str, List[Tuple[str, Callable[[Any], Any]]]] = {
    "tours": [
        ("Title", lambda t: t.title),
        ("Status", lambda t: _v(t.status)),
        ("Category", lambda t: _v(t.category)),
        ("Start Date", lambda t: _date(t.start_date)),
        ("End Date", lambda t: _date(t.end_date)),
        ("Duration", lambda t: t.duration_string),
        ("Adult Price", lambda t: t.price_adult),
        ("Max Participants", lambda t: t.max_participants),
        ("Current Participants", lambda t: t.current_participants),
        ("Featured", lambda t: "Yes" if t.featured else "No"),
    ],
    "bookings": [
        ("Booking ID", lambda b: b.booking_ref),
        ("User", lambda b: b.user.full_name if b.user else ""),
        ("Email", lambda b: b.user.email if b.user else ""),
        ("Tour", lambda b: b.tour.title if b.tour else ""),
        ("Participants", lambda b: b.total_participants),
        ("Total", lambda b: b.total),
        ("Status", lambda b: _v(b.status)),
        ("Payment Status", lambda b: _v(b.payment_status)),
        ("Booking Date", lambda b: _date(b.booking_date)),
    ],
    "expenses": [
        ("Title", lambda e: e.title or ""),
        ("Category", lambda e: _v(e.category)),
        ("Amount", lambda e: e.amount),
        ("Currency", lambda e: e.currency),
        ("Expense Date", lambda e: _date(e.expense_date)),
        ("Tour", lambda e: e.tour.title if e.tour else ""),
        ("Added By", lambda e: e.submitter.full_name if e.submitter else ""),
        ("Payment Method", lambda e: _v(e.payment_method)),
        ("Approved", lambda e: "Yes" if e.is_approved else "No"),
    ],
    "users": [
        ("First Name", lambda u: u.first_name),
        ("Last Name", lambda u: u.last_name),
        ("Email", lambda u: u.email),
        ("Phone", lambda u: u.phone_number),
        ("City", lambda u: u.city or ""),
        ("State", lambda u: u.state or ""),
        ("Role", lambda u: _v(u.role)),
        ("Registered", lambda u: _date(u.created_at)),
    ],
    "members": [
        ("Section", lambda m: m.section),
        ("S.No", lambda m: m.s_no),
        ("Mob S.No", lambda m: m.mob_s_no),
        ("Group S.No", lambda m: m.group_s_no),
        ("Name", lambda m: m.name_aadhar),
        ("Gender", lambda m: m.gender),
        ("Age", lambda m: m.age if m.age is not None else ""),
        ("Persons", lambda m: m.persons if m.persons is not None else ""),
        ("Fwd Journey", lambda m: m.fwd_jny),
        ("Rtn Journey", lambda m: m.rtn_jny),
    ],
    "parts": [
        ("Section", lambda p: p.section),
        ("Section Description", lambda p: p.section_description),
        ("Member Name", lambda p: p.member_name),
        ("Persons", lambda p: p.no_of_persons if p.no_of_persons is not None else "Cancelled"),
        ("Sradam", lambda p: p.sradam or ""),
        ("Notes", lambda p: p.notes or ""),
    ],
    "destinations": [
        ("Name", lambda d: d.name),
        ("State", lambda d: d.state),
        ("Region", lambda d: _v(d.region)),
        ("Famous Temples", lambda d: ", ".join(d.famous_temples or [])),
        ("Significance", lambda d: d.significance or ""),
        ("Best Time To Visit", lambda d: d.best_time_to_visit or ""),
        ("Nearest Railway", lambda d: d.nearest_railway or ""),
        ("Nearest Airport", lambda d: d.nearest_airport or ""),
        ("Active", lambda d: "Yes" if d.is_active else "No"),
        ("Created", lambda d: _date(d.created_at)),
    ],
    "analytics": [
        ("Metric", lambda m: m[0]),
        ("Value", lambda m: m[1]),
    ],
}


@dataclass
class ExportFile:
    content: bytes
    filename: str
    media_type: str
    rows: int


class DataExporter:
    """Builds a table for one export type and renders it in the requested format"""

    def query(self, db: Session, export_type: str, filters: Optional[Dict[str, Any]] = None) -> List[Any]:
        filters = filters or {}
        if export_type == "analytics":
            return self.analytics_rows(db)
        model = MODELS[export_type]

        query = db.query(model)

        date_range = filters.get("date_range") or {}
        if date_range.get("start"):
            query = query.filter(model.created_at >= date_range["start"])
        if date_range.get("end"):
            query = query.filter(model.created_at <= date_range["end"])

        status = filters.get("status")
        if status and export_type in STATUS_ENUMS:
            query = query.filter(model.status == STATUS_ENUMS[export_type](status))
        elif status and export_type == "destinations":
            if status not in ("active", "inactive"):
                raise ValueError(f"Unsupported destination status: {status}")
            query = query.filter(model.is_active.is_(status == "active"))

        category = filters.get("category")
        if category and export_type in CATEGORY_ENUMS:
            query = query.filter(model.category == CATEGORY_ENUMS[export_type](category))

        if export_type in ("members", "parts"):
            order = (model.section, model.s_no) if export_type == "members" else (model.section, model.created_at)
            return query.order_by(*order).all()
        return query.order_by(model.created_at.desc()).all()

    def analytics_rows(self, db: Session) -> List[Tuple[str, Any]]:
        """Headline totals followed by bookings and revenue for the last 12 active months."""
        stats = admin_dashboard(db)
        totals = stats["statistics"]
        rows: List[Tuple[str, Any]] = [
            ("Total Users", totals["totalUsers"]),
            ("Total Tours", totals["totalTours"]),
            ("Total Bookings", totals["totalBookings"]),
            ("Total Revenue", totals["totalRevenue"]),
            ("Pending Expenses", totals["pendingExpenses"]),
        ]
        for point in stats["monthlyBookings"]:
            month = f"{point['_id']['year']}-{point['_id']['month']:02d}"
            rows.append((f"{month} Bookings", point["count"]))
            rows.append((f"{month} Revenue", point["revenue"]))
        return rows

    def stats(self, db: Session) -> Dict[str, Any]:
        return {
            "availableDataTypes": [
                {
                    "value": export_type,
                    "label": LABELS[export_type],
                    "count": db.query(func.count(MODELS[export_type].id)).scalar() if export_type in MODELS else None,
                }
                for export_type in EXPORT_TYPES
            ],
            "supportedFormats": list(EXPORT_FORMATS),
            "pdfRowLimit": settings.EXPORT_PDF_MAX_ROWS,
        }

    def to_frame(self, export_type: str, rows: List[Any]) -> pd.DataFrame:
        columns = COLUMNS[export_type]
        records = [{title: getter(row) for title, getter in columns} for row in rows]
        return pd.DataFrame(records, columns=[title for title, _ in columns])

    def export(self, db: Session, export_type: str, fmt: str,
               filters: Optional[Dict[str, Any]] = None) -> ExportFile:
        if export_type not in EXPORT_TYPES:
            raise ValueError(f"Unsupported export type: {export_type}")
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")

        rows = self.query(db, export_type, filters)
        df = self.to_frame(export_type, rows)
        logger.info(f"Exporting {len(df)} {export_type} as {fmt}")

        if fmt == "csv":
            content = df.to_csv(index=False).encode("utf-8")
        elif fmt == "excel":
            content = self.render_excel(df, export_type)
        else:
            content = self.render_pdf(df, export_type)

        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        return ExportFile(
            content=content,
            filename=f"{export_type}_export_{timestamp}.{FILE_EXTENSIONS[fmt]}",
            media_type=MEDIA_TYPES[fmt],
            rows=len(df),
        )

    def render_excel(self, df: pd.DataFrame, export_type: str) -> bytes:
        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=export_type.capitalize(), index=False)
        return buffer.getvalue()

    def render_pdf(self, df: pd.DataFrame, export_type: str) -> bytes:
        """Title, generation date and a plain table of the first rows; long tables flow onto new pages."""
        max_rows = settings.EXPORT_PDF_MAX_ROWS
        page_w, page_h = landscape(A4)
        margin = 36
        line_h = 14
        col_w = (page_w - 2 * margin) / max(len(df.columns), 1)
        max_chars = max(int(col_w / 5.5), 4)

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=(page_w, page_h))
        c.setTitle(f"{export_type.capitalize()} Export")

        def cell(value) -> str:
            text = "" if value is None or (isinstance(value, float) and pd.isna(value)) else str(value)
            return text if len(text) <= max_chars else text[: max_chars - 3] + "..."

        def header(y: float) -> float:
            c.setFont("Helvetica-Bold", 9)
            for i, title in enumerate(df.columns):
                c.drawString(margin + i * col_w, y, cell(title))
            c.line(margin, y - 4, page_w - margin, y - 4)
            c.setFont("Helvetica", 8)
            return y - line_h - 2

        y = page_h - margin
        c.setFont("Helvetica-Bold", 16)
        c.drawString(margin, y, f"{export_type.capitalize()} Export")
        y -= 20
        c.setFont("Helvetica", 10)
        c.drawString(margin, y, f"Generated on: {datetime.utcnow():%Y-%m-%d %H:%M} UTC")
        y -= 24
        y = header(y)

        for _, row in df.head(max_rows).iterrows():
            if y < margin + line_h:
                c.showPage()
                y = header(page_h - margin)
            for i, value in enumerate(row.tolist()):
                c.drawString(margin + i * col_w, y, cell(value))
            y -= line_h

        if len(df) > max_rows:
            if y < margin + 2 * line_h:
                c.showPage()
                y = page_h - margin
            c.setFont("Helvetica-Oblique", 9)
            c.drawString(margin, y - line_h,
                         f"Note: Only first {max_rows} records shown. Total records: {len(df)}")

        c.save()
        return buffer.getvalue()


data_exporter = DataExporter()
