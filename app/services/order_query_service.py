import io
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.constants.order_status import (
    ORDER_PAYMENT_METHODS,
    ORDER_STATUSES,
    PAYMENT_STATUSES,
)
from app.models.order import Order
from app.models.user import User
from app.schemas.orders_schemas import OrderFilters
from app.dependencies.admin import require_staff
from app.services.order_service import serialize_order
from app.utils.errors import InvalidInputError
from app.utils.pagination import paginate

# JSON columns cannot be ordered on PostgreSQL
SORTABLE_FIELDS = set(Order.__table__.columns.keys()) - {"items", "shipping_address", "admin_notes"}

EXPORT_COLUMNS = [
    "order_number",
    "customer_name",
    "customer_email",
    "total",
    "status",
    "payment_method",
    "payment_status",
    "order_date",
    "delivered_date",
    "items",
]


def _check_choice(value: Optional[str], choices: List[str], label: str):
    if value and value not in choices:
        raise InvalidInputError(f"Invalid {label}. Must be one of: {', '.join(choices)}")


def _contains_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _date_range(query, start_date: Optional[date], end_date: Optional[date]):
    # end_date is inclusive: everything before the following midnight
    if start_date:
        query = query.where(Order.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        query = query.where(Order.created_at < datetime.combine(end_date + timedelta(days=1), time.min))
    return query


def build_orders_query(filters: OrderFilters):
    _check_choice(filters.status, ORDER_STATUSES, "status")
    _check_choice(filters.payment_status, PAYMENT_STATUSES, "payment status")
    _check_choice(filters.payment_method, ORDER_PAYMENT_METHODS, "payment method")

    if filters.sort_by not in SORTABLE_FIELDS:
        raise InvalidInputError(f"Cannot sort by {filters.sort_by}")

    if filters.sort_order not in ("asc", "desc"):
        raise InvalidInputError("Sort order must be asc or desc")

    query = select(Order, User).join(User, User.id == Order.user_id)

    if filters.status:
        query = query.where(Order.status == filters.status)

    if filters.payment_status:
        query = query.where(Order.payment_status == filters.payment_status)

    if filters.payment_method:
        query = query.where(Order.payment_method == filters.payment_method)

    query = _date_range(query, filters.start_date, filters.end_date)

    if filters.min_amount is not None:
        query = query.where(Order.total >= filters.min_amount)

    if filters.max_amount is not None:
        query = query.where(Order.total <= filters.max_amount)

    if filters.search and filters.search.strip():
        s = _contains_pattern(filters.search.strip())
        query = query.where(
            or_(
                Order.order_number.ilike(s, escape="\\"),
                User.name.ilike(s, escape="\\"),
                User.email.ilike(s, escape="\\"),
            )
        )

    column = getattr(Order, filters.sort_by)
    direction = column.desc() if filters.sort_order == "desc" else column.asc()
    tiebreak = Order.id.desc() if filters.sort_order == "desc" else Order.id.asc()

    return query.order_by(direction, tiebreak)


def list_orders(session: Session, admin: User, filters: OrderFilters) -> dict:
    """Admin listing; search is part of the SQL predicate so totals match the results."""
    require_staff(admin)

    return paginate(
        session=session,
        query=build_orders_query(filters),
        page=filters.page,
        limit=filters.limit,
        transform=lambda row: serialize_order(row[0], row[1]),
    )


def order_stats(session: Session, admin: User, now: Optional[datetime] = None) -> dict:
    require_staff(admin)
    now = now or datetime.utcnow()

    status_counts = {status: 0 for status in ORDER_STATUSES}
    for status, count in session.exec(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    ).all():
        status_counts[status] = count

    payment_status_counts = {status: 0 for status in PAYMENT_STATUSES}
    for status, count in session.exec(
        select(Order.payment_status, func.count(Order.id)).group_by(Order.payment_status)
    ).all():
        payment_status_counts[status] = count

    delivered = Order.status == "delivered"

    total_revenue = session.exec(
        select(func.sum(Order.total)).where(delivered)
    ).one()

    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    monthly_revenue = session.exec(
        select(func.sum(Order.total))
        .where(delivered, Order.created_at >= month_start)
    ).one()

    day = func.date(Order.created_at)
    daily = session.exec(
        select(day, func.sum(Order.total), func.count(Order.id))
        .where(delivered, Order.created_at >= now - timedelta(days=30))
        .group_by(day)
        .order_by(day)
    ).all()

    methods = session.exec(
        select(Order.payment_method, func.count(Order.id), func.sum(Order.total))
        .group_by(Order.payment_method)
        .order_by(Order.payment_method)
    ).all()

    return {
        "total_orders": sum(status_counts.values()),
        "status_counts": status_counts,
        "payment_status_counts": payment_status_counts,
        "total_revenue": total_revenue or 0,
        "monthly_revenue": monthly_revenue or 0,
        "daily_revenue": [
            {"date": str(d), "revenue": total, "orders": count}
            for d, total, count in daily
        ],
        "payment_methods": [
            {"payment_method": method, "count": count, "total": total or 0}
            for method, count, total in methods
        ],
    }


def export_rows(
    session: Session,
    admin: User,
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[dict]:
    require_staff(admin)
    _check_choice(status, ORDER_STATUSES, "status")

    query = select(Order, User).join(User, User.id == Order.user_id)
    if status:
        query = query.where(Order.status == status)
    query = _date_range(query, start_date, end_date)

    rows = []
    for order, user in session.exec(query.order_by(Order.created_at.desc(), Order.id.desc())).all():
        rows.append({
            "order_number": order.order_number,
            "customer_name": user.name,
            "customer_email": user.email,
            "total": order.total,
            "status": order.status,
            "payment_method": order.payment_method,
            "payment_status": order.payment_status,
            "order_date": order.created_at,
            "delivered_date": order.delivered_date,
            "items": "; ".join(f"{i['name']} ({i['quantity']})" for i in order.items),
        })
    return rows


def build_export_workbook(rows: List[dict]) -> io.BytesIO:
    wb = Workbook()
    ws = wb.active
    ws.title = "Orders"

    thin = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill("solid", fgColor="4F81BD")
    center = Alignment(horizontal="center")

    ws.append([c.replace("_", " ").title() for c in EXPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin
        cell.alignment = center

    for row in rows:
        ws.append([row[c] for c in EXPORT_COLUMNS])

    total_col = EXPORT_COLUMNS.index("total")
    for row in ws.iter_rows(min_row=2):
        row[total_col].number_format = "#,##0.00"
        for cell in row:
            cell.border = thin

    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer
