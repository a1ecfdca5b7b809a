# -------- ADMIN ORDERS --------
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.user import User
from app.schemas.orders_schemas import (
    AdminNoteCreate,
    BulkStatusUpdate,
    OrderCancelRequest,
    OrderFilters,
    OrderStatusUpdate,
)
from app.schemas.payment_proof_schemas import PaymentProofVerify
from app.services import order_query_service, order_service, payment_proof_service
from app.services.order_event_service import get_order_timeline, serialize_event
from app.utils.errors import InvalidInputError


router = APIRouter()


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    min_amount: Optional[float] = Query(None),
    max_amount: Optional[float] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    filters = OrderFilters(
        status=status,
        payment_status=payment_status,
        payment_method=payment_method,
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return {"success": True, **order_query_service.list_orders(session, admin, filters)}


@router.get("/stats")
def order_stats(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    return {"success": True, "stats": order_query_service.order_stats(session, admin)}


@router.get("/export")
def export_orders(
    format: str = Query("json"),
    status: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    if format not in ("json", "xlsx"):
        raise InvalidInputError("Format must be json or xlsx")

    rows = order_query_service.export_rows(session, admin, status, start_date, end_date)

    if format == "json":
        return {"success": True, "format": "json", "count": len(rows), "data": rows}

    buffer = order_query_service.build_export_workbook(rows)
    filename = f"orders_{datetime.utcnow().date()}.xlsx"

    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/bulk-status")
def bulk_update_status(
    data: BulkStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    result = order_service.bulk_update_order_status(
        session, admin, data.order_ids, data.status, data.tracking_number
    )
    return {
        "success": True,
        "message": f"{result['updated_count']} orders updated successfully",
        **result,
    }


@router.get("/{order_id}")
def order_details(
    order_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    order = order_service.get_order(session, admin, order_id)
    customer = session.get(User, order.user_id)

    proof = payment_proof_service.find_payment_proof(session, order.id)

    return {
        "success": True,
        "order": order_service.serialize_order(order, customer),
        "payment_proof": (
            payment_proof_service.serialize_payment_proof(proof) if proof else None
        ),
        "timeline": [serialize_event(e) for e in get_order_timeline(session, order.id)],
    }


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    order = order_service.update_order_status(
        session, admin, order_id, data.status, data.tracking_number
    )
    return {
        "success": True,
        "message": "Order status updated successfully",
        "order": order_service.serialize_order(order),
    }


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    data: Optional[OrderCancelRequest] = None,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    order = order_service.cancel_order(
        session,
        admin,
        order_id,
        reason=data.reason if data else None,
        by_admin=True,
    )
    return {
        "success": True,
        "message": "Order cancelled successfully",
        "order": order_service.serialize_order(order),
    }


@router.post("/{order_id}/notes")
def add_admin_note(
    order_id: int,
    data: AdminNoteCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    order = order_service.add_admin_note(session, admin, order_id, data.note)
    return {
        "success": True,
        "message": "Admin note added successfully",
        "order": order_service.serialize_order(order),
    }


@router.put("/{order_id}/verify-payment")
def verify_payment(
    order_id: int,
    data: PaymentProofVerify,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    proof = payment_proof_service.verify_payment_proof(
        session, admin, order_id, data.status, data.admin_notes
    )
    return {
        "success": True,
        "message": f"Payment proof {proof.status} successfully",
        "payment_proof": payment_proof_service.serialize_payment_proof(proof),
    }
