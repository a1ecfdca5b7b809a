import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.config import settings
from app.database import commit_or_fail
from app.dependencies.admin import require_staff
from app.models.delivery_cost import DELIVERY_COST_ID, DeliveryCost
from app.models.user import User
from app.utils.errors import InvalidInputError

logger = logging.getLogger(__name__)


def _city_of(address) -> Optional[str]:
    if address is None:
        return None
    if isinstance(address, dict):
        return address.get("city")
    return getattr(address, "city", None)


def resolve_delivery_cost(address, dhaka_inside: float, dhaka_outside: float) -> float:
    """Flat fee for a shipping address: inside rate when the city mentions Dhaka."""
    city = _city_of(address)
    if city and "dhaka" in city.lower():
        return dhaka_inside
    return dhaka_outside


def get_delivery_rates(session: Session) -> Tuple[float, float]:
    row = session.get(DeliveryCost, DELIVERY_COST_ID)
    if row is None:
        return settings.dhaka_inside_default, settings.dhaka_outside_default
    return row.dhaka_inside, row.dhaka_outside


def get_delivery_cost(session: Session, address) -> float:
    """Delivery fee for one order. Never fails the order: falls back to the inside-Dhaka default.

    Must run before the caller stages any writes; a storage failure rolls the
    session back so the rest of the order can still be written.
    """
    try:
        inside, outside = get_delivery_rates(session)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not read delivery rates, using inside-Dhaka default")
        return settings.dhaka_inside_default

    try:
        return resolve_delivery_cost(address, inside, outside)
    except (AttributeError, TypeError):
        logger.exception("Could not resolve delivery cost, using inside-Dhaka default")
        return settings.dhaka_inside_default


def get_delivery_costs(session: Session, admin: User) -> dict:
    require_staff(admin)
    row = session.get(DeliveryCost, DELIVERY_COST_ID)
    if row is None:
        return {
            "dhaka_inside": settings.dhaka_inside_default,
            "dhaka_outside": settings.dhaka_outside_default,
            "updated_by": None,
            "updated_at": None,
        }
    return {
        "dhaka_inside": row.dhaka_inside,
        "dhaka_outside": row.dhaka_outside,
        "updated_by": row.updated_by,
        "updated_at": row.updated_at,
    }


def _apply(row: DeliveryCost, admin: User, dhaka_inside: float, dhaka_outside: float):
    row.dhaka_inside = dhaka_inside
    row.dhaka_outside = dhaka_outside
    row.updated_by = admin.id
    row.updated_at = datetime.utcnow()


def set_delivery_costs(
    session: Session,
    admin: User,
    dhaka_inside: float,
    dhaka_outside: float,
) -> dict:
    require_staff(admin)

    if dhaka_inside is None or dhaka_outside is None:
        raise InvalidInputError("Both dhaka_inside and dhaka_outside costs are required")

    if dhaka_inside < 0 or dhaka_outside < 0:
        raise InvalidInputError("Delivery costs cannot be negative")

    row = session.get(DeliveryCost, DELIVERY_COST_ID)
    if row is None:
        row = DeliveryCost(id=DELIVERY_COST_ID, dhaka_inside=dhaka_inside, dhaka_outside=dhaka_outside)
        _apply(row, admin, dhaka_inside, dhaka_outside)
        session.add(row)
        try:
            session.commit()
        except IntegrityError:
            # another admin created the row first; update theirs instead
            session.rollback()
            row = session.get(DeliveryCost, DELIVERY_COST_ID)
            _apply(row, admin, dhaka_inside, dhaka_outside)
            commit_or_fail(session, "update delivery costs")
    else:
        _apply(row, admin, dhaka_inside, dhaka_outside)
        commit_or_fail(session, "update delivery costs")

    logger.info(f"Delivery costs set to {dhaka_inside}/{dhaka_outside} by user {admin.id}")
    return get_delivery_costs(session, admin)
