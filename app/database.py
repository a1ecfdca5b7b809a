import logging

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.utils.errors import InternalError

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,      # checks dead connections
    pool_recycle=1800        # refresh every 30 min
)


def create_db_and_tables():
    from app.models import user, product, cart, order, payment_proof, delivery_cost, order_event
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session


def commit_or_fail(session: Session, action: str):
    """Commit the unit of work; storage failures roll back and surface as a generic 500."""
    try:
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Database error while trying to {action}")
        raise InternalError()
