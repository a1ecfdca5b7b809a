import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.main import app
from app.models.product import Product
from app.models.user import User
from app.services import cart_service, order_service
from app.utils.token import create_access_token

ADDRESS = {
    "full_name": "Rahim Uddin",
    "phone": "01711000000",
    "address": "House 12, Road 5, Dhanmondi",
    "city": "Dhaka",
    "postal_code": "1205",
}


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def _make_user(session: Session, name: str, email: str, role: str = "user") -> User:
    user = User(name=name, email=email, password="not-used", role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user(session):
    return _make_user(session, "Rahim Uddin", "rahim@example.com")


@pytest.fixture
def other_user(session):
    return _make_user(session, "Karim Hossain", "karim@example.com")


@pytest.fixture
def admin(session):
    return _make_user(session, "Store Admin", "admin@example.com", role="admin")


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def make_product(session):
    def _make(name="Cotton Panjabi", price=100.0, images=None, category="men"):
        product = Product(
            name=name,
            price=price,
            category=category,
            images=["/img/panjabi-front.jpg"] if images is None else images,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def place_order(session, make_product):
    """Fill the buyer's cart and turn it into an order through the services."""

    def _place(buyer, lines=None, city="Dhaka", payment_method="bkash"):
        if lines is None:
            lines = [(make_product(), 1)]
        for product, quantity in lines:
            cart_service.add_item(session, buyer, product.id, quantity=quantity)
        return order_service.create_order(
            session,
            buyer,
            shipping_address={**ADDRESS, "city": city, "country": "Bangladesh"},
            payment_method=payment_method,
        )

    return _place
