import io
from datetime import datetime, timedelta

import pytest
from openpyxl import load_workbook

from app.models.user import User
from app.schemas.orders_schemas import OrderFilters
from app.services import order_query_service, order_service
from app.utils.errors import InvalidInputError, UnauthorizedError


@pytest.fixture
def orders(session, user, other_user, admin, make_product, place_order):
    """Three orders for Rahim, two for Karim, in a mix of states."""
    cheap = make_product(name="Gamcha", price=100)
    dear = make_product(name="Jamdani Saree", price=1000)

    placed = {
        "rahim_cheap": place_order(user, [(cheap, 1)]),
        "rahim_dear": place_order(user, [(dear, 1)], payment_method="cash_on_delivery"),
        "rahim_outside": place_order(user, [(cheap, 2)], city="Rajshahi"),
        "karim_cheap": place_order(other_user, [(cheap, 1)]),
        "karim_dear": place_order(other_user, [(dear, 2)], payment_method="nagad"),
    }
    order_service.update_order_status(session, admin, placed["rahim_dear"].id, "delivered")
    order_service.update_order_status(session, admin, placed["karim_dear"].id, "delivered")
    order_service.cancel_order(session, admin, placed["karim_cheap"].id, by_admin=True)
    return placed


def _list(client, headers, **params):
    return client.get("/admin/orders", params=params, headers=headers)


def test_lists_everything_newest_first(client, admin_headers, orders):
    body = _list(client, admin_headers).json()

    assert body["total_items"] == 5
    ids = [o["id"] for o in body["results"]]
    assert ids == sorted(ids, reverse=True)
    assert body["results"][0]["customer"]["name"] == "Karim Hossain"


def test_status_filter(client, admin_headers, orders):
    body = _list(client, admin_headers, status="delivered").json()

    assert {o["id"] for o in body["results"]} == {orders["rahim_dear"].id, orders["karim_dear"].id}


def test_payment_method_filter(client, admin_headers, orders):
    body = _list(client, admin_headers, payment_method="nagad").json()

    assert [o["id"] for o in body["results"]] == [orders["karim_dear"].id]


def test_amount_range(client, admin_headers, orders):
    # totals: 160, 1060, 320, 160, 2060
    body = _list(client, admin_headers, min_amount=300, max_amount=1100).json()

    assert {o["total"] for o in body["results"]} == {320, 1060}


def test_search_by_customer_name_paginates_consistently(client, admin_headers, orders):
    page_one = _list(client, admin_headers, search="karim", limit=1).json()
    page_two = _list(client, admin_headers, search="karim", limit=1, page=2).json()

    assert page_one["total_items"] == 2
    assert page_one["total_pages"] == 2
    assert page_one["has_next_page"] is True
    assert page_two["has_prev_page"] is True
    assert page_two["has_next_page"] is False
    found = {page_one["results"][0]["id"], page_two["results"][0]["id"]}
    assert found == {orders["karim_cheap"].id, orders["karim_dear"].id}


def test_search_by_email_ignores_case(client, admin_headers, orders):
    body = _list(client, admin_headers, search="RAHIM@EXAMPLE").json()

    assert body["total_items"] == 3


def test_search_by_order_number(client, admin_headers, orders):
    number = orders["rahim_outside"].order_number

    body = _list(client, admin_headers, search=number).json()

    assert [o["order_number"] for o in body["results"]] == [number]


def test_sort_by_total_ascending(client, admin_headers, orders):
    body = _list(client, admin_headers, sort_by="total", sort_order="asc").json()

    totals = [o["total"] for o in body["results"]]
    assert totals == sorted(totals)


@pytest.mark.parametrize(
    "params",
    [
        {"sort_by": "password"},
        {"sort_by": "items"},
        {"sort_order": "sideways"},
        {"status": "lost"},
        {"payment_status": "maybe"},
    ],
)
def test_bad_listing_parameters(client, admin_headers, orders, params):
    res = _list(client, admin_headers, **params)

    assert res.status_code == 400
    assert res.json()["success"] is False


def test_end_date_includes_the_whole_day(client, admin_headers, orders):
    today = datetime.utcnow().date()

    assert _list(client, admin_headers, end_date=str(today)).json()["total_items"] == 5
    assert _list(client, admin_headers, start_date=str(today + timedelta(days=1))).json()["total_items"] == 0
    assert _list(client, admin_headers, end_date=str(today - timedelta(days=1))).json()["total_items"] == 0


def test_listing_requires_staff(session, user):
    with pytest.raises(UnauthorizedError):
        order_query_service.list_orders(session, user, OrderFilters())


def test_stats(client, admin_headers, orders):
    stats = client.get("/admin/orders/stats", headers=admin_headers).json()["stats"]

    assert stats["total_orders"] == 5
    assert stats["status_counts"] == {
        "pending": 2,
        "processing": 0,
        "shipped": 0,
        "delivered": 2,
        "cancelled": 1,
    }
    assert stats["payment_status_counts"]["pending"] == 5
    assert stats["total_revenue"] == 1060 + 2060
    assert stats["monthly_revenue"] == 1060 + 2060
    assert len(stats["daily_revenue"]) == 1
    assert stats["daily_revenue"][0]["orders"] == 2
    methods = {m["payment_method"]: m["count"] for m in stats["payment_methods"]}
    assert methods == {"bkash": 3, "cash_on_delivery": 1, "nagad": 1}


def test_stats_on_empty_store(session, admin):
    stats = order_query_service.order_stats(session, admin)

    assert stats["total_orders"] == 0
    assert stats["total_revenue"] == 0
    assert stats["daily_revenue"] == []


def test_export_json(client, admin_headers, orders):
    res = client.get("/admin/orders/export", params={"status": "delivered"}, headers=admin_headers)

    body = res.json()
    assert body["format"] == "json"
    assert body["count"] == 2
    row = next(r for r in body["data"] if r["customer_email"] == "karim@example.com")
    assert row["total"] == 2060
    assert row["items"] == "Jamdani Saree (2)"


def test_export_xlsx(client, admin_headers, orders):
    res = client.get("/admin/orders/export", params={"format": "xlsx"}, headers=admin_headers)

    assert res.status_code == 200
    assert res.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "attachment" in res.headers["content-disposition"]

    sheet = load_workbook(io.BytesIO(res.content)).active
    assert sheet.title == "Orders"
    assert sheet.cell(row=1, column=1).value == "Order Number"
    assert sheet.max_row == 6


def test_export_unknown_format(client, admin_headers):
    res = client.get("/admin/orders/export", params={"format": "csv"}, headers=admin_headers)

    assert res.status_code == 400


def test_export_rejects_bad_status(session, admin):
    with pytest.raises(InvalidInputError):
        order_query_service.export_rows(session, admin, status="lost")


@pytest.mark.parametrize("wildcard", ["_", "%", "\\"])
def test_search_treats_wildcards_literally(client, admin_headers, orders, wildcard):
    body = _list(client, admin_headers, search=wildcard).json()

    assert body["total_items"] == 0
    assert body["results"] == []


def test_search_with_literal_underscore(session, client, admin_headers, make_product, place_order):
    buyer = User(name="nadia_rahman", email="nadia@example.com", password="not-used")
    session.add(buyer)
    session.commit()
    session.refresh(buyer)
    place_order(buyer)

    body = _list(client, admin_headers, search="a_r").json()

    assert body["total_items"] == 1
    assert body["results"][0]["customer"]["name"] == "nadia_rahman"
