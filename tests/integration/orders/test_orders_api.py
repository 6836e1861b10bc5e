import pytest

from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def detail_url(order, suffix=""):
    return f"{ORDERS_URL}{order.id}/{suffix}"


@pytest.fixture()
def as_user(api_client):
    def _as(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _as


@pytest.fixture()
def create_payload(product_a, product_b, shipping_address):
    return {
        "items": [
            {
                "product_id": str(product_a.id),
                "quantity": 2,
                "unit_price": "12.50",
            },
            {
                "product_id": str(product_b.id),
                "quantity": 1,
                "unit_price": "40.00",
                "name": "Blue Lamp (XL)",
                "size": "XL",
            },
        ],
        "shipping_address": shipping_address,
        "total_price": "65.00",
    }


class TestCreate:
    def test_buyer_places_order(self, as_user, buyer, create_payload):
        response = as_user(buyer).post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "Placed"
        assert data["buyer_name"] == "Alice Buyer"
        assert data["payment_method"] == "COD"
        assert [item["name"] for item in data["items"]] == ["Red Mug", "Blue Lamp (XL)"]
        assert [item["status"] for item in data["items"]] == ["Placed", "Placed"]
        assert data["items"][0]["subtotal"] == "25.00"

    def test_idempotency_key_header(self, as_user, buyer, create_payload):
        client = as_user(buyer)

        first = client.post(
            ORDERS_URL, create_payload, format="json", HTTP_IDEMPOTENCY_KEY="abc-1"
        )
        second = client.post(
            ORDERS_URL, create_payload, format="json", HTTP_IDEMPOTENCY_KEY="abc-1"
        )

        assert second.status_code == 201
        assert second.json()["id"] == first.json()["id"]
        assert Order.objects.count() == 1

    def test_empty_items(self, as_user, buyer, create_payload):
        create_payload["items"] = []

        response = as_user(buyer).post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 400

    def test_zero_quantity(self, as_user, buyer, create_payload):
        create_payload["items"][0]["quantity"] = 0

        response = as_user(buyer).post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 400

    def test_unsupported_payment_method(self, as_user, buyer, create_payload):
        create_payload["payment_method"] = "CARD"

        response = as_user(buyer).post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 400

    def test_unknown_product(self, as_user, buyer, create_payload):
        create_payload["items"][0]["product_id"] = "0190a1b2-0000-7000-8000-000000000000"

        response = as_user(buyer).post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 404

    def test_seller_cannot_place(self, as_user, seller_a, create_payload):
        response = as_user(seller_a).post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 403

    def test_anonymous(self, api_client, create_payload):
        response = api_client.post(ORDERS_URL, create_payload, format="json")

        assert response.status_code == 401


class TestRead:
    def test_buyer_lists_own_orders(self, as_user, buyer, two_seller_order):
        response = as_user(buyer).get(ORDERS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["results"][0]["id"] == str(two_seller_order.id)

    def test_list_filters(self, as_user, admin_user, two_seller_order):
        client = as_user(admin_user)

        assert client.get(ORDERS_URL, {"status": "Placed"}).json()["count"] == 1
        assert client.get(ORDERS_URL, {"status": "Shipped"}).json()["count"] == 0
        assert client.get(ORDERS_URL, {"active": "true"}).json()["count"] == 1

    def test_unknown_status_filter(self, as_user, admin_user):
        response = as_user(admin_user).get(ORDERS_URL, {"status": "Lost"})

        assert response.status_code == 400
        assert "Allowed:" in response.json()["detail"]

    def test_malformed_date_filter(self, as_user, admin_user):
        response = as_user(admin_user).get(ORDERS_URL, {"start_date": "yesterday"})

        assert response.status_code == 400

    def test_retrieve(self, as_user, seller_b, two_seller_order):
        response = as_user(seller_b).get(detail_url(two_seller_order))

        assert response.status_code == 200
        assert len(response.json()["items"]) == 2

    def test_retrieve_someone_elses_order(self, as_user, make_user, two_seller_order):
        response = as_user(make_user()).get(detail_url(two_seller_order))

        assert response.status_code == 403

    def test_retrieve_missing(self, as_user, admin_user):
        response = as_user(admin_user).get(f"{ORDERS_URL}not-an-order/")

        assert response.status_code == 404

    def test_seller_view(self, as_user, seller_a, two_seller_order):
        response = as_user(seller_a).get(detail_url(two_seller_order, "seller-view/"))

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data["items"]] == ["Red Mug"]
        assert data["seller_total"] == "12.50"
        assert data["seller_item_count"] == 1
        assert data["order"]["id"] == str(two_seller_order.id)


class TestStatus:
    def test_seller_ships_own_item(self, as_user, seller_a, two_seller_order):
        response = as_user(seller_a).put(
            detail_url(two_seller_order, "status/"), {"status": "Shipped"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Shipped"
        assert [item["status"] for item in data["items"]] == ["Shipped", "Placed"]
        assert data["version"] == 2

    def test_single_item(self, as_user, admin_user, two_seller_order, item_of, product_b):
        item = item_of(two_seller_order, product_b)

        response = as_user(admin_user).patch(
            detail_url(two_seller_order, "status/"),
            {"status": "Processing", "item_id": str(item.id)},
            format="json",
        )

        assert response.status_code == 200
        assert [i["status"] for i in response.json()["items"]] == [
            "Placed",
            "Processing",
        ]

    @pytest.mark.parametrize(
        "body, expected",
        [
            ({"status": "Placed"}, 400),
            ({"status": "shipped"}, 400),
            ({}, 400),
        ],
    )
    def test_rejected_input(self, as_user, seller_a, two_seller_order, body, expected):
        response = as_user(seller_a).put(
            detail_url(two_seller_order, "status/"), body, format="json"
        )

        assert response.status_code == expected

    def test_backward_move(self, as_user, seller_a, two_seller_order):
        client = as_user(seller_a)
        url = detail_url(two_seller_order, "status/")
        client.put(url, {"status": "Shipped"}, format="json")

        response = client.put(url, {"status": "Processing"}, format="json")

        assert response.status_code == 400
        assert "Invalid status transition" in response.json()["detail"]

    def test_buyer_cannot_update(self, as_user, buyer, two_seller_order):
        response = as_user(buyer).put(
            detail_url(two_seller_order, "status/"), {"status": "Shipped"}, format="json"
        )

        assert response.status_code == 403

    def test_item_of_another_seller(
        self, as_user, seller_a, two_seller_order, item_of, product_b
    ):
        item = item_of(two_seller_order, product_b)

        response = as_user(seller_a).put(
            detail_url(two_seller_order, "status/"),
            {"status": "Shipped", "item_id": str(item.id)},
            format="json",
        )

        assert response.status_code == 403

    def test_cancelled_order_is_frozen(self, as_user, buyer, admin_user, two_seller_order):
        as_user(buyer).post(detail_url(two_seller_order, "cancel/"), format="json")

        response = as_user(admin_user).put(
            detail_url(two_seller_order, "status/"),
            {"status": "Processing"},
            format="json",
        )

        assert response.status_code == 409


class TestCancel:
    def test_buyer_cancels(self, as_user, buyer, two_seller_order):
        response = as_user(buyer).post(detail_url(two_seller_order, "cancel/"))

        assert response.status_code == 200
        assert response.json()["status"] == "Cancelled"

    def test_blocked_by_progressed_item(
        self, as_user, buyer, seller_b, two_seller_order
    ):
        as_user(seller_b).put(
            detail_url(two_seller_order, "status/"), {"status": "Shipped"}, format="json"
        )

        response = as_user(buyer).post(detail_url(two_seller_order, "cancel/"))

        assert response.status_code == 409
        assert "Blue Lamp (Shipped)" in response.json()["detail"]

    def test_cancel_single_item_twice(
        self, as_user, buyer, two_seller_order, item_of, product_a
    ):
        client = as_user(buyer)
        url = detail_url(two_seller_order, "cancel/")
        body = {"item_id": str(item_of(two_seller_order, product_a).id)}

        first = client.post(url, body, format="json")
        second = client.post(url, body, format="json")

        assert first.status_code == 200
        assert second.status_code == 400
        assert Order.objects.get(pk=two_seller_order.pk).status == OrderStatus.PLACED

    def test_seller_cannot_cancel(self, as_user, seller_a, two_seller_order):
        response = as_user(seller_a).post(detail_url(two_seller_order, "cancel/"))

        assert response.status_code == 403


class TestPay:
    def test_admin_marks_paid(self, as_user, admin_user, two_seller_order):
        response = as_user(admin_user).put(detail_url(two_seller_order, "pay/"))

        assert response.status_code == 200
        assert response.json()["is_paid"] is True
        assert response.json()["paid_at"] is not None

    def test_buyer_cannot_mark_paid(self, as_user, buyer, two_seller_order):
        response = as_user(buyer).put(detail_url(two_seller_order, "pay/"))

        assert response.status_code == 403


class TestStats:
    STATS_URL = f"{ORDERS_URL}stats/"

    def test_admin_dashboard(self, as_user, admin_user, two_seller_order):
        response = as_user(admin_user).get(self.STATS_URL)

        assert response.status_code == 200
        assert response.json() == {
            "total_orders": 1,
            "total_revenue": "52.50",
            "total_users": 1,
            "total_sellers": 2,
        }

    def test_seller_dashboard(self, as_user, seller_b, product_a, two_seller_order):
        response = as_user(seller_b).get(
            self.STATS_URL, {"product": str(product_a.id)}
        )

        assert response.status_code == 200
        assert response.json() == {
            "total_orders": 0,
            "total_revenue": "0.00",
            "total_products": 1,
        }

    def test_buyer_is_forbidden(self, as_user, buyer):
        response = as_user(buyer).get(self.STATS_URL)

        assert response.status_code == 403

    def test_malformed_seller_filter(self, as_user, admin_user):
        response = as_user(admin_user).get(self.STATS_URL, {"seller": "nope"})

        assert response.status_code == 400
