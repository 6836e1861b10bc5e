import itertools
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.accounts.models import Role
from modules.accounts.repositories import UserDjangoRepository
from modules.orders.actors import actor_for
from modules.orders.dtos import PlaceOrderDTO
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.models import Product
from modules.products.repositories import ProductDjangoRepository

User = get_user_model()

SHIPPING_ADDRESS = {
    "street": "12 Market Street",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
    "country": "US",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Accounts & catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_user():
    counter = itertools.count(1)

    def _make(role=Role.USER, **kwargs):
        n = next(counter)
        defaults = {
            "username": f"{role}-{n}",
            "name": f"Member {n}",
            "email": f"{role}{n}@example.com",
            "phone_number": f"+1555000{n:04d}",
        }
        defaults.update(kwargs)
        return User.objects.create_user(password="testpass123", role=role, **defaults)

    return _make


@pytest.fixture()
def buyer(make_user):
    return make_user(Role.USER, name="Alice Buyer", email="alice@example.com")


@pytest.fixture()
def seller_a(make_user):
    return make_user(Role.SELLER, name="Seller A")


@pytest.fixture()
def seller_b(make_user):
    return make_user(Role.SELLER, name="Seller B")


@pytest.fixture()
def admin_user(make_user):
    return make_user(Role.ADMIN, name="Root Admin")


@pytest.fixture()
def make_product():
    def _make(seller, name="Widget", price="10.00", **kwargs):
        return Product.objects.create(
            seller=seller, name=name, price=Decimal(price), **kwargs
        )

    return _make


@pytest.fixture()
def product_a(make_product, seller_a):
    return make_product(seller_a, name="Red Mug", price="12.50")


@pytest.fixture()
def product_b(make_product, seller_b):
    return make_product(seller_b, name="Blue Lamp", price="40.00")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest.fixture()
def make_service():
    def _make(**kwargs):
        return OrderService(
            order_repository=kwargs.pop("order_repository", OrderDjangoRepository()),
            product_repository=ProductDjangoRepository(),
            user_repository=UserDjangoRepository(),
            **kwargs,
        )

    return _make


@pytest.fixture()
def order_service(make_service):
    """Service wired to the global bus, so activity and notifications are written."""
    return make_service()


@pytest.fixture()
def order_payload():
    def _payload(*products, quantity=1, **overrides):
        items = [
            {
                "product_id": product.id,
                "quantity": quantity,
                "unit_price": product.price,
                "name": product.name,
            }
            for product in products
        ]
        total = sum((product.price * quantity for product in products), Decimal("0"))
        data = {
            "items": items,
            "shipping_address": dict(SHIPPING_ADDRESS),
            "total_price": total,
        }
        data.update(overrides)
        return data

    return _payload


@pytest.fixture()
def place_order(order_service, order_payload):
    def _place(buyer, *products, **overrides):
        dto = PlaceOrderDTO(**order_payload(*products, **overrides))
        return order_service.place_order(actor_for(buyer), dto)

    return _place


@pytest.fixture()
def two_seller_order(place_order, buyer, product_a, product_b):
    """Order with one item from seller A (first) and one from seller B."""
    return place_order(buyer, product_a, product_b)


def item_for(order, product):
    """Return the line item of *order* holding *product*."""
    return next(item for item in order.items.all() if item.product_id == product.id)


@pytest.fixture()
def item_of():
    return item_for
