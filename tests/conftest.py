from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from modules.catalog.models import Category, Product, ProductVariant
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.views import build_order_service
from modules.users.models import ShippingAddress, User, UserRole
from modules.vouchers.constants import VoucherType
from modules.vouchers.models import Voucher


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
# Accounts
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer():
    return User.objects.create_user(
        "an", email="an@example.com", password="an123", role=UserRole.CUSTOMER
    )


@pytest.fixture()
def other_customer():
    return User.objects.create_user(
        "binh", email="binh@example.com", password="binh123", role=UserRole.CUSTOMER
    )


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        "staff", email="staff@example.com", password="staff123", role=UserRole.STAFF
    )


@pytest.fixture()
def address(customer):
    return ShippingAddress.objects.create(
        user=customer,
        receiver_name="An Nguyen",
        receiver_phone="0901234567",
        address="12 Le Loi, District 1, Ho Chi Minh City",
        is_default=True,
    )


@pytest.fixture()
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture()
def other_client(other_customer):
    client = APIClient()
    client.force_authenticate(user=other_customer)
    return client


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def accessories():
    return Category.objects.create(name="Accessories", slug="accessories")


@pytest.fixture()
def apparel():
    return Category.objects.create(name="Apparel", slug="apparel")


@pytest.fixture()
def product_a(accessories):
    """10000 per unit, 10 in stock."""
    return Product.objects.create(
        sku="acc-001",
        name="USB-C Cable",
        category=accessories,
        price=Decimal("10000.00"),
        stock=10,
    )


@pytest.fixture()
def product_b(apparel):
    return Product.objects.create(
        sku="APP-001",
        name="Cotton T-Shirt",
        category=apparel,
        price=Decimal("30000.00"),
        stock=0,
    )


@pytest.fixture()
def variant_b(product_b):
    """Size M of product B: 25000 per unit, 4 in stock."""
    return ProductVariant.objects.create(
        product=product_b,
        sku="app-001-m",
        name="Cotton T-Shirt M",
        price=Decimal("25000.00"),
        stock=4,
    )


@pytest.fixture()
def scarce_product(accessories):
    return Product.objects.create(
        sku="ACC-LTD",
        name="Limited Charger",
        category=accessories,
        price=Decimal("15000.00"),
        stock=3,
    )


# ---------------------------------------------------------------------------
# Vouchers
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_voucher():
    """Factory creating a voucher that is running right now."""

    def _make(code="SAVE", **overrides):
        now = timezone.now()
        fields = {
            "code": code,
            "type": VoucherType.FIXED,
            "discount_amount": Decimal("20000.00"),
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=1),
        }
        fields.update(overrides)
        return Voucher.objects.create(**fields)

    return _make


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def order_dto(customer, address):
    """Factory building a ``CreateOrderDTO`` for the default customer.

    ``lines`` holds ``(product, quantity)`` or ``(product, variant, quantity)``.
    """

    def _build(lines, **overrides):
        items = []
        for line in lines:
            if len(line) == 3:
                product, variant, quantity = line
            else:
                (product, quantity), variant = line, None
            items.append(
                CreateOrderItemDTO(
                    product_id=product.id,
                    product_variant_id=variant.id if variant else None,
                    quantity=quantity,
                )
            )
        fields = {
            "user_id": customer.id,
            "shipping_address_id": address.id,
            "payment_method": PaymentMethod.COD,
            "items": items,
        }
        fields.update(overrides)
        return CreateOrderDTO(**fields)

    return _build


@pytest.fixture()
def scenario_order(order_service, order_dto, product_a, product_b, variant_b):
    """3 x product A + 1 x variant B, shipping 5000: subtotal 55000, total 60000."""
    return order_service.create_order(
        order_dto(
            [(product_a, 3), (product_b, variant_b, 1)],
            shipping_fee=Decimal("5000"),
        )
    )
