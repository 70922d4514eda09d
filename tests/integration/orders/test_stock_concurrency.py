"""Concurrency integration tests for stock and voucher reservation.

Proves that row locks plus conditional updates in
``OrderService.create_order`` serialize concurrent checkouts:

- Product with **stock = 5**; 10 threads each buy 1 unit.
  Exactly 5 succeed, 5 raise ``InsufficientStock``; final stock is 0.
- Voucher with **usage_limit = 3**; 6 threads each order with it.
  Exactly 3 succeed; ``used_count`` ends at 3.

Uses ``TransactionTestCase`` so each thread sees committed data.  Needs a
backend with ``SELECT ... FOR UPDATE``: run with
``TEST_DATABASE_URL=postgres://...`` (``pip install .[postgres]``); skipped on
SQLite.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from decimal import Decimal

import django
from django.test import TransactionTestCase, skipUnlessDBFeature
from django.utils import timezone

from modules.catalog.models import Product
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import InsufficientStock
from modules.orders.views import build_order_service
from modules.users.models import ShippingAddress, User
from modules.vouchers.constants import VoucherType
from modules.vouchers.exceptions import VoucherUsageLimitReached
from modules.vouchers.models import Voucher

logger = logging.getLogger(__name__)

INITIAL_STOCK = 5
NUM_WORKERS = 10
VOUCHER_LIMIT = 3
VOUCHER_WORKERS = 6


@skipUnlessDBFeature("has_select_for_update")
class TestStockConcurrency(TransactionTestCase):
    """Prove atomic stock and voucher reservation under concurrent load."""

    def setUp(self):
        self.user = User.objects.create_user(
            "concurrency", email="concurrency@example.com", password="pw123456"
        )
        self.address = ShippingAddress.objects.create(
            user=self.user,
            receiver_name="Concurrency",
            receiver_phone="0900000000",
            address="1 Nguyen Hue, Ho Chi Minh City",
        )
        self.product = Product.objects.create(
            sku="GAMING-LAPTOP",
            name="Gaming Laptop",
            price=Decimal("29990000"),
            stock=INITIAL_STOCK,
        )

    def _place_order_in_thread(self, thread_id: int, voucher_code=None) -> str:
        """Attempt one checkout on a dedicated connection."""
        django.db.connections.close_all()

        dto = CreateOrderDTO(
            user_id=self.user.id,
            shipping_address_id=self.address.id,
            payment_method=PaymentMethod.COD,
            items=[CreateOrderItemDTO(product_id=self.product.id, quantity=1)],
            voucher_code=voucher_code,
            note=f"Concurrency thread {thread_id}",
        )
        try:
            build_order_service().create_order(dto)
            logger.warning("Thread %d: order created successfully", thread_id)
            return "success"
        except InsufficientStock:
            logger.warning("Thread %d: InsufficientStock (expected)", thread_id)
            return "insufficient"
        except VoucherUsageLimitReached:
            logger.warning("Thread %d: voucher exhausted (expected)", thread_id)
            return "voucher_exhausted"
        finally:
            django.db.connections.close_all()

    def _run(self, workers: int, **kwargs) -> list:
        results = []
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self._place_order_in_thread, i, **kwargs): i
                for i in range(workers)
            }
            for future in as_completed(futures):
                results.append(future.result())
        return results

    def test_concurrent_orders_exhaust_stock(self):
        """10 threads buy 1 unit from stock=5: exactly 5 succeed."""
        results = self._run(NUM_WORKERS)

        self.assertEqual(results.count("success"), INITIAL_STOCK)
        self.assertEqual(results.count("insufficient"), NUM_WORKERS - INITIAL_STOCK)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)

    def test_stock_conservation(self):
        """initial = sold + remaining, and stock never goes negative."""
        results = self._run(NUM_WORKERS)

        self.product.refresh_from_db()
        self.assertGreaterEqual(self.product.stock, 0)
        self.assertEqual(INITIAL_STOCK, results.count("success") + self.product.stock)

    def test_voucher_usage_limit_under_contention(self):
        """6 threads share a voucher limited to 3 uses: exactly 3 succeed."""
        now = timezone.now()
        voucher = Voucher.objects.create(
            code="RACE",
            type=VoucherType.FIXED,
            discount_amount=Decimal("10000"),
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            usage_limit=VOUCHER_LIMIT,
        )
        Product.objects.filter(id=self.product.id).update(stock=100)

        results = self._run(VOUCHER_WORKERS, voucher_code="RACE")

        voucher.refresh_from_db()
        self.assertEqual(results.count("success"), VOUCHER_LIMIT)
        self.assertEqual(results.count("voucher_exhausted"), VOUCHER_WORKERS - VOUCHER_LIMIT)
        self.assertEqual(voucher.used_count, VOUCHER_LIMIT)
