from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from modules.catalog.models import Category, Product, ProductVariant
from modules.core.exceptions import DomainError
from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.views import build_order_service
from modules.users.models import ShippingAddress, User, UserRole
from modules.vouchers.constants import VoucherType
from modules.vouchers.models import Voucher

# code, type, percent, amount, max_discount, start offset (days), length (days),
# usage_limit, minimum_order_value, is_active
VOUCHERS = [
    ("WELCOME15", VoucherType.PERCENT, 15, None, 50000, 0, 30, 1000, 100000, True),
    ("FIXED20K", VoucherType.FIXED, None, 20000, None, 0, 60, 500, 150000, True),
    ("PERCENT10NOMAX", VoucherType.PERCENT, 10, None, None, 7, 14, None, 50000, True),
    ("BIGSALE100K", VoucherType.FIXED, None, 100000, None, 0, 30, 200, 500000, True),
    ("EXPIRED5", VoucherType.PERCENT, 5, None, 10000, -20, 15, 100, 0, False),
    ("FUTURE30", VoucherType.FIXED, None, 30000, None, 30, 30, 300, 200000, True),
    ("LIMITED25", VoucherType.PERCENT, 25, None, 75000, 0, 365, 50, 300000, True),
    ("DISABLED50K", VoucherType.FIXED, None, 50000, None, -10, 20, 100, 250000, False),
    ("NOMIN5PERCENT", VoucherType.PERCENT, 5, None, 20000, 0, 45, 500, None, True),
]

CATALOG = {
    "phones": [
        ("PHN-001", "Smartphone X", Decimal("7990000"), Decimal("7490000")),
        ("PHN-002", "Smartphone Lite", Decimal("3490000"), None),
    ],
    "accessories": [
        ("ACC-001", "USB-C Cable", Decimal("90000"), None),
        ("ACC-002", "Wireless Charger", Decimal("450000"), Decimal("390000")),
        ("ACC-003", "Phone Case", Decimal("150000"), None),
    ],
    "apparel": [
        ("APP-001", "Cotton T-Shirt", Decimal("199000"), None),
        ("APP-002", "Hoodie", Decimal("459000"), None),
    ],
}

APPAREL_SIZES = ["S", "M", "L"]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        with transaction.atomic():
            customers = self._seed_users()
            products = self._seed_catalog()
            vouchers = self._seed_vouchers()
        orders_created = self._seed_orders(customers, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"customers={len(customers)}, "
                f"products={len(products)}, "
                f"vouchers={len(vouchers)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> list[User]:
        self.stdout.write("Creating users...")
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser(
                "admin", email="admin@example.com", password="admin123",
                role=UserRole.ADMIN,
            )
        if not User.objects.filter(username="staff").exists():
            User.objects.create_user(
                "staff", email="staff@example.com", password="staff123",
                role=UserRole.STAFF, is_staff=True,
            )

        customers: list[User] = []
        for name in ["an", "binh", "chi", "dung", "giang"]:
            user, created = User.objects.get_or_create(
                username=name,
                defaults={"email": f"{name}@example.com", "role": UserRole.CUSTOMER},
            )
            if created:
                user.set_password(f"{name}123")
                user.save(update_fields=["password"])
                ShippingAddress.objects.create(
                    user=user,
                    receiver_name=name.title(),
                    receiver_phone=f"09{random.randint(10000000, 99999999)}",
                    address=f"{random.randint(1, 300)} Le Loi, District 1, Ho Chi Minh City",
                    is_default=True,
                )
            customers.append(user)
        self.stdout.write(self.style.SUCCESS("Creating users... Done!"))
        return customers

    def _seed_catalog(self) -> list[Product]:
        self.stdout.write("Creating catalog...")
        products: list[Product] = []
        for slug, rows in CATALOG.items():
            category, _ = Category.objects.get_or_create(
                slug=slug, defaults={"name": slug.title()}
            )
            for sku, name, price, discount_price in rows:
                product, created = Product.objects.get_or_create(
                    sku=sku,
                    defaults={
                        "name": name,
                        "category": category,
                        "price": price,
                        "discount_price": discount_price,
                        "stock": random.randint(20, 200),
                    },
                )
                if created and slug == "apparel":
                    for size in APPAREL_SIZES:
                        ProductVariant.objects.create(
                            product=product,
                            sku=f"{sku}-{size}",
                            name=f"{name} {size}",
                            price=price,
                            stock=random.randint(5, 50),
                        )
                products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating catalog... Done!"))
        return products

    def _seed_vouchers(self) -> list[Voucher]:
        self.stdout.write("Creating vouchers...")
        now = timezone.now()
        vouchers: list[Voucher] = []
        for (
            code, kind, percent, amount, max_discount, start, length,
            limit, minimum, active,
        ) in VOUCHERS:
            starts = now + timedelta(days=start)
            voucher, _ = Voucher.objects.get_or_create(
                code=code,
                defaults={
                    "type": kind,
                    "discount_percent": percent,
                    "discount_amount": amount,
                    "max_discount": max_discount,
                    "start_date": starts,
                    "end_date": starts + timedelta(days=length),
                    "usage_limit": limit,
                    "minimum_order_value": minimum,
                    "is_active": active,
                },
            )
            vouchers.append(voucher)
        self.stdout.write(self.style.SUCCESS("Creating vouchers... Done!"))
        return vouchers

    def _seed_orders(self, customers: list[User], products: list[Product]) -> int:
        """Place orders through ``OrderService`` so stock and history stay consistent."""
        self.stdout.write("Creating orders...")
        service = build_order_service()
        staff = User.objects.filter(role=UserRole.STAFF).first()
        simple_products = [p for p in products if not p.variants.exists()]
        created = 0

        for i in range(20):
            customer = random.choice(customers)
            address = customer.shipping_addresses.alive().first()
            if address is None:
                continue
            picks = random.sample(simple_products, k=random.randint(1, 3))
            try:
                order = service.create_order(
                    CreateOrderDTO(
                        user_id=customer.id,
                        shipping_address_id=address.id,
                        payment_method=random.choice(PaymentMethod.values),
                        items=[
                            CreateOrderItemDTO(
                                product_id=p.id, quantity=random.randint(1, 2)
                            )
                            for p in picks
                        ],
                        voucher_code="WELCOME15" if i % 5 == 0 else None,
                        shipping_fee=Decimal("30000"),
                        note=f"Seed order {i + 1}",
                    )
                )
            except DomainError as exc:
                self.stdout.write(self.style.WARNING(f"Skipped seed order {i + 1}: {exc}"))
                continue
            created += 1

            roll = random.random()
            if roll < 0.2:
                service.cancel_order(order.id, customer.id, customer.role)
            elif roll < 0.6 and staff is not None:
                service.update_status(order.id, OrderStatus.CONFIRMED, actor_id=staff.id)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
