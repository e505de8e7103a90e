from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.carts.dtos import AddCartItemDTO
from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.services import CartService
from modules.core.identity import user_owner_key
from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.dtos import AddressDTO, CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.exceptions import InsufficientStock
from modules.products.models import Product, ProductVariant
from modules.products.repositories.django_repository import ProductDjangoRepository

# Status each seeded order is walked to, following the state machine.
_FULFILMENT_PATH = [
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=20)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(users, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> list:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
        customers = []
        for username in ("alice", "bob", "carol"):
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(username, password=f"{username}123")
            customers.append(user)
        return customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        catalog_repo = ProductDjangoRepository()
        products: list[Product] = []
        catalog = [
            ("SKN-001", "Hydrating Serum", Decimal("34.90"), ["30ml", "50ml"]),
            ("SKN-002", "Daily Moisturizer", Decimal("24.50"), []),
            ("SKN-003", "Vitamin C Cream", Decimal("49.00"), ["50ml"]),
            ("HAI-001", "Argan Hair Oil", Decimal("19.90"), []),
            ("HAI-002", "Repair Shampoo", Decimal("12.90"), ["250ml", "500ml"]),
            ("BOD-001", "Shea Body Lotion", Decimal("15.00"), []),
            ("BOD-002", "Exfoliating Scrub", Decimal("22.00"), []),
            ("FRG-001", "Eau de Parfum", Decimal("89.00"), ["50ml", "100ml"]),
        ]
        for sku, name, price, variants in catalog:
            product = catalog_repo.get_by_sku(sku)
            if product is not None:
                # Re-runs leave live catalog rows and their stock untouched.
                products.append(product)
                continue
            product = Product.objects.create(
                sku=sku,
                name=name,
                description=f"{name} (seed)",
                price=price,
                stock_quantity=random.randint(20, 120),
            )
            for index, size in enumerate(variants, start=1):
                ProductVariant.objects.create(
                    product=product,
                    sku=f"{sku}-{size.upper()}",
                    name=size,
                    price=price + Decimal(index * 10),
                    stock_quantity=random.randint(10, 60),
                )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, users: list, products: list[Product], count: int) -> int:
        self.stdout.write("Creating orders...")
        if not users or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no users/products)."))
            return 0

        product_repo = ProductDjangoRepository()
        cart_repo = CartDjangoRepository()
        carts = CartService(cart_repo, product_repo)
        orders = OrderService(OrderDjangoRepository(), cart_repo)

        created = 0
        for _ in range(count):
            user = random.choice(users)
            owner_key = user_owner_key(user.pk)
            try:
                for product in random.sample(products, k=random.randint(1, 3)):
                    variant = product.variants.alive().first()
                    carts.add_item(
                        owner_key,
                        AddCartItemDTO(
                            product_id=product.id,
                            variant_id=variant.id if variant else None,
                            quantity=random.randint(1, 3),
                        ),
                    )
                address = AddressDTO(
                    first_name=user.username.title(),
                    last_name="Seed",
                    address_line_1="1 Market Street",
                    city="Springfield",
                    state="IL",
                    postal_code="62701",
                    country="US",
                )
                order = orders.create_order(
                    CreateOrderDTO(
                        owner_key=owner_key,
                        payment_method=random.choice(PaymentMethod.values),
                        shipping_address=address,
                        billing_address=address,
                        actor_id=owner_key,
                    )
                )
            except InsufficientStock:
                carts.clear(owner_key)
                continue

            if random.random() < 0.2:
                orders.cancel_order(order.id, reason="Changed my mind")
            else:
                for status in _FULFILMENT_PATH[: random.randint(0, len(_FULFILMENT_PATH))]:
                    orders.update_status(order.id, status, tracking_number="TRK-SEED")
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
