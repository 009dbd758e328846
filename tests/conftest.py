"""Shared fixtures: an in-memory stand-in for DataStore and sample catalog data."""
import copy
import os
import sys
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from models.catalog import Product, Order, OrderItem, ShippingAddress, Policy
from models.conversation import Conversation


class FakeDataStore:
    """Implements the DataStore query surface over plain lists."""

    def __init__(self, products=None, orders=None, policies=None):
        self.products: List[Product] = list(products or [])
        self.orders: List[Order] = list(orders or [])
        self.policies: List[Policy] = list(policies or [])
        self.conversations: Dict[str, Conversation] = {}
        self.save_count = 0

    async def find_order_by_number(self, order_number: str) -> Optional[Order]:
        for order in self.orders:
            if order.order_number == order_number.upper():
                return order
        return None

    async def find_orders_by_owner(self, owner_id: str) -> List[Order]:
        owned = [o for o in self.orders if o.owner_id == owner_id]
        return sorted(owned, key=lambda o: o.created_at, reverse=True)

    async def find_in_stock_products(self) -> List[Product]:
        in_stock = [p for p in self.products if p.in_stock]
        return sorted(in_stock, key=lambda p: (p.category, p.name))

    async def find_product_by_name(self, name: str) -> Optional[Product]:
        for product in self.products:
            if name.lower() in product.name.lower():
                return product
        return None

    async def find_policy_by_type(self, policy_type: str) -> Optional[Policy]:
        for policy in self.policies:
            if policy.type == policy_type:
                return policy
        return None

    async def get_conversation(self, conversation_id: str, owner_id: str) -> Optional[Conversation]:
        conversation = self.conversations.get(conversation_id)
        if conversation is None or conversation.owner_id != owner_id:
            return None
        return copy.deepcopy(conversation)

    async def find_latest_conversation(self, owner_id: str) -> Optional[Conversation]:
        owned = await self.list_conversations(owner_id)
        return owned[0] if owned else None

    async def list_conversations(self, owner_id: str) -> List[Conversation]:
        owned = [copy.deepcopy(c) for c in self.conversations.values() if c.owner_id == owner_id]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    async def save_conversation(self, conversation: Conversation) -> None:
        self.save_count += 1
        self.conversations[conversation.conversation_id] = copy.deepcopy(conversation)

    async def delete_conversation(self, conversation_id: str, owner_id: str) -> bool:
        conversation = self.conversations.get(conversation_id)
        if conversation is None or conversation.owner_id != owner_id:
            return False
        del self.conversations[conversation_id]
        return True


def _dt(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
def sample_products():
    return [
        Product(name="Smartphone X", description="High-end smartphone with advanced camera.",
                price=82270, category="Electronics", sku="PHONE-X-001", in_stock=True, stock_quantity=50),
        Product(name="Wireless Headphones", description="Noise-canceling wireless headphones.",
                price=20567, category="Audio", sku="AUDIO-HP-002", in_stock=True, stock_quantity=100),
        Product(name="Smart Watch", description="Track your fitness.",
                price=28793, category="Wearables", sku="WATCH-SW-003", in_stock=True, stock_quantity=75),
        Product(name="Laptop Pro", description="Powerful laptop for professionals.",
                price=123404, category="Computers", sku="COMP-LP-004", in_stock=True, stock_quantity=25),
        Product(name="Gaming Console", description="Next-generation gaming console.",
                price=41134, category="Gaming", sku="GAME-C-005", in_stock=False, stock_quantity=0),
    ]


@pytest.fixture
def sample_orders():
    return [
        Order(
            order_number="ORD-001",
            owner_id="user_1",
            items=[OrderItem(name="Smartphone X", quantity=1, price=82270)],
            total_amount=82270,
            status="delivered",
            shipping_address=ShippingAddress(
                street="42 MG Road", city="Bangalore", state="Karnataka",
                zip_code="560001", country="India"
            ),
            created_at=_dt(2024, 3, 1),
            updated_at=_dt(2024, 3, 3),
            estimated_shipping_date=_dt(2024, 3, 3),
        ),
        Order(
            order_number="ORD-002",
            owner_id="user_1",
            items=[OrderItem(name="Wireless Headphones", quantity=1, price=20567)],
            total_amount=20567,
            status="processing",
            shipping_address=None,
            created_at=_dt(2024, 4, 1),
            updated_at=_dt(2024, 4, 1),
            estimated_shipping_date=None,
        ),
    ]


@pytest.fixture
def sample_policies():
    return [
        Policy(type="return", title="Return Policy",
               content="Our return policy allows you to return items within 30 days of delivery for a full refund."),
        Policy(type="shipping", title="Shipping Policy",
               content="Standard shipping: 3-5 business days"),
    ]


@pytest.fixture
def store(sample_products, sample_orders, sample_policies):
    return FakeDataStore(sample_products, sample_orders, sample_policies)
