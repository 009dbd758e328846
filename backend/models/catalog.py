"""Store catalog data models (read-only from the chatbot's perspective)."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

POLICY_TYPES = ("return", "refund", "shipping", "privacy", "terms")


@dataclass
class Product:
    """A catalog item."""
    name: str
    description: str
    price: float
    category: str
    sku: str
    in_stock: bool = True
    stock_quantity: int = 0
    image_url: str = ""
    product_id: Optional[str] = None


@dataclass
class OrderItem:
    """A single line on an order."""
    name: str
    quantity: int
    price: float


@dataclass
class ShippingAddress:
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


@dataclass
class Order:
    """A customer order, identified by a human-readable number like ORD-001."""
    order_number: str
    owner_id: str
    items: List[OrderItem] = field(default_factory=list)
    total_amount: float = 0.0
    status: Optional[str] = None  # processing / shipped / delivered
    shipping_address: Optional[ShippingAddress] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    estimated_shipping_date: Optional[datetime] = None


@dataclass
class Policy:
    """A store policy; one per type."""
    type: str
    title: str
    content: str
