"""
Seed Script for ShopAssist Support Chatbot.

This script:
1. Clears existing products, policies and orders from Supabase
2. Inserts the sample product catalog
3. Inserts the store policies
4. Inserts sample orders for one customer

Usage:
    python seed_data.py <owner_id>

The owner id is the `sub` claim of the customer whose tokens will be used
to chat; it falls back to SEED_OWNER_ID from the environment.
"""
import os
import sys
import logging
from pathlib import Path
from typing import Any, Dict, List

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from supabase import create_client, Client

from config import SUPABASE_URL, SUPABASE_KEY, CURRENCY_SYMBOL
from services.data_store import DataStore
from services.template_engine import format_currency

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


PRODUCTS: List[Dict[str, Any]] = [
    {
        "name": "Smartphone X",
        "description": "High-end smartphone with advanced camera and long battery life.",
        "price": 82270,
        "category": "Electronics",
        "in_stock": True,
        "stock_quantity": 50,
        "sku": "PHONE-X-001",
    },
    {
        "name": "Wireless Headphones",
        "description": "Premium noise-canceling wireless headphones with 30-hour battery life.",
        "price": 20567,
        "category": "Audio",
        "in_stock": True,
        "stock_quantity": 100,
        "sku": "AUDIO-HP-002",
    },
    {
        "name": "Smart Watch",
        "description": "Track your fitness, receive notifications, and more with this smart watch.",
        "price": 28793,
        "category": "Wearables",
        "in_stock": True,
        "stock_quantity": 75,
        "sku": "WATCH-SW-003",
    },
    {
        "name": "Laptop Pro",
        "description": "Powerful laptop for professionals with high-performance specs.",
        "price": 123404,
        "category": "Computers",
        "in_stock": True,
        "stock_quantity": 25,
        "sku": "COMP-LP-004",
    },
    {
        "name": "Gaming Console",
        "description": "Next-generation gaming console with 4K graphics and fast load times.",
        "price": 41134,
        "category": "Gaming",
        "in_stock": False,
        "stock_quantity": 0,
        "sku": "GAME-C-005",
    },
]

POLICIES: List[Dict[str, str]] = [
    {
        "type": "return",
        "title": "Return Policy",
        "content": (
            "Our return policy allows you to return items within 30 days of delivery for a full refund.\n\n"
            "Return shipping costs are the responsibility of the customer unless the item was "
            "received damaged or incorrect.\n\n"
            "For damaged or defective items, we will cover return shipping costs.\n\n"
            "Please contact our customer service team to initiate a return."
        ),
    },
    {
        "type": "refund",
        "title": "Refund Policy",
        "content": (
            "Refunds are processed within 5-7 business days after receiving returned items.\n"
            "Refunds will be issued to the original payment method used for the purchase.\n"
            "Shipping charges are non-refundable unless the return is due to our error.\n"
            "For damaged or defective items, we will cover return shipping costs."
        ),
    },
    {
        "type": "shipping",
        "title": "Shipping Policy",
        "content": (
            "We offer standard and express shipping options.\n\n"
            "Standard shipping: 3-5 business days\n"
            "Express shipping: 1-2 business days\n\n"
            f"Free shipping on orders over {format_currency(4000, CURRENCY_SYMBOL)}\n\n"
            "International shipping is available to select countries. "
            "Rates and delivery times vary by location."
        ),
    },
    {
        "type": "privacy",
        "title": "Privacy Policy",
        "content": (
            "We collect and process your personal data in accordance with our privacy policy.\n"
            "Your data is used to process orders, provide customer support, and improve our services.\n"
            "We never share your personal information with third parties without your consent.\n"
            "You can request your data to be deleted at any time."
        ),
    },
]


def build_orders(owner_id: str) -> List[Dict[str, Any]]:
    """Sample orders for `owner_id`, one per status."""
    return [
        {
            "order_number": "ORD-001",
            "owner_id": owner_id,
            "items": [{"name": "Smartphone X", "quantity": 1, "price": 82270}],
            "total_amount": 82270,
            "status": "delivered",
            "shipping_address": {
                "street": "42 MG Road",
                "city": "Bangalore",
                "state": "Karnataka",
                "zip_code": "560001",
                "country": "India",
            },
            "created_at": "2024-03-01T00:00:00+00:00",
            "updated_at": "2024-03-03T00:00:00+00:00",
            "estimated_shipping_date": "2024-03-03T00:00:00+00:00",
        },
        {
            "order_number": "ORD-002",
            "owner_id": owner_id,
            "items": [{"name": "Wireless Headphones", "quantity": 1, "price": 20567}],
            "total_amount": 20567,
            "status": "processing",
            "shipping_address": {
                "street": "15 Park Street",
                "city": "Mumbai",
                "state": "Maharashtra",
                "zip_code": "400001",
                "country": "India",
            },
            "created_at": "2024-04-01T00:00:00+00:00",
            "updated_at": "2024-04-01T00:00:00+00:00",
            "estimated_shipping_date": None,
        },
        {
            "order_number": "ORD-003",
            "owner_id": owner_id,
            "items": [{"name": "Smart Watch", "quantity": 1, "price": 28793}],
            "total_amount": 28793,
            "status": "shipped",
            "shipping_address": {
                "street": "7 Connaught Place",
                "city": "New Delhi",
                "state": "Delhi",
                "zip_code": "110001",
                "country": "India",
            },
            "created_at": "2024-04-05T00:00:00+00:00",
            "updated_at": "2024-04-06T00:00:00+00:00",
            "estimated_shipping_date": "2024-04-08T00:00:00+00:00",
        },
    ]


def clear_table(client: Client, table: str, key_column: str) -> None:
    """
    Delete every row from a table.

    Args:
        client: Supabase client
        table: Table name
        key_column: A non-null column to filter on (PostgREST refuses unfiltered deletes)
    """
    logger.info(f"Clearing {table}...")
    client.table(table).delete().neq(key_column, "").execute()


def main():
    """Main seeding process."""
    owner_id = sys.argv[1] if len(sys.argv) > 1 else os.getenv("SEED_OWNER_ID")

    try:
        logger.info("="*60)
        logger.info("Seeding ShopAssist sample data")
        logger.info("="*60)

        if not owner_id:
            logger.error("No owner id given. Usage: python seed_data.py <owner_id>")
            sys.exit(1)

        if not SUPABASE_URL or not SUPABASE_KEY:
            logger.error("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")
            sys.exit(1)

        client = create_client(SUPABASE_URL, SUPABASE_KEY)
        logger.info("✓ Supabase client initialized")

        logger.info("\n[1/4] Clearing existing data...")
        clear_table(client, DataStore.ORDERS_TABLE, "order_number")
        clear_table(client, DataStore.POLICIES_TABLE, "type")
        clear_table(client, DataStore.PRODUCTS_TABLE, "sku")

        logger.info("\n[2/4] Inserting products...")
        client.table(DataStore.PRODUCTS_TABLE).insert(PRODUCTS).execute()
        logger.info(f"✓ {len(PRODUCTS)} products inserted")

        logger.info("\n[3/4] Inserting policies...")
        client.table(DataStore.POLICIES_TABLE).insert(POLICIES).execute()
        logger.info(f"✓ {len(POLICIES)} policies inserted")

        logger.info(f"\n[4/4] Inserting orders for {owner_id}...")
        orders = build_orders(owner_id)
        client.table(DataStore.ORDERS_TABLE).insert(orders).execute()
        logger.info(f"✓ {len(orders)} orders inserted")

        logger.info("\n" + "="*60)
        logger.info("SEEDING COMPLETE!")
        logger.info("="*60)
        logger.info("Start the API with: python main.py")

    except KeyboardInterrupt:
        logger.warning("\nSeeding interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"\nSeeding failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
