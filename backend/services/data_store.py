"""Data store for catalog, orders, policies and conversations using Supabase."""
import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import acreate_client, AsyncClient

from config import SUPABASE_URL, SUPABASE_KEY
from models.catalog import Product, Order, OrderItem, ShippingAddress, Policy
from models.conversation import Conversation, Turn, TurnMetadata, Feedback

logger = logging.getLogger(__name__)


class DataStore:
    """
    Async query layer over the Supabase tables the chatbot reads and writes.

    Products, orders and policies are read-only here. A conversation is stored
    as one row whose `turns` column holds the whole turn list, so every save is
    a single-row write.
    """

    PRODUCTS_TABLE = "products"
    ORDERS_TABLE = "orders"
    POLICIES_TABLE = "policies"
    CONVERSATIONS_TABLE = "conversations"

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def connect(
        cls,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY
    ) -> "DataStore":
        """
        Create a DataStore backed by a new Supabase async client.

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        client = await acreate_client(supabase_url, supabase_key)
        logger.info("DataStore connected to Supabase")
        return cls(client)

    # Catalog queries

    async def find_order_by_number(self, order_number: str) -> Optional[Order]:
        result = await (
            self.client.table(self.ORDERS_TABLE)
            .select("*")
            .eq("order_number", order_number.upper())
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._row_to_order(result.data[0])

    async def find_orders_by_owner(self, owner_id: str) -> List[Order]:
        """All orders owned by a customer, newest first."""
        result = await (
            self.client.table(self.ORDERS_TABLE)
            .select("*")
            .eq("owner_id", owner_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [self._row_to_order(row) for row in result.data or []]

    async def find_in_stock_products(self) -> List[Product]:
        """In-stock products sorted by category, then name."""
        result = await (
            self.client.table(self.PRODUCTS_TABLE)
            .select("*")
            .eq("in_stock", True)
            .order("category")
            .order("name")
            .execute()
        )
        return [self._row_to_product(row) for row in result.data or []]

    async def find_product_by_name(self, name: str) -> Optional[Product]:
        """First product whose name contains `name`, case-insensitively."""
        pattern = f"%{self._escape_like(name)}%"
        result = await (
            self.client.table(self.PRODUCTS_TABLE)
            .select("*")
            .ilike("name", pattern)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._row_to_product(result.data[0])

    async def find_policy_by_type(self, policy_type: str) -> Optional[Policy]:
        result = await (
            self.client.table(self.POLICIES_TABLE)
            .select("*")
            .eq("type", policy_type)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        row = result.data[0]
        return Policy(type=row["type"], title=row["title"], content=row["content"])

    # Conversations

    async def get_conversation(self, conversation_id: str, owner_id: str) -> Optional[Conversation]:
        """Fetch a conversation only if it belongs to `owner_id`."""
        result = await (
            self.client.table(self.CONVERSATIONS_TABLE)
            .select("*")
            .eq("conversation_id", conversation_id)
            .eq("owner_id", owner_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._row_to_conversation(result.data[0])

    async def find_latest_conversation(self, owner_id: str) -> Optional[Conversation]:
        result = await (
            self.client.table(self.CONVERSATIONS_TABLE)
            .select("*")
            .eq("owner_id", owner_id)
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._row_to_conversation(result.data[0])

    async def list_conversations(self, owner_id: str) -> List[Conversation]:
        """All conversations of a customer, most recently updated first."""
        result = await (
            self.client.table(self.CONVERSATIONS_TABLE)
            .select("*")
            .eq("owner_id", owner_id)
            .order("updated_at", desc=True)
            .execute()
        )
        return [self._row_to_conversation(row) for row in result.data or []]

    async def save_conversation(self, conversation: Conversation) -> None:
        """Insert or replace the whole conversation row in one write."""
        await (
            self.client.table(self.CONVERSATIONS_TABLE)
            .upsert(self._conversation_to_row(conversation), on_conflict="conversation_id")
            .execute()
        )
        logger.debug(f"Saved conversation {conversation.conversation_id} with {len(conversation.turns)} turns")

    async def delete_conversation(self, conversation_id: str, owner_id: str) -> bool:
        """Delete an owned conversation. Returns False when nothing matched."""
        result = await (
            self.client.table(self.CONVERSATIONS_TABLE)
            .delete()
            .eq("conversation_id", conversation_id)
            .eq("owner_id", owner_id)
            .execute()
        )
        return bool(result.data)

    # Row mapping

    @staticmethod
    def _escape_like(value: str) -> str:
        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    @classmethod
    def _row_to_product(cls, row: Dict[str, Any]) -> Product:
        return Product(
            product_id=str(row["id"]) if row.get("id") is not None else None,
            name=row["name"],
            description=row.get("description") or "",
            price=float(row.get("price") or 0),
            category=row.get("category") or "",
            sku=row.get("sku") or "",
            in_stock=bool(row.get("in_stock", True)),
            stock_quantity=int(row.get("stock_quantity") or 0),
            image_url=row.get("image_url") or "",
        )

    @classmethod
    def _row_to_order(cls, row: Dict[str, Any]) -> Order:
        address = row.get("shipping_address")
        return Order(
            order_number=row["order_number"],
            owner_id=row.get("owner_id") or "",
            items=[
                OrderItem(
                    name=item.get("name") or item.get("product_id") or "Unnamed Product",
                    quantity=int(item.get("quantity") or 0),
                    price=float(item.get("price") or 0),
                )
                for item in row.get("items") or []
            ],
            total_amount=float(row.get("total_amount") or 0),
            status=row.get("status"),
            shipping_address=ShippingAddress(**address) if address else None,
            created_at=cls._parse_optional(row.get("created_at")),
            updated_at=cls._parse_optional(row.get("updated_at")),
            estimated_shipping_date=cls._parse_optional(row.get("estimated_shipping_date")),
        )

    @classmethod
    def _row_to_conversation(cls, row: Dict[str, Any]) -> Conversation:
        turns = []
        for t in row.get("turns") or []:
            metadata = t.get("metadata")
            turns.append(Turn(
                speaker=t["speaker"],
                message=t["message"],
                timestamp=cls._parse_timestamp(t["timestamp"]),
                metadata=TurnMetadata(**metadata) if metadata else None,
            ))

        feedback = row.get("feedback")
        return Conversation(
            conversation_id=row["conversation_id"],
            owner_id=row["owner_id"],
            turns=turns,
            created_at=cls._parse_timestamp(row["created_at"]),
            updated_at=cls._parse_timestamp(row["updated_at"]),
            title=row.get("title") or "New Conversation",
            active=row.get("active", True),
            ended_at=cls._parse_optional(row.get("ended_at")),
            last_message=row.get("last_message"),
            feedback=Feedback(**feedback) if feedback else None,
        )

    @staticmethod
    def _conversation_to_row(conversation: Conversation) -> Dict[str, Any]:
        return {
            "conversation_id": conversation.conversation_id,
            "owner_id": conversation.owner_id,
            "title": conversation.title,
            "turns": [
                {
                    "speaker": t.speaker,
                    "message": t.message,
                    "timestamp": t.timestamp.isoformat(),
                    "metadata": asdict(t.metadata) if t.metadata else None,
                }
                for t in conversation.turns
            ],
            "created_at": conversation.created_at.isoformat(),
            "updated_at": conversation.updated_at.isoformat(),
            "active": conversation.active,
            "ended_at": conversation.ended_at.isoformat() if conversation.ended_at else None,
            "last_message": conversation.last_message,
            "feedback": asdict(conversation.feedback) if conversation.feedback else None,
        }

    @classmethod
    def _parse_optional(cls, value: Optional[str]) -> Optional[datetime]:
        return cls._parse_timestamp(value) if value else None

    @staticmethod
    def _parse_timestamp(timestamp_str: str) -> datetime:
        """
        Parse timestamp string from Supabase, handling various formats.

        Supabase can return timestamps with varying microsecond precision,
        which Python's fromisoformat() can't always handle. This method
        normalizes the fractional part to six digits.
        """
        timestamp_str = timestamp_str.replace("Z", "+00:00")

        if "." in timestamp_str:
            head, tail = timestamp_str.split(".", 1)
            tz = ""
            for sign in ("+", "-"):
                if sign in tail:
                    tail, tz_rest = tail.split(sign, 1)
                    tz = sign + tz_rest
                    break
            microseconds = tail[:6].ljust(6, "0")
            timestamp_str = f"{head}.{microseconds}{tz}"

        return datetime.fromisoformat(timestamp_str)
