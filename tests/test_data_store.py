"""Unit tests for DataStore row mapping and query construction."""
import sys
sys.path.insert(0, 'backend')

import asyncio
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from services.data_store import DataStore
from models.conversation import Conversation, Turn, TurnMetadata, Feedback, USER, BOT


def run(coro):
    return asyncio.run(coro)


def make_client(data):
    """
    Supabase client mock: every builder method returns the same query object,
    and `execute()` is awaitable and resolves to a result with `.data`.
    """
    query = MagicMock()
    for method in ("select", "eq", "ilike", "order", "limit", "upsert", "delete"):
        getattr(query, method).return_value = query
    query.execute = AsyncMock(return_value=MagicMock(data=data))

    client = MagicMock()
    client.table.return_value = query
    return client, query


ORDER_ROW = {
    "order_number": "ORD-001",
    "owner_id": "user_1",
    "items": [{"name": "Smartphone X", "quantity": 1, "price": 82270}],
    "total_amount": "82270.00",
    "status": "delivered",
    "shipping_address": {
        "street": "42 MG Road", "city": "Bangalore", "state": "Karnataka",
        "zip_code": "560001", "country": "India",
    },
    "created_at": "2024-03-01T00:00:00+00:00",
    "updated_at": "2024-03-03T00:00:00.12+00:00",
    "estimated_shipping_date": None,
}

PRODUCT_ROW = {
    "id": 1,
    "name": "Smartphone X",
    "description": "High-end smartphone",
    "price": "82270.00",
    "category": "Electronics",
    "sku": "PHONE-X-001",
    "in_stock": True,
    "stock_quantity": 50,
    "image_url": None,
}


class TestDataStoreQueries:
    """Test suite for DataStore queries against a mocked Supabase client."""

    def test_find_order_by_number(self):
        client, query = make_client([ORDER_ROW])
        store = DataStore(client)

        order = run(store.find_order_by_number("ord-001"))

        client.table.assert_called_with("orders")
        query.eq.assert_called_with("order_number", "ORD-001")
        assert order.order_number == "ORD-001"
        assert order.total_amount == 82270.0
        assert order.items[0].name == "Smartphone X"
        assert order.shipping_address.city == "Bangalore"
        assert order.created_at == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert order.updated_at.microsecond == 120000
        assert order.estimated_shipping_date is None

    def test_find_order_by_number_missing(self):
        client, _ = make_client([])

        assert run(DataStore(client).find_order_by_number("ORD-999")) is None

    def test_order_item_name_falls_back_to_product_id(self):
        row = dict(ORDER_ROW, items=[{"product_id": "PHONE-X-001", "quantity": 2, "price": 10}])
        client, _ = make_client([row])

        order = run(DataStore(client).find_order_by_number("ORD-001"))

        assert order.items[0].name == "PHONE-X-001"
        assert order.items[0].quantity == 2

    def test_find_orders_by_owner_newest_first(self):
        client, query = make_client([ORDER_ROW])

        orders = run(DataStore(client).find_orders_by_owner("user_1"))

        query.eq.assert_called_with("owner_id", "user_1")
        query.order.assert_called_with("created_at", desc=True)
        assert len(orders) == 1

    def test_find_in_stock_products(self):
        client, query = make_client([PRODUCT_ROW])

        products = run(DataStore(client).find_in_stock_products())

        client.table.assert_called_with("products")
        query.eq.assert_called_with("in_stock", True)
        assert products[0].name == "Smartphone X"
        assert products[0].price == 82270.0
        assert products[0].product_id == "1"
        assert products[0].image_url == ""

    def test_find_product_by_name_escapes_wildcards(self):
        client, query = make_client([])

        result = run(DataStore(client).find_product_by_name("100%_cotton"))

        assert result is None
        query.ilike.assert_called_with("name", "%100\\%\\_cotton%")

    def test_find_policy_by_type(self):
        client, query = make_client([{"type": "return", "title": "Return Policy", "content": "30 days"}])

        policy = run(DataStore(client).find_policy_by_type("return"))

        client.table.assert_called_with("policies")
        query.eq.assert_called_with("type", "return")
        assert policy.title == "Return Policy"

    def test_delete_conversation_reports_match(self):
        client, query = make_client([{"conversation_id": "conv_0123456789ab"}])

        assert run(DataStore(client).delete_conversation("conv_0123456789ab", "user_1")) is True
        query.delete.assert_called_once()

        client, _ = make_client([])
        assert run(DataStore(client).delete_conversation("conv_0123456789ab", "user_1")) is False


class TestConversationRows:
    """Conversations are stored as one row holding every turn."""

    @pytest.fixture
    def conversation(self):
        ts = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
        return Conversation(
            conversation_id="conv_0123456789ab",
            owner_id="user_1",
            turns=[
                Turn(speaker=USER, message="status ORD-001", timestamp=ts),
                Turn(speaker=BOT, message="Order ORD-001 Details:", timestamp=ts,
                     metadata=TurnMetadata(intent="order_status", related_order_ids=["ORD-001"])),
            ],
            created_at=ts,
            updated_at=ts,
            last_message="Order ORD-001 Details:",
            feedback=Feedback(rating=5),
        )

    def test_save_conversation_upserts_single_row(self, conversation):
        client, query = make_client([])

        run(DataStore(client).save_conversation(conversation))

        client.table.assert_called_with("conversations")
        row = query.upsert.call_args[0][0]
        assert query.upsert.call_args.kwargs["on_conflict"] == "conversation_id"
        assert row["conversation_id"] == "conv_0123456789ab"
        assert [t["speaker"] for t in row["turns"]] == ["user", "bot"]
        assert row["turns"][1]["metadata"]["related_order_ids"] == ["ORD-001"]
        assert row["feedback"] == {"rating": 5, "comment": None}
        assert row["ended_at"] is None

    def test_row_round_trip(self, conversation):
        row = DataStore._conversation_to_row(conversation)

        restored = DataStore._row_to_conversation(row)

        assert restored == conversation

    def test_get_conversation_filters_by_owner(self, conversation):
        client, query = make_client([DataStore._conversation_to_row(conversation)])

        result = run(DataStore(client).get_conversation("conv_0123456789ab", "user_1"))

        query.eq.assert_any_call("conversation_id", "conv_0123456789ab")
        query.eq.assert_any_call("owner_id", "user_1")
        assert result.turns[1].metadata.intent == "order_status"

    def test_find_latest_conversation_none(self):
        client, _ = make_client([])

        assert run(DataStore(client).find_latest_conversation("user_1")) is None


class TestTimestampParsing:

    @pytest.mark.parametrize("value,microsecond", [
        ("2024-05-01T12:00:00Z", 0),
        ("2024-05-01T12:00:00.5+00:00", 500000),
        ("2024-05-01T12:00:00.1234567+00:00", 123456),
    ])
    def test_parse_timestamp(self, value, microsecond):
        parsed = DataStore._parse_timestamp(value)

        assert parsed.tzinfo is not None
        assert parsed.microsecond == microsecond


class TestConnect:

    def test_connect_requires_credentials(self):
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            run(DataStore.connect(None, None))

    @patch('services.data_store.acreate_client', new_callable=AsyncMock)
    def test_connect_creates_async_client(self, mock_create):
        mock_create.return_value = MagicMock()

        store = run(DataStore.connect("https://example.supabase.co", "key"))

        mock_create.assert_awaited_once_with("https://example.supabase.co", "key")
        assert store.client is mock_create.return_value
