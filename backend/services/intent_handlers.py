"""
Intent handlers for ShopAssist support chatbot.

One handler per intent category. Deterministic handlers query the data store
and render a template; data-store failures are logged and answered with the
category's error template instead of being raised. The fallback handler sends
the conversation to the external model through the rate limiter and the retry
controller.
"""

import logging
from typing import List, Optional, Union

from config import RETRY_ATTEMPTS, RETRY_BASE_DELAY_SECONDS, RETRY_MAX_JITTER_SECONDS
from models.catalog import Order, Product
from models.conversation import Turn
from services import pattern_catalog as catalog
from services.data_store import DataStore
from services.intent_classifier import Classification
from services.llm_client import LLMClient
from services.rate_limiter import RateLimiter
from services.retry import retry_with_backoff
from services.template_engine import get_response, format_currency, format_date, format_list

logger = logging.getLogger(__name__)


class IntentHandlers:
    """Produces response text for a classified message."""

    def __init__(
        self,
        store: DataStore,
        llm_client: Optional[LLMClient],
        rate_limiter: RateLimiter,
        retry_attempts: int = RETRY_ATTEMPTS,
        retry_base_delay: float = RETRY_BASE_DELAY_SECONDS,
        retry_max_jitter: float = RETRY_MAX_JITTER_SECONDS
    ):
        self.store = store
        self.llm_client = llm_client
        self.rate_limiter = rate_limiter
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.retry_max_jitter = retry_max_jitter

    async def handle(
        self,
        classification: Classification,
        owner_id: str,
        message: str,
        history: Optional[List[Turn]] = None
    ) -> str:
        """
        Dispatch to the handler for the classified intent.

        Raises:
            RateLimitExceededError: Only from the fallback path, when the model budget is spent
        """
        category = classification.category
        entity = classification.entity

        if category == catalog.ORDER_STATUS and entity:
            return await self.order_status(entity)
        if category == catalog.MY_ORDERS:
            return await self.order_history(owner_id)
        if category == catalog.PRODUCT_AVAILABILITY:
            return await self.product_availability()
        if category == catalog.PRODUCT and entity:
            return await self.product_info(entity)
        if category == catalog.STOCK and entity:
            return await self.stock(entity)
        if category == catalog.POLICY:
            return await self.policy(entity or catalog.DEFAULT_POLICY_TYPE)
        if category == catalog.GREETING:
            return self.greeting(entity)
        if classification.use_ai:
            return await self.fallback(message, history or [])
        return get_response("default")

    async def order_status(self, order_number: str) -> str:
        order_number = order_number.upper()
        logger.info(f"Checking order status for: {order_number}")
        try:
            order = await self.store.find_order_by_number(order_number)
        except Exception as e:
            logger.error(f"Error checking order status: {e}", exc_info=True)
            return get_response(catalog.ORDER_STATUS, "error")

        if order is None:
            return get_response(catalog.ORDER_STATUS, "not_found", {"orderNumber": order_number})

        return get_response(catalog.ORDER_STATUS, "found", self._order_context(order))

    async def order_history(self, owner_id: str) -> str:
        logger.info(f"Listing orders for user: {owner_id}")
        try:
            orders = await self.store.find_orders_by_owner(owner_id)
        except Exception as e:
            logger.error(f"Error listing user orders: {e}", exc_info=True)
            return get_response(catalog.MY_ORDERS, "error")

        logger.info(f"Found {len(orders)} orders for user {owner_id}")
        if not orders:
            return get_response(catalog.MY_ORDERS, "not_found")

        return get_response(catalog.MY_ORDERS, "found", {
            "orders": format_list(order.order_number for order in orders)
        })

    async def product_availability(self) -> str:
        logger.info("Listing available products")
        try:
            products = await self.store.find_in_stock_products()
        except Exception as e:
            logger.error(f"Error listing available products: {e}", exc_info=True)
            return get_response(catalog.PRODUCT_AVAILABILITY, "error")

        if not products:
            return get_response(catalog.PRODUCT_AVAILABILITY, "not_found")

        # Group by category, keeping first-seen order.
        by_category = {}
        for product in products:
            by_category.setdefault(product.category, []).append(product)

        sections = []
        for category, items in by_category.items():
            lines = [f"{category}:"]
            for product in items:
                lines.append(f"- {product.name} ({format_currency(product.price)})")
                lines.append(f"  Stock: {product.stock_quantity} units available")
                if product.description:
                    lines.append(f"  {product.description}")
            sections.append("\n".join(lines))

        return get_response(catalog.PRODUCT_AVAILABILITY, "found", {"catalog": "\n\n".join(sections)})

    async def product_info(self, product_name: str) -> str:
        logger.info(f"Checking product info for: {product_name}")
        product = await self._find_product(product_name, catalog.PRODUCT)
        if isinstance(product, str):
            return product

        return get_response(catalog.PRODUCT, "found", {
            "name": product.name,
            "price": format_currency(product.price),
            "category": product.category or "N/A",
            "inStock": "Yes" if product.in_stock else "No",
            "stockQuantity": product.stock_quantity or 0,
            "description": product.description or "No description available",
        })

    async def stock(self, product_name: str) -> str:
        logger.info(f"Checking stock for: {product_name}")
        product = await self._find_product(product_name, catalog.STOCK)
        if isinstance(product, str):
            return product

        if product.in_stock:
            status = f"We have {product.stock_quantity} units in stock"
        else:
            status = "This product is currently out of stock"

        return get_response(catalog.STOCK, "found", {
            "name": product.name,
            "inStock": "Yes" if product.in_stock else "No",
            "quantity": product.stock_quantity or 0,
            "status": status,
        })

    async def policy(self, policy_type: str) -> str:
        logger.info(f"Checking {policy_type} policy")
        try:
            policy = await self.store.find_policy_by_type(policy_type)
        except Exception as e:
            logger.error(f"Error retrieving policy: {e}", exc_info=True)
            return get_response(catalog.POLICY, "error")

        if policy is None:
            return get_response(catalog.POLICY, "not_found", {"policyType": policy_type})

        return get_response(catalog.POLICY, "found", {"title": policy.title, "content": policy.content})

    def greeting(self, subcase: Optional[str] = None) -> str:
        return get_response(catalog.GREETING, subcase or "default")

    async def fallback(self, message: str, history: List[Turn]) -> str:
        """
        Answer with the external model.

        The rate limiter is consulted once per message; its rejection propagates
        to the caller. Model failures are retried with backoff, and when every
        attempt fails a generic apology is returned.
        """
        self.rate_limiter.acquire()

        if self.llm_client is None:
            logger.error("No LLM client configured, cannot answer fallback message")
            return get_response(catalog.GENERAL, "error")

        messages = LLMClient.build_messages(message, history)

        try:
            response = await retry_with_backoff(
                lambda: self.llm_client.generate(messages),
                max_attempts=self.retry_attempts,
                base_delay=self.retry_base_delay,
                max_jitter=self.retry_max_jitter
            )
        except Exception as e:
            logger.error(f"Fallback generation failed: {e}", exc_info=True)
            return get_response(catalog.GENERAL, "error")

        return response.text

    async def _find_product(self, product_name: str, category: str) -> Union[Product, str]:
        """The matching Product, or the rendered not_found / error text."""
        try:
            product = await self.store.find_product_by_name(product_name)
        except Exception as e:
            logger.error(f"Error looking up product {product_name}: {e}", exc_info=True)
            return get_response(category, "error")

        if product is None:
            return get_response(category, "not_found", {"product": product_name})
        return product

    @staticmethod
    def _order_context(order: Order) -> dict:
        items = format_list(
            (
                f"- {item.name} (Qty: {item.quantity}, Price: {format_currency(item.price)})"
                for item in order.items
            ),
            placeholder="No items found"
        )

        address = order.shipping_address
        if address is not None:
            shipping_address = (
                f"{address.street or 'No street'}\n"
                f"{address.city or 'No city'}, {address.state or 'No state'} {address.zip_code or 'No zip'}\n"
                f"{address.country or 'No country'}"
            )
        else:
            shipping_address = "No shipping address available"

        return {
            "orderNumber": order.order_number or "Unknown",
            "status": (order.status or "unknown").upper(),
            "orderDate": format_date(order.created_at),
            "estimatedShipping": format_date(order.estimated_shipping_date),
            "totalAmount": format_currency(order.total_amount or 0),
            "items": items,
            "shippingAddress": shipping_address,
        }
