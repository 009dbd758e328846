"""
Pattern catalog for the ShopAssist intent router.

Holds the regular expressions used to recognise each intent category, the
entity extractors that pull order numbers, product names and policy types out
of a message, and the response templates each category renders with.

Categories are evaluated in the order given by INTENT_PRIORITY; the first
category whose rules match (and whose entity, if required, was captured) wins.
"""

import re

# Intent categories
ORDER_STATUS = "order_status"
MY_ORDERS = "my_orders"
PRODUCT_AVAILABILITY = "product_availability"
PRODUCT = "product"
STOCK = "stock"
POLICY = "policy"
GREETING = "greeting"
GENERAL = "general"

INTENT_PRIORITY = (
    ORDER_STATUS,
    MY_ORDERS,
    PRODUCT_AVAILABILITY,
    PRODUCT,
    STOCK,
    POLICY,
    GREETING,
)

_I = re.IGNORECASE

# Order status: a lookup verb followed somewhere by an order number token.
ORDER_STATUS_PATTERNS = [
    re.compile(
        r"(?:what'?s|what is|check|tell me|show me|get|find|look up|status of|"
        r"tracking for|track|where is).*?\b(?:order|ord)-?\d+",
        _I,
    ),
]
ORDER_NUMBER_PATTERN = re.compile(r"\b(?:order|ord)-?\d+", _I)

MY_ORDERS_PATTERNS = [
    re.compile(r"(?:show|list|get|find|what are|tell me about|my).*?(?:orders|order history)", _I),
]

PRODUCT_AVAILABILITY_PATTERNS = [
    re.compile(
        r"(?:what|which|show|list|get|find|tell me about).*?(?:products|items).*?"
        r"(?:available|do you have|do you sell|do you carry|do you stock)",
        _I,
    ),
    re.compile(r"(?:what|which).*?(?:products|items).*?(?:do you have|are there)", _I),
    re.compile(r"(?:what|which).*?(?:products|items).*?(?:available)", _I),
    re.compile(r"(?:what|which).*?(?:products|items)", _I),
    re.compile(r"(?:show|list).*?(?:products|items)", _I),
    re.compile(r"(?:do you have|do you sell|do you carry|do you stock).*?(?:any|some).*?(?:products|items)", _I),
    re.compile(r"(?:what products|what items)", _I),
    re.compile(r"(?:show me|list me).*?(?:products|items)", _I),
]

# Product info needs a lookup verb, a product/item keyword and a price/stock
# keyword, in any order.
PRODUCT_INFO_PATTERNS = [
    re.compile(
        r"^(?=.*(?:what|tell me|show|get|find|look up|info|details|about|how much))"
        r"(?=.*\b(?:product|item)\b)"
        r"(?=.*\b(?:price|cost|stock|available|in stock)\b)",
        _I | re.DOTALL,
    ),
]
_PRICE_STOCK_WORDS = r"price|cost|stock|available|in\s+stock"
PRODUCT_NAME_PATTERN = re.compile(
    r"\b(?:product|item)\s+(?:called\s+|named\s+)?"
    r"(?!(?:" + _PRICE_STOCK_WORDS + r"|in|is|are)\b)"
    r"([\w-]+(?:\s+[\w-]+)*?)"
    r"(?=\s+(?:" + _PRICE_STOCK_WORDS + r"|is|are|for|at)\b|\s*[?.!,;]|\s*$)",
    _I,
)

STOCK_PATTERNS = [
    re.compile(r"(?:how many|quantity|stock|available|in stock).*?(?:units|items|products|left|remaining)", _I),
]
STOCK_PRODUCT_PATTERN = re.compile(
    r"(?:stock|availability)\b.*?\b(?:of|for)\s+"
    r"([\w-]+(?:\s+[\w-]+)*?)"
    r"(?=\s+(?:left|remaining|in\s+stock|available|units)\b|\s*[?.!,;]|\s*$)",
    _I,
)

POLICY_PATTERNS = [
    re.compile(
        r"(?:what|tell me|show|get|find|look up|info|details|about).*?"
        r"(?:policy|policies|rules|terms|conditions)",
        _I,
    ),
]
POLICY_TYPE_PATTERN = re.compile(r"\b(return|refund|shipping|privacy|warranty)\b.*?(?:policy|policies)", _I)
DEFAULT_POLICY_TYPE = "general"

# Greetings only count at the very start of the message.
GREETING_PATTERNS = [
    re.compile(r"^hi\b"),
    re.compile(r"^hello\b"),
    re.compile(r"^hey\b"),
    re.compile(r"^good\s+(morning|afternoon|evening|night)\b"),
    re.compile(r"^greetings\b"),
    re.compile(r"^howdy\b"),
]

GLOBAL_DEFAULT_TEMPLATE = (
    "I'm not sure I understand. Could you please rephrase your question? You can ask me about:\n"
    "- Products and availability\n"
    "- Order status and history\n"
    "- Store policies (returns, refunds, shipping, privacy)"
)

RESPONSE_TEMPLATES = {
    ORDER_STATUS: {
        "found": (
            "Order {orderNumber} Details:\n\n"
            "Status: {status}\n"
            "Order Date: {orderDate}\n"
            "Estimated Shipping: {estimatedShipping}\n"
            "Total Amount: {totalAmount}\n\n"
            "Items:\n{items}\n\n"
            "Shipping Address:\n{shippingAddress}\n\n"
            "Would you like to know anything specific about this order?"
        ),
        "not_found": "I couldn't find order {orderNumber}. Please check the order number and try again.",
        "error": "I'm having trouble checking the order status right now. Please try again in a few moments.",
    },
    MY_ORDERS: {
        "found": (
            "Here are your order numbers:\n\n{orders}\n\n"
            "To check details of a specific order, just ask about the order number "
            "(e.g., \"What's the status of order ORD-001?\")."
        ),
        "not_found": "You don't have any orders yet. Would you like to browse our products?",
        "error": "Sorry, I couldn't retrieve your orders at this time. Please try again later.",
    },
    PRODUCT_AVAILABILITY: {
        "found": (
            "Here are our available products by category:\n\n{catalog}\n\n"
            "Would you like more details about any specific product? Just ask about the product name!"
        ),
        "not_found": "I'm sorry, but we don't have any products in stock at the moment. Please check back later.",
        "error": "I'm having trouble retrieving our product catalog right now. Please try again in a few moments.",
    },
    PRODUCT: {
        "found": (
            "Product: {name}\n\n"
            "Price: {price}\n"
            "Category: {category}\n"
            "In Stock: {inStock}\n"
            "Available Quantity: {stockQuantity}\n"
            "Description: {description}\n\n"
            "Would you like to know anything specific about this product?"
        ),
        "not_found": "I couldn't find information about {product}. Would you like to see our available products?",
        "error": "I'm having trouble retrieving product information right now. Please try again in a few moments.",
    },
    STOCK: {
        "found": (
            "Stock Status for {name}:\n\n"
            "In Stock: {inStock}\n"
            "Available Quantity: {quantity}\n"
            "Status: {status}\n\n"
            "Would you like to know anything else about this product?"
        ),
        "not_found": "I couldn't find stock information for {product}. Would you like to see our available products?",
        "error": "I'm having trouble checking stock information right now. Please try again in a few moments.",
    },
    POLICY: {
        "found": "{title}:\n\n{content}",
        "not_found": "I'm sorry, but I couldn't find our {policyType} policy information. Please try again later.",
        "error": "I'm having trouble retrieving the policy information right now. Please try again in a few moments.",
    },
    GREETING: {
        "morning": "Good morning! Welcome to our tech store. How can I assist you today?",
        "afternoon": "Good afternoon! Welcome to our tech store. How can I assist you today?",
        "evening": "Good evening! Welcome to our tech store. How can I assist you today?",
        "night": "Hello! Welcome to our tech store. How can I assist you today?",
        "default": "Hello! Welcome to our tech store. How can I assist you today?",
    },
    GENERAL: {
        "error": "I'm having trouble right now. Please try again in a few moments.",
    },
}
