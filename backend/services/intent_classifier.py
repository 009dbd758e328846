"""
Intent Classifier for ShopAssist support chatbot.

This module implements deterministic message classification using an ordered,
first-match rule table. Messages that match no rule are routed to the
external language model.
"""

from dataclasses import dataclass
import logging
import re
from typing import Callable, List, Optional, Sequence

from services import pattern_catalog as catalog

logger = logging.getLogger(__name__)


@dataclass
class Classification:
    """
    Result of message classification.

    Attributes:
        category: Intent category (order_status, my_orders, ..., general)
        entity: Extracted order number, product name, policy type or greeting subcase
        use_ai: Whether the external model must answer this message
        rule_triggered: Which rule produced the decision
    """
    category: str
    entity: Optional[str] = None
    use_ai: bool = False
    rule_triggered: str = ""


@dataclass
class IntentRule:
    """
    One row of the classification table.

    A rule fires when `predicate` accepts the text. If `extractor` is set it is
    applied next; when `requires_entity` is true and nothing was extracted the
    rule does not fire and evaluation continues with the next rule.
    """
    category: str
    predicate: Callable[[str], bool]
    extractor: Optional[Callable[[str], Optional[str]]] = None
    requires_entity: bool = False
    default_entity: Optional[str] = None
    lowercase: bool = False


def matches_any(patterns: Sequence[re.Pattern]) -> Callable[[str], bool]:
    """Build a predicate that is true when any of the patterns matches."""
    def predicate(text: str) -> bool:
        return any(p.search(text) for p in patterns)
    return predicate


def capture(pattern: re.Pattern, group: int = 0, transform: Callable[[str], str] = str.strip) -> Callable[[str], Optional[str]]:
    """Build an extractor returning a regex group (transformed), or None."""
    def extractor(text: str) -> Optional[str]:
        match = pattern.search(text)
        if not match or not match.group(group):
            return None
        value = transform(match.group(group))
        return value or None
    return extractor


def _greeting_subcase(text: str) -> Optional[str]:
    for pattern in catalog.GREETING_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1) if match.groups() else None
    return None


def default_rules() -> List[IntentRule]:
    """The standard rule table, in priority order."""
    return [
        IntentRule(
            category=catalog.ORDER_STATUS,
            predicate=matches_any(catalog.ORDER_STATUS_PATTERNS),
            extractor=capture(catalog.ORDER_NUMBER_PATTERN, transform=lambda s: s.strip().upper()),
            requires_entity=True,
        ),
        IntentRule(
            category=catalog.MY_ORDERS,
            predicate=matches_any(catalog.MY_ORDERS_PATTERNS),
        ),
        IntentRule(
            category=catalog.PRODUCT_AVAILABILITY,
            predicate=matches_any(catalog.PRODUCT_AVAILABILITY_PATTERNS),
            lowercase=True,
        ),
        IntentRule(
            category=catalog.PRODUCT,
            predicate=matches_any(catalog.PRODUCT_INFO_PATTERNS),
            extractor=capture(catalog.PRODUCT_NAME_PATTERN, group=1),
            requires_entity=True,
        ),
        IntentRule(
            category=catalog.STOCK,
            predicate=matches_any(catalog.STOCK_PATTERNS),
            extractor=capture(catalog.STOCK_PRODUCT_PATTERN, group=1),
            requires_entity=True,
        ),
        IntentRule(
            category=catalog.POLICY,
            predicate=matches_any(catalog.POLICY_PATTERNS),
            extractor=capture(catalog.POLICY_TYPE_PATTERN, group=1, transform=str.lower),
            default_entity=catalog.DEFAULT_POLICY_TYPE,
        ),
        IntentRule(
            category=catalog.GREETING,
            predicate=matches_any(catalog.GREETING_PATTERNS),
            extractor=_greeting_subcase,
            lowercase=True,
        ),
    ]


class IntentClassifier:
    """
    First-match intent classifier.

    Rules are evaluated in table order (order status, order history, product
    availability, product info, stock, policy, greeting); the first rule that
    fires decides the category. Anything unmatched falls back to the external
    model.
    """

    FALLBACK_CATEGORY = catalog.GENERAL

    def __init__(self, rules: Optional[List[IntentRule]] = None):
        self.rules = rules if rules is not None else default_rules()

    def classify(self, text: str) -> Classification:
        """
        Classify a message. Never raises; internal failures fall back to the model.

        Args:
            text: Raw message text

        Returns:
            Classification with category, extracted entity and use_ai flag
        """
        try:
            return self._classify(text or "")
        except Exception as e:
            logger.error(f"Error in message classification: {e}", exc_info=True)
            return self._fallback("classification_error")

    def _classify(self, text: str) -> Classification:
        stripped = text.strip()
        if not stripped:
            logger.warning("Empty message received, routing to fallback")
            return self._fallback("empty_message")

        lowered = stripped.lower()

        for rule in self.rules:
            candidate = lowered if rule.lowercase else stripped
            if not rule.predicate(candidate):
                continue

            entity = rule.extractor(candidate) if rule.extractor else None
            if rule.requires_entity and not entity:
                logger.debug(f"Rule {rule.category} matched without an entity, falling through")
                continue
            if entity is None:
                entity = rule.default_entity

            logger.info(f"Classification: {rule.category} (entity={entity}) - {stripped[:50]}")
            return Classification(
                category=rule.category,
                entity=entity,
                use_ai=False,
                rule_triggered=rule.category
            )

        logger.info(f"Classification: {self.FALLBACK_CATEGORY} (fallback) - {stripped[:50]}")
        return self._fallback("fallback")

    def _fallback(self, rule_triggered: str) -> Classification:
        return Classification(
            category=self.FALLBACK_CATEGORY,
            entity=None,
            use_ai=True,
            rule_triggered=rule_triggered
        )
