"""Response template rendering and value formatting."""
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional

from config import CURRENCY_SYMBOL, DATE_FORMAT
from services.pattern_catalog import RESPONSE_TEMPLATES, GLOBAL_DEFAULT_TEMPLATE


PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


def render(template: str, context: Optional[Mapping[str, Any]] = None) -> str:
    """
    Substitute `{key}` placeholders in a single pass.

    Substituted values are inserted verbatim and never re-scanned, so a value
    containing `{...}` is left alone. Placeholders with no key in the context
    stay as they are.

    Args:
        template: Template text
        context: Mapping of placeholder name to value

    Returns:
        Rendered string
    """
    if not context:
        return template

    def _substitute(match: re.Match) -> str:
        key = match.group(1)
        if key in context:
            return str(context[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_substitute, template)


def get_template(category: str, subcase: str = "default") -> str:
    """Look up templates[category][subcase], then the category default, then the global default."""
    templates = RESPONSE_TEMPLATES.get(category)
    if not templates:
        return GLOBAL_DEFAULT_TEMPLATE
    return templates.get(subcase) or templates.get("default") or GLOBAL_DEFAULT_TEMPLATE


def get_response(category: str, subcase: str = "default", context: Optional[Mapping[str, Any]] = None) -> str:
    """Render the template for a category/subcase against a context."""
    return render(get_template(category, subcase), context)


def format_currency(amount: Any, symbol: str = CURRENCY_SYMBOL) -> str:
    """
    Format an amount with two decimals and Indian digit grouping.

    82270 -> "₹82,270.00", 123404 -> "₹1,23,404.00"
    """
    value = Decimal(str(amount if amount is not None else 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer_part, _, fraction = f"{abs(value):.2f}".partition(".")

    if len(integer_part) > 3:
        head, tail = integer_part[:-3], integer_part[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer_part = ",".join(groups + [tail])

    return f"{sign}{symbol}{integer_part}.{fraction}"


def format_date(value: Optional[datetime], placeholder: str = "N/A") -> str:
    """Format a datetime for display, or return the placeholder when missing."""
    if value is None:
        return placeholder
    return value.strftime(DATE_FORMAT)


def format_list(lines: Iterable[str], placeholder: str = "") -> str:
    """Join lines with newlines, or return the placeholder for an empty list."""
    joined = "\n".join(lines)
    return joined or placeholder
