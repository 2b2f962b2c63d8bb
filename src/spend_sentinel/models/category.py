"""Expense categories and keyword-based category detection."""

from enum import Enum
from typing import Mapping, Optional

from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)


class Category(Enum):
    """Expense category.

    MISCELLANEOUS is the fallback for anything that cannot be resolved.
    """

    FOOD = "Food"
    TRANSPORT = "Transport"
    EDUCATION = "Education"
    SUBSCRIPTIONS = "Subscriptions"
    SHOPPING = "Shopping"
    MISCELLANEOUS = "Miscellaneous"

    @property
    def label(self) -> str:
        """Lowercase name used inside alert and reason messages."""
        return self.value.lower()

    @classmethod
    def parse(cls, value: "str | Category | None") -> "Category":
        """Resolve a category name case-insensitively.

        Unknown or empty names resolve to MISCELLANEOUS.

        Args:
            value: Category name, Category, or None.

        Returns:
            The matching Category.
        """
        if isinstance(value, Category):
            return value
        if not value:
            return cls.MISCELLANEOUS
        wanted = str(value).strip().lower()
        for category in cls:
            if category.value.lower() == wanted or category.name.lower() == wanted:
                return category
        logger.debug(f"Unknown category '{value}', using {cls.MISCELLANEOUS.value}")
        return cls.MISCELLANEOUS


# Keyword lookup table, evaluated in insertion order (first match wins).
DEFAULT_CATEGORY_KEYWORDS: dict[Category, list[str]] = {
    Category.FOOD: [
        "swiggy", "zomato", "food", "restaurant", "cafe", "canteen",
        "mess", "dominos", "pizza", "burger", "kfc", "mcdonald",
        "subway", "starbucks", "chai", "tea", "coffee", "breakfast",
        "lunch", "dinner", "snacks", "biryani", "thali",
    ],
    Category.TRANSPORT: [
        "uber", "ola", "rapido", "metro", "bus", "auto", "rickshaw",
        "petrol", "fuel", "parking", "toll", "train", "railway",
        "cab", "taxi", "bike", "scooter", "transport",
    ],
    Category.EDUCATION: [
        "book", "course", "udemy", "coursera", "fees", "tuition",
        "library", "stationery", "pen", "notebook", "xerox",
        "photocopy", "print", "assignment", "project", "study",
        "exam", "test", "coaching",
    ],
    Category.SUBSCRIPTIONS: [
        "netflix", "prime", "spotify", "youtube", "hotstar",
        "subscription", "monthly", "renewal", "membership",
        "premium", "plan", "adobe", "canva", "notion",
    ],
    Category.SHOPPING: [
        "amazon", "flipkart", "myntra", "ajio", "shopping",
        "clothes", "shoes", "electronics", "gadget", "mobile",
        "laptop", "headphone", "watch", "bag", "wallet",
    ],
    Category.MISCELLANEOUS: [],
}


def merge_keywords(
    extra: Optional[Mapping[Category, list[str]]] = None,
) -> dict[Category, list[str]]:
    """Build a keyword table with configured keywords appended.

    Args:
        extra: Additional keywords per category.

    Returns:
        New keyword table; built-in keywords keep precedence within a category.
    """
    table = {category: list(keywords) for category, keywords in DEFAULT_CATEGORY_KEYWORDS.items()}
    if extra:
        for category, keywords in extra.items():
            existing = table.setdefault(category, [])
            for keyword in keywords:
                keyword = keyword.strip().lower()
                if keyword and keyword not in existing:
                    existing.append(keyword)
    return table


def detect_category(
    merchant: str,
    keywords: Optional[Mapping[Category, list[str]]] = None,
) -> Category:
    """Auto-detect a category from merchant text.

    Args:
        merchant: Merchant name as entered or imported.
        keywords: Keyword table (defaults to the built-in table).

    Returns:
        First category whose keyword is a case-insensitive substring of the
        merchant, else MISCELLANEOUS.
    """
    table = keywords if keywords is not None else DEFAULT_CATEGORY_KEYWORDS
    merchant_lower = merchant.lower()

    for category, category_keywords in table.items():
        for keyword in category_keywords:
            if keyword.lower() in merchant_lower:
                return category

    return Category.MISCELLANEOUS
