"""
AI Service
Calls the OpenAI chat completions API for insights, categorization and budget
recommendations. Every failure degrades to a documented fallback value so that
recording expenses is never blocked by the AI provider.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from openai import OpenAI

from spendwise.core.config import settings
from spendwise.models.analytics import Categorization
from spendwise.models.category import Category
from spendwise.models.insight import InsightDraft
from spendwise.utils.insight_formatter import (
    build_budget_messages,
    build_categorization_messages,
    build_insight_messages,
    fallback_categorization,
    fallback_insight,
    parse_budget_reply,
    parse_categorization_reply,
    parse_insight_reply,
)

logger = logging.getLogger(__name__)


def create_ai_client() -> Optional[OpenAI]:
    """Build a client with a bounded timeout, or None when no key is configured."""
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAI(
        api_key=settings.OPENAI_API_KEY,
        timeout=settings.OPENAI_TIMEOUT_SECONDS,
        max_retries=0,
    )


def _complete(client: Optional[OpenAI], messages: List[Dict[str, str]]) -> Optional[str]:
    if client is None:
        raise RuntimeError("OPENAI_API_KEY is not configured")
    response = client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=messages,
        response_format={"type": "json_object"},
    )
    return response.choices[0].message.content


def generate_insights(client: Optional[OpenAI], summary: Dict[str, Any]) -> List[InsightDraft]:
    try:
        content = _complete(client, build_insight_messages(summary, settings.CURRENCY_SYMBOL))
        insights = parse_insight_reply(content)
        logger.info(f"Generated {len(insights)} insights")
        return insights
    except Exception as e:
        logger.warning(f"Insight generation failed, using fallback: {e}")
        return [fallback_insight()]


def categorize_expense(client: Optional[OpenAI], description: str, amount: float) -> Categorization:
    try:
        content = _complete(
            client, build_categorization_messages(description, amount, settings.CURRENCY_SYMBOL)
        )
        return parse_categorization_reply(content)
    except Exception as e:
        logger.warning(f"Expense categorization failed, using fallback: {e}")
        return fallback_categorization()


def recommend_budgets(
    client: Optional[OpenAI],
    category_totals: Dict[str, Any],
    income: Optional[Decimal] = None,
) -> Dict[str, Decimal]:
    try:
        content = _complete(
            client, build_budget_messages(category_totals, income, settings.CURRENCY_SYMBOL)
        )
        return parse_budget_reply(content)
    except Exception as e:
        logger.warning(f"Budget recommendation failed: {e}")
        return {}


def match_category(label: str, categories: Iterable[Category]) -> Optional[Category]:
    """First category whose name contains the AI label, case-insensitively."""
    needle = label.lower()
    for category in categories:
        if needle in category.name.lower():
            return category
    return None
