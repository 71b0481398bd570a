"""
Request shaping and reply validation for the text-generation service.

Builders turn analyzer output into chat messages; parsers map whatever JSON
comes back into the fixed Insight / Categorization shapes, coercing unknown
enum values to documented defaults instead of trusting the reply.
"""
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from spendwise.models.analytics import Categorization
from spendwise.models.common import to_money
from spendwise.models.insight import (
    INSIGHT_PRIORITIES,
    INSIGHT_TYPES,
    TITLE_MAX_LENGTH,
    InsightDraft,
)

EXPENSE_CATEGORIES = {
    "food": "Food & Dining (restaurants, groceries, coffee, food delivery, snacks)",
    "transportation": "Transportation (fuel, ride hailing, metro/bus, parking, vehicle upkeep)",
    "shopping": "Shopping (clothes, electronics, household items, general retail)",
    "entertainment": "Entertainment (movies, games, streaming subscriptions, events, hobbies)",
    "bills": "Bills & Utilities (electricity, internet, phone, rent, insurance, loans)",
    "healthcare": "Healthcare (doctor visits, medicines, hospital, dental)",
    "education": "Education (courses, books, tuition, certifications)",
    "travel": "Travel (flights, hotels, holidays, sightseeing)",
}

DEFAULT_INSIGHT_TYPE = "recommendation"
DEFAULT_INSIGHT_PRIORITY = "medium"
DEFAULT_INSIGHT_TITLE = "Financial Insight"
DEFAULT_INSIGHT_DESCRIPTION = "Review your spending patterns for better financial health."

DEFAULT_CATEGORY = "shopping"
DEFAULT_CONFIDENCE = 0.5
DEFAULT_REASONING = "AI categorization based on description"


class MalformedReply(ValueError):
    """The service answered, but not with the JSON shape that was asked for."""


def fallback_insight() -> InsightDraft:
    return InsightDraft(
        type="recommendation",
        title="Track Your Expenses",
        description="Continue logging your expenses to get personalized AI insights and recommendations.",
        priority="medium",
    )


def fallback_categorization() -> Categorization:
    return Categorization(
        category=DEFAULT_CATEGORY,
        confidence=0.1,
        reasoning="Default categorization due to AI service error",
    )


def _load_object(content: Optional[str]) -> Dict[str, Any]:
    if not content:
        raise MalformedReply("empty reply")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedReply(f"reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedReply("reply is not a JSON object")
    return data


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


# Insights

def build_insight_messages(summary: Dict[str, Any], currency: str = "₹") -> List[Dict[str, str]]:
    system = f"""You are a personal finance advisor. Analyse the spending data you are given and
write 3-5 specific, actionable insights.

Each insight has:
- type: "alert" (budget exceeded or urgent overspending), "goal" (an achievement worth
  celebrating), "warning" (approaching a budget limit or a sharp increase) or
  "recommendation" (a concrete improvement)
- title: short and specific, at most 45 characters
- description: actionable advice quoting exact {currency} amounts, percentages and a timeframe
- priority: "low", "medium" or "high" by financial impact

Priority rules:
1. Budget utilization above 100% -> "alert" with priority "high".
2. Category spend up more than 30% versus the previous month -> "warning" with priority "high".
3. Budget utilization between 80% and 100% -> "warning" with priority "medium".
4. Savings opportunities in high-spend categories -> "recommendation" with priority "medium".
5. Healthy spending behaviour -> "goal" with priority "low".

Always compare the current month with the previous one and name the amount that could be
saved, e.g. "You spent 35% more on Food this month ({currency}4,200 vs {currency}3,100)."

Respond with JSON only:
{{"insights": [{{"type": "alert", "title": "Food Budget Exceeded", "description": "...", "priority": "high"}}]}}"""

    return [
        {"role": "system", "content": system},
        {
            "role": "user",
            "content": f"Analyse this spending data and provide insights: {json.dumps(summary)}",
        },
    ]


def _insight_from_entry(entry: Dict[str, Any]) -> InsightDraft:
    insight_type = entry.get("type")
    priority = entry.get("priority")
    return InsightDraft(
        type=insight_type if insight_type in INSIGHT_TYPES else DEFAULT_INSIGHT_TYPE,
        title=_text(entry.get("title"), DEFAULT_INSIGHT_TITLE)[:TITLE_MAX_LENGTH],
        description=_text(entry.get("description"), DEFAULT_INSIGHT_DESCRIPTION),
        priority=priority if priority in INSIGHT_PRIORITIES else DEFAULT_INSIGHT_PRIORITY,
    )


def parse_insight_reply(content: Optional[str]) -> List[InsightDraft]:
    data = _load_object(content)
    entries = data.get("insights")
    if not isinstance(entries, list):
        raise MalformedReply("reply has no insights list")

    insights = [_insight_from_entry(entry) for entry in entries if isinstance(entry, dict)]
    if not insights:
        raise MalformedReply("reply contains no usable insights")
    return insights


# Categorization

def build_categorization_messages(description: str, amount: float, currency: str = "₹") -> List[Dict[str, str]]:
    options = "\n".join(f"- {key}: {label}" for key, label in EXPENSE_CATEGORIES.items())
    system = f"""You categorize personal expenses from their description and amount.

Available categories:
{options}

Rules:
- Use both keywords in the description and the size of the amount.
- Food delivery apps are food; ride hailing apps are transportation.
- Marketplaces are shopping unless the item is clearly food.
- Streaming and music subscriptions are entertainment.
- Cash withdrawals default to shopping.

Confidence: 0.9-1.0 for explicit keywords, 0.7-0.89 for good context clues,
0.5-0.69 for reasonable inference, 0.3-0.49 when unsure (then use shopping).

Respond with JSON only: {{"category": "food", "confidence": 0.95, "reasoning": "short explanation"}}"""

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": f'Categorize this expense: "{description}" with amount {currency}{amount}'},
    ]


def _confidence(value: Any) -> float:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, confidence))


def parse_categorization_reply(content: Optional[str]) -> Categorization:
    data = _load_object(content)
    category = data.get("category")
    if isinstance(category, str):
        category = category.strip().lower()
    return Categorization(
        category=category if category in EXPENSE_CATEGORIES else DEFAULT_CATEGORY,
        confidence=_confidence(data.get("confidence")),
        reasoning=_text(data.get("reasoning"), DEFAULT_REASONING),
    )


# Budget recommendations

def build_budget_messages(
    category_totals: Dict[str, Any],
    income: Optional[Decimal] = None,
    currency: str = "₹",
) -> List[Dict[str, str]]:
    user = f"Recommend monthly budgets based on this spending: {json.dumps(category_totals)}"
    if income is not None:
        user += f" with monthly income: {currency}{income}"
    return [
        {
            "role": "system",
            "content": (
                "You are a financial planning expert. Based on spending history, recommend a "
                "monthly budget for each category. Consider the 50/30/20 rule and realistic "
                'spending patterns. Respond with JSON only: {"categoryName": recommendedAmount}'
            ),
        },
        {"role": "user", "content": user},
    ]


def parse_budget_reply(content: Optional[str]) -> Dict[str, Decimal]:
    data = _load_object(content)
    recommendations: Dict[str, Decimal] = {}
    for name, value in data.items():
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            continue
        try:
            amount = Decimal(str(value))
            if amount.is_finite() and amount >= 0:
                recommendations[str(name)] = to_money(amount)
        except InvalidOperation:
            continue
    return recommendations
