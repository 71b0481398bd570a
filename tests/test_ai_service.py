import json
from decimal import Decimal

from fakes import FakeAIClient
from spendwise.core.config import settings
from spendwise.models.category import Category
from spendwise.utils.ai_service import (
    categorize_expense,
    generate_insights,
    match_category,
    recommend_budgets,
)

SUMMARY = {"currentMonth": {"total": 180.0}, "previousMonth": {"total": 0.0}}


def assert_is_fallback(insights):
    assert len(insights) == 1
    assert insights[0].type == "recommendation"
    assert insights[0].priority == "medium"
    assert insights[0].title == "Track Your Expenses"


def test_generate_insights_uses_the_reply():
    reply = json.dumps({"insights": [{"type": "warning", "title": "Food up", "description": "d", "priority": "high"}]})
    client = FakeAIClient(reply=reply)

    insights = generate_insights(client, SUMMARY)

    assert [i.title for i in insights] == ["Food up"]
    [call] = client.completions.calls
    assert call["model"] == settings.OPENAI_MODEL
    assert call["response_format"] == {"type": "json_object"}


def test_generate_insights_falls_back_when_service_fails():
    client = FakeAIClient(error=TimeoutError("timed out"))
    assert_is_fallback(generate_insights(client, SUMMARY))


def test_generate_insights_falls_back_on_malformed_reply():
    assert_is_fallback(generate_insights(FakeAIClient(reply="no json here"), SUMMARY))


def test_generate_insights_without_client():
    assert_is_fallback(generate_insights(None, SUMMARY))


def test_categorize_expense_parses_reply():
    client = FakeAIClient(reply=json.dumps({"category": "transportation", "confidence": 0.9, "reasoning": "Taxi"}))
    result = categorize_expense(client, "Uber ride", 250.0)
    assert result.category == "transportation"
    assert result.confidence == 0.9


def test_categorize_expense_falls_back_when_service_fails():
    result = categorize_expense(FakeAIClient(error=ConnectionError("down")), "Uber ride", 250.0)
    assert result.category == "shopping"
    assert result.confidence == 0.1
    assert result.reasoning == "Default categorization due to AI service error"


def test_recommend_budgets():
    client = FakeAIClient(reply=json.dumps({"Food": 3500}))
    assert recommend_budgets(client, {"Food": 4000.0}, Decimal("50000")) == {"Food": Decimal("3500.00")}
    assert recommend_budgets(FakeAIClient(error=RuntimeError("boom")), {"Food": 4000.0}) == {}


def test_match_category_is_case_insensitive_substring():
    categories = [
        Category(name="Food & Dining", color="#ef4444"),
        Category(name="Transportation", color="#3b82f6"),
    ]
    assert match_category("food", categories).name == "Food & Dining"
    assert match_category("TRANSPORT", categories).name == "Transportation"
    assert match_category("travel", categories) is None
