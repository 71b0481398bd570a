from datetime import datetime
from typing import Literal, Optional
from uuid import NAMESPACE_URL, uuid5

from pydantic import Field

from spendwise.models.common import CamelModel

InsightType = Literal["alert", "goal", "warning", "recommendation"]
InsightPriority = Literal["low", "medium", "high"]

INSIGHT_TYPES = ("alert", "goal", "warning", "recommendation")
INSIGHT_PRIORITIES = ("low", "medium", "high")
TITLE_MAX_LENGTH = 200


class InsightDraft(CamelModel):
    """A validated insight as returned by the text-generation service."""

    type: InsightType = "recommendation"
    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    description: str
    priority: InsightPriority = "medium"


class Insight(InsightDraft):
    id: str
    user_id: str
    is_read: Literal["true", "false"] = "false"
    period: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_draft(cls, draft: InsightDraft, user_id: str, period: str) -> "Insight":
        return cls(
            id=insight_id(user_id, period, draft.type, draft.title),
            user_id=user_id,
            period=period,
            **draft.model_dump(),
        )


def insight_id(user_id: str, period: str, insight_type: str, title: str) -> str:
    """Deterministic id so the same insight generated twice is stored once."""
    return str(uuid5(NAMESPACE_URL, f"spendwise:{user_id}:{period}:{insight_type}:{title}"))
