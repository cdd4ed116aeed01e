"""Pydantic models for gamification state, results and API responses."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field

from hoppin.gamification.categories import MAX_CATEGORY_ID, MIN_CATEGORY_ID

CATEGORY_IDS = range(MIN_CATEGORY_ID, MAX_CATEGORY_ID + 1)


def visits_field(category_id: int) -> str:
    return f"cat{category_id}_visits"


def tier_field(category_id: int) -> str:
    return f"cat{category_id}_badgeTier"


def _as_int(value: Any) -> int:
    return int(value) if value is not None else 0


class VisitOutcome(str, enum.Enum):
    NEW_VISIT = "new_visit"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


# --- Streak ---


class StreakState(BaseModel):
    current_streak: int = 0
    best_streak: int = 0
    last_check_in_date: str | None = None

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> StreakState:
        if not data:
            return cls()
        return cls(
            current_streak=_as_int(data.get("currentStreak")),
            best_streak=_as_int(data.get("bestStreak")),
            last_check_in_date=data.get("lastCheckInDate"),
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "currentStreak": self.current_streak,
            "bestStreak": self.best_streak,
            "lastCheckInDate": self.last_check_in_date,
        }


class CheckInResult(BaseModel):
    before: StreakState
    after: StreakState

    @property
    def changed(self) -> bool:
        return self.before != self.after


class VisitReceipt(BaseModel):
    outcome: VisitOutcome
    category_id: int | None = None
    visits: int | None = None
    old_tier: int | None = None
    new_tier: int | None = None
    check_in: CheckInResult | None = None

    @property
    def tier_increased(self) -> bool:
        return (
            self.new_tier is not None
            and self.old_tier is not None
            and self.new_tier > self.old_tier
        )


# --- Category progress ---


class CategoryProgress(BaseModel):
    visits: dict[int, int] = Field(default_factory=dict)
    tiers: dict[int, int] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> CategoryProgress:
        data = data or {}
        return cls(
            visits={c: _as_int(data.get(visits_field(c))) for c in CATEGORY_IDS},
            tiers={c: _as_int(data.get(tier_field(c))) for c in CATEGORY_IDS},
        )


class CategoryProgressEntry(BaseModel):
    category_id: int
    name: str
    visits: int
    tier: int
    tier_name: str
    next_tier: int
    next_tier_name: str
    next_threshold: int
    visits_to_next: int


class CategoryProgressResponse(BaseModel):
    categories: list[CategoryProgressEntry]


# --- API ---


class RecordVisitRequest(BaseModel):
    place_id: str = Field(min_length=1, max_length=256)
    category_id: int


class RecordVisitResponse(BaseModel):
    outcome: VisitOutcome
    check_in: CheckInResponse | None = None


class CheckInResponse(BaseModel):
    before: StreakState
    after: StreakState
    changed: bool

    @classmethod
    def from_result(cls, result: CheckInResult) -> CheckInResponse:
        return cls(before=result.before, after=result.after, changed=result.changed)


class TierEntry(BaseModel):
    tier: int
    name: str
    visits_required: int


class AllTiersResponse(BaseModel):
    tiers: list[TierEntry]


class CategoryEntry(BaseModel):
    id: int
    name: str


class AllCategoriesResponse(BaseModel):
    categories: list[CategoryEntry]


RecordVisitResponse.model_rebuild()
