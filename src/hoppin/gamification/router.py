"""Gamification API endpoints: visits, streak, progress and reference tables."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from hoppin.auth.dependencies import get_current_user_id
from hoppin.dependencies import get_auto_check_in, get_streak_tracker, get_visit_recorder
from hoppin.gamification.auto_check_in import AutoCheckIn
from hoppin.gamification.categories import CATEGORIES
from hoppin.gamification.progress_service import get_category_progress, progress_entries
from hoppin.gamification.reward_service import VisitRecorder
from hoppin.gamification.schemas import (
    AllCategoriesResponse,
    AllTiersResponse,
    CategoryEntry,
    CategoryProgressResponse,
    CheckInResponse,
    RecordVisitRequest,
    RecordVisitResponse,
    StreakState,
    TierEntry,
)
from hoppin.gamification.streak_service import StreakTracker
from hoppin.gamification.tiers import REWARD_THRESHOLDS, TIER_NAMES
from hoppin.store.base import RecordStore
from hoppin.store.client import get_store

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Public endpoints ──


@router.get("/tiers", response_model=AllTiersResponse)
async def list_tiers():
    """Badge tiers and the visit count each one requires."""
    tiers = [TierEntry(tier=0, name=TIER_NAMES[0], visits_required=0)]
    tiers.extend(
        TierEntry(tier=i + 1, name=TIER_NAMES[i + 1], visits_required=threshold)
        for i, threshold in enumerate(REWARD_THRESHOLDS)
    )
    return AllTiersResponse(tiers=tiers)


@router.get("/categories", response_model=AllCategoriesResponse)
async def list_categories():
    return AllCategoriesResponse(
        categories=[CategoryEntry(id=c.id, name=c.name) for c in CATEGORIES],
    )


# ── Authenticated endpoints ──


@router.post("/visits", response_model=RecordVisitResponse)
async def record_visit(
    body: RecordVisitRequest,
    user_id: str = Depends(get_current_user_id),
    recorder: VisitRecorder = Depends(get_visit_recorder),
):
    """Record a visit to a place for today (UTC).

    Repeat calls for the same place on the same day return ``duplicate``;
    malformed input (e.g. category outside 1..8) returns ``ignored``.
    """
    receipt = await recorder.record_visit_and_check_in(user_id, body.place_id, body.category_id)
    check_in = CheckInResponse.from_result(receipt.check_in) if receipt.check_in else None
    return RecordVisitResponse(outcome=receipt.outcome, check_in=check_in)


@router.post("/streak/check-in", response_model=CheckInResponse)
async def check_in(
    user_id: str = Depends(get_current_user_id),
    tracker: StreakTracker = Depends(get_streak_tracker),
):
    """Idempotent daily check-in."""
    result = await tracker.daily_check_in(user_id)
    return CheckInResponse.from_result(result)


@router.get("/streak", response_model=StreakState)
async def get_streak(
    auto_check_in: bool = Query(False),
    user_id: str = Depends(get_current_user_id),
    tracker: StreakTracker = Depends(get_streak_tracker),
    guard: AutoCheckIn = Depends(get_auto_check_in),
):
    """Current streak. With ``auto_check_in`` the first call of the day also checks in."""
    if auto_check_in:
        result = await guard.ensure_today(user_id)
        if result is not None:
            return result.after
    return await tracker.get_streak(user_id)


@router.get("/progress", response_model=CategoryProgressResponse)
async def get_progress(
    user_id: str = Depends(get_current_user_id),
    store: RecordStore = Depends(get_store),
):
    """Per-category visit counts, badge tiers and next targets."""
    progress = await get_category_progress(store, user_id)
    return CategoryProgressResponse(categories=progress_entries(progress))
