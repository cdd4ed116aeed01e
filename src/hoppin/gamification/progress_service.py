"""Read models over the gamification documents."""

from __future__ import annotations

from hoppin.gamification.categories import CATEGORIES
from hoppin.gamification.schemas import CategoryProgress, CategoryProgressEntry
from hoppin.gamification.tiers import tier_info, tier_name
from hoppin.store.base import RecordStore
from hoppin.store.paths import category_progress_doc


async def get_category_progress(store: RecordStore, user_id: str) -> CategoryProgress:
    """Per-category visit counts and stored badge tiers (zeros when absent)."""
    snap = await store.get(category_progress_doc(user_id))
    return CategoryProgress.from_document(snap.data)


def progress_entries(progress: CategoryProgress) -> list[CategoryProgressEntry]:
    """Expand stored progress with category names and next-tier targets."""
    entries = []
    for category in CATEGORIES:
        visits = progress.visits.get(category.id, 0)
        info = tier_info(visits)
        # Tiers are never lowered, so a stored tier wins over the computed one.
        tier = max(progress.tiers.get(category.id, 0), info["tier"])
        entries.append(CategoryProgressEntry(
            category_id=category.id,
            name=category.name,
            visits=visits,
            tier=tier,
            tier_name=tier_name(tier),
            next_tier=info["next_tier"],
            next_tier_name=info["next_tier_name"],
            next_threshold=info["next_threshold"],
            visits_to_next=info["visits_to_next"],
        ))
    return entries
