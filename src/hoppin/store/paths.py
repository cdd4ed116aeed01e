"""Centralised document path helpers.

Canonical layout:
  users/{uid}/gamificationDailyVisits/{yyyy-MM-dd}/places/{placeId}
  users/{uid}/gamification/categoryProgress
  users/{uid}/gamification/state
"""

from hoppin.store.documents import DocumentRef


def daily_visit_doc(user_id: str, date_key: str, place_id: str) -> DocumentRef:
    return DocumentRef.from_segments(
        "users", user_id, "gamificationDailyVisits", date_key, "places", place_id,
    )


def category_progress_doc(user_id: str) -> DocumentRef:
    return DocumentRef.from_segments("users", user_id, "gamification", "categoryProgress")


def streak_state_doc(user_id: str) -> DocumentRef:
    return DocumentRef.from_segments("users", user_id, "gamification", "state")
