# socialsphere/services/optimistic_service.py
import logging
from typing import Dict, Optional, Tuple

from socialsphere.models.feed import FeedState, LikeProjection


class LikeOverlay:
    """
    Optimistic like state per (post, viewer), layered over the feed window.

    A projection is created when a toggle starts and stays visible while its
    mutation is in flight. Once the mutation settled, the next feed snapshot
    discards it and the authoritative values show through again. A snapshot
    that arrives before the mutation completes leaves it in place.
    """

    def __init__(self):
        self._projections: Dict[Tuple[str, str], LikeProjection] = {}

    def get(self, post_id: str, user_id: str) -> Optional[LikeProjection]:
        return self._projections.get((post_id, user_id))

    def begin(self, post_id: str, user_id: str, currently_liked: bool,
              displayed_count: int) -> Tuple[LikeProjection, Optional[LikeProjection]]:
        """Flip the viewer's like state locally. Returns (new, replaced) projections."""
        key = (post_id, user_id)
        previous = self._projections.get(key)
        delta = -1 if currently_liked else 1
        projection = LikeProjection(
            post_id=post_id,
            user_id=user_id,
            liked=not currently_liked,
            likes_count=max(0, displayed_count + delta),
            pending=True
        )
        self._projections[key] = projection
        return projection, previous

    def settle(self, projection: LikeProjection) -> None:
        """Mark the mutation behind `projection` as finished."""
        projection.pending = False

    def rollback(self, projection: LikeProjection, previous: Optional[LikeProjection]) -> None:
        """Undo `projection` unless a newer toggle already replaced it."""
        projection.pending = False
        key = (projection.post_id, projection.user_id)
        if self._projections.get(key) is not projection:
            return
        if previous is None:
            self._projections.pop(key, None)
        else:
            self._projections[key] = previous
        logging.info(f"Like projection rolled back (post_id: {projection.post_id}, user_id: {projection.user_id})")

    def discard(self, projection: LikeProjection) -> None:
        """Drop `projection` now, unless a newer toggle already replaced it."""
        key = (projection.post_id, projection.user_id)
        if self._projections.get(key) is projection:
            del self._projections[key]

    def reconcile(self, state: FeedState) -> None:
        """Feed listener: drop settled projections once a new snapshot arrives."""
        settled = [key for key, projection in list(self._projections.items()) if not projection.pending]
        for key in settled:
            self._projections.pop(key, None)

    def __len__(self) -> int:
        return len(self._projections)
