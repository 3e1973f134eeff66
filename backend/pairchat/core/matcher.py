"""
Compatibility Matcher - read-only search of the seeker pool.
"""

import logging
from typing import Collection, List, Optional

from ..config import settings
from ..models import Participant
from ..storage import RecordStore
from .presence import PresenceTracker

logger = logging.getLogger(__name__)


def mutually_compatible(a: Participant, b: Participant) -> bool:
    """Both sides accept each other's declared gender."""
    return a.accepts(b) and b.accepts(a)


class CompatibilityMatcher:
    """
    Finds a partner for a seeker.

    The search takes no locks and claims nothing: two concurrent searches may
    pick the same candidate. PairingTransaction settles that at bind time.
    """

    def __init__(
        self,
        store: RecordStore,
        presence: PresenceTracker,
        candidate_window: Optional[int] = None,
    ):
        self.store = store
        self.presence = presence
        self.candidate_window = candidate_window or settings.candidate_window

    async def candidates(
        self,
        seeker: Participant,
        exclude: Collection[str] = ()
    ) -> List[Participant]:
        """
        Live, mutually compatible seekers in first-come order.

        Only the ``candidate_window`` longest-waiting live seekers are examined;
        anyone beyond the window is reached on a later search. ``exclude``
        keeps a just-skipped partner from being offered straight back.
        """
        pool = await self.store.list_seekers(
            exclude_id=seeker.id,
            seen_after=self.presence.live_since(),
            limit=self.candidate_window,
        )
        return [
            candidate for candidate in pool
            if candidate.id not in exclude
            and candidate.is_seeking
            and candidate.is_online
            and self.presence.is_live(candidate)
            and mutually_compatible(seeker, candidate)
        ]

    async def find_partner(
        self,
        seeker: Participant,
        exclude: Collection[str] = ()
    ) -> Optional[Participant]:
        """
        Pick the earliest-joined compatible candidate, ties broken by id.

        Returns:
            Optional[Participant]: The candidate, or None if nobody fits
        """
        survivors = await self.candidates(seeker, exclude)
        if not survivors:
            logger.debug(f"No compatible partner for {seeker.id}")
            return None
        partner = min(survivors, key=lambda p: (p.joined_at, p.id))
        logger.debug(f"Candidate {partner.id} selected for {seeker.id}")
        return partner
