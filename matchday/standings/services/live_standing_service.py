import logging
from typing import Optional

from sqlalchemy.orm import Session

from matchday.core.exceptions import InvalidStateError
from matchday.matches.models.match_model import Match, MatchStatus, LIVE_STATUSES
from matchday.standings.models.standings_model import Standing
from matchday.standings.services import standings_calculator as calculator
from matchday.standings.services.match_feed import MatchFeed
from matchday.standings.services.standing_service import StandingService
from matchday.standings.services.standing_store import StandingStore
from matchday.standings.services.standings_locks import StandingsLockRegistry, standings_locks

logger = logging.getLogger(__name__)


class LiveStandingService:
    """
    Provisional standings while a match is in progress, and the hand-over to
    final accounting when it ends.

    While live, each team's standing carries one ``StandingOverlay`` holding the
    goals and points the current score contributes. Every update replaces the
    overlay wholesale. ``played``/``won``/``drawn``/``lost``/``form`` are left
    alone until the match is finalized.
    """

    def __init__(
        self,
        db: Session,
        store: Optional[StandingStore] = None,
        feed: Optional[MatchFeed] = None,
        locks: Optional[StandingsLockRegistry] = None,
    ):
        self.db = db
        self.store = store or StandingStore(db)
        self.feed = feed or MatchFeed(db)
        self.locks = locks or standings_locks
        self.standing_service = StandingService(db, self.store, self.feed, self.locks)

    def apply_live_event(self, match_id: str, event: Optional[dict] = None):
        """Rebuild both teams' provisional contribution from the match's current score."""
        match = self.feed.get_match(match_id)

        with self.locks.hold(match.league_id, match.season, self.db):
            # Score may have moved while we waited for the lock
            self.db.refresh(match)
            if match.status not in LIVE_STATUSES:
                raise InvalidStateError(f"Match {match_id} is not live (status={match.status})")
            home_score = calculator.check_score(match.home_score, "home_score")
            away_score = calculator.check_score(match.away_score, "away_score")

            try:
                home = self.store.get_or_create(match.league_id, match.season, match.home_team_id)
                away = self.store.get_or_create(match.league_id, match.season, match.away_team_id)
                calculator.attach_provisional(home, match.match_id, home_score, away_score)
                calculator.attach_provisional(away, match.match_id, away_score, home_score)
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise

            self.standing_service.assign_positions(match.league_id, match.season)

        logger.info(
            f"⚽ Live standings for match {match_id} at {home_score}-{away_score}"
            + (f" after {event.get('type')}" if event else "")
        )
        return home, away

    def finalize_match(self, match_id: str):
        """
        Turn an ended match's provisional contribution into final accounting.

        The overlay is first re-synced to the final score, so a score corrected
        without a live event is still counted correctly. A side without an
        overlay for this match gets the full finished-match delta instead, which
        keeps every match counted exactly once.
        """
        match = self.feed.get_match(match_id)

        with self.locks.hold(match.league_id, match.season, self.db):
            self.db.refresh(match)
            if match.status != MatchStatus.ENDED.value:
                raise InvalidStateError(f"Match {match_id} is not ended (status={match.status})")
            home_score = calculator.check_score(match.home_score, "home_score")
            away_score = calculator.check_score(match.away_score, "away_score")

            try:
                home = self.store.get_or_create(match.league_id, match.season, match.home_team_id)
                away = self.store.get_or_create(match.league_id, match.season, match.away_team_id)
                self._finalize_side(home, match, home_score, away_score)
                self._finalize_side(away, match, away_score, home_score)
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise

            self.standing_service.assign_positions(match.league_id, match.season)

        logger.info(f"🏁 Match {match_id} finalized at {home_score}-{away_score}")
        return home, away

    def discard_live_match(self, match_id: str) -> int:
        """Back out a live match that will not finish (postponed or canceled)."""
        match = self.feed.get_match(match_id)

        with self.locks.hold(match.league_id, match.season, self.db):
            try:
                standings = self.store.find_by_overlay_match(match_id)
                for standing in standings:
                    calculator.remove_provisional(standing, standing.overlay)
                    standing.overlay = None
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise

            if standings:
                self.standing_service.assign_positions(match.league_id, match.season)

        logger.info(f"↩️ Discarded provisional standings of match {match_id} ({len(standings)} teams)")
        return len(standings)

    def _finalize_side(self, standing: Standing, match: Match, goals_for: int, goals_against: int):
        overlay = standing.overlay
        if overlay is not None and overlay.match_id == match.match_id:
            calculator.replace_provisional(standing, overlay, goals_for, goals_against)
            standing.overlay = None
            calculator.record_result(standing, goals_for, goals_against, count_goals=False, count_points=False)
        else:
            calculator.record_result(standing, goals_for, goals_against)
