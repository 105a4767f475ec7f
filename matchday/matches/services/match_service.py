import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from matchday.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from matchday.core.utils import generate_custom_id
from matchday.leagues.services.league_service import LeagueService
from matchday.matches.models import Match, MatchEvent, MatchStatus, LIVE_STATUSES
from matchday.matches.models.match_model import EventType
from matchday.standings.services import standings_calculator as calculator
from matchday.standings.services.live_standing_service import LiveStandingService
from matchday.standings.services.standing_service import StandingService
from matchday.teams.services.team_service import TeamService

logger = logging.getLogger(__name__)

STATUSES = tuple(status.value for status in MatchStatus)


def serialize_match(match: Match, with_events: bool = False) -> dict:
    data = {
        "match_id": match.match_id,
        "date": match.date.isoformat() if match.date else None,
        "league_id": match.league_id,
        "season": match.season,
        "home_team_id": match.home_team_id,
        "home_team": match.home_team.team_name if match.home_team else None,
        "away_team_id": match.away_team_id,
        "away_team": match.away_team.team_name if match.away_team else None,
        "venue": match.venue,
        "round": match.round,
        "status": match.status,
        "home_score": match.home_score,
        "away_score": match.away_score,
    }
    if with_events:
        data["events"] = [
            {
                "event_id": event.event_id,
                "type": event.type,
                "minute": event.minute,
                "team_id": event.team_id,
                "player": event.player,
                "additional_info": event.additional_info,
            }
            for event in match.events
        ]
    return data


class MatchService:
    def __init__(self, db: Session):
        self.db = db
        self.league_service = LeagueService(db)
        self.team_service = TeamService(db)
        self.standing_service = StandingService(db)
        self.live_service = LiveStandingService(db, locks=self.standing_service.locks)

    def get_match(self, match_id: str) -> Match:
        match = self.db.query(Match).filter(Match.match_id == match_id).first()
        if not match:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    def list_matches(self, league_id: Optional[str] = None, team_id: Optional[str] = None) -> List[Match]:
        query = self.db.query(Match)
        if league_id:
            query = query.filter(Match.league_id == league_id)
        if team_id:
            query = query.filter((Match.home_team_id == team_id) | (Match.away_team_id == team_id))
        return query.order_by(Match.date.desc()).all()

    def list_live_matches(self) -> List[Match]:
        return self.db.query(Match).filter(Match.status.in_(LIVE_STATUSES)).order_by(Match.date).all()

    def create_match(self, match_data: dict) -> Match:
        """Schedule a match. Results are entered through events, scores and status."""
        league = self.league_service.require_league(match_data.get("league_id"))
        home_team = self.team_service.require_team(match_data.get("home_team_id"))
        away_team = self.team_service.require_team(match_data.get("away_team_id"))
        if home_team.team_id == away_team.team_id:
            raise ValidationError("A team cannot play against itself")
        if not isinstance(match_data.get("date"), datetime):
            raise ValidationError("Match date is required")

        match = Match(
            match_id=generate_custom_id(self.db, Match, "M", "match_id"),
            date=match_data["date"],
            league_id=league.league_id,
            season=match_data.get("season") or league.season,
            home_team_id=home_team.team_id,
            away_team_id=away_team.team_id,
            venue=match_data.get("venue"),
            round=match_data.get("round"),
            status=MatchStatus.NOT_STARTED.value,
            home_score=0,
            away_score=0,
        )
        self.db.add(match)
        self.db.commit()
        self.db.refresh(match)
        return match

    @contextmanager
    def _locked_match(self, match_id: str):
        """Yield the match re-read under its table's lock; changes made inside are serialized per season."""
        match = self.get_match(match_id)
        with self.standing_service.locks.hold(match.league_id, match.season, self.db):
            # Another request may have moved the match while we waited
            match = (
                self.db.query(Match)
                .filter(Match.match_id == match_id)
                .populate_existing()
                .with_for_update()
                .one()
            )
            yield match

    def add_event(self, match_id: str, event_data: dict) -> Match:
        """Record an in-play event; goals move the score and the live table follows."""
        with self._locked_match(match_id) as match:
            if match.status not in LIVE_STATUSES:
                raise InvalidStateError(f"Events can only be added to a live match (status={match.status})")

            team_id = event_data.get("team_id")
            if team_id not in (match.home_team_id, match.away_team_id):
                raise ValidationError(f"Team {team_id} is not playing in match {match_id}")

            event = MatchEvent(
                match_id=match.match_id,
                type=event_data["type"],
                minute=event_data["minute"],
                team_id=team_id,
                player=event_data["player"],
                additional_info=event_data.get("additional_info"),
            )
            match.events.append(event)

            if event.type == EventType.GOAL.value:
                if team_id == match.home_team_id:
                    match.home_score += 1
                else:
                    match.away_score += 1

            try:
                self.db.flush()
                self.live_service.apply_live_event(match.match_id, event_data)
            except Exception:
                self.db.rollback()
                raise
        return match

    def update_score(self, match_id: str, home_score: int, away_score: int) -> Match:
        """
        Correct the score of a match in play or already ended.

        Live matches re-sync their provisional standings, ended ones rebuild
        the season's table. Scheduled, postponed and canceled matches are refused.
        """
        calculator.check_score(home_score, "home_score")
        calculator.check_score(away_score, "away_score")

        with self._locked_match(match_id) as match:
            if match.status not in LIVE_STATUSES and match.status != MatchStatus.ENDED.value:
                raise InvalidStateError(
                    f"Score can only be set on a live or ended match (status={match.status})"
                )

            match.home_score = home_score
            match.away_score = away_score
            try:
                self.db.flush()
                if match.status in LIVE_STATUSES:
                    self.live_service.apply_live_event(match.match_id, {"type": "score_correction"})
                else:
                    self.db.commit()
                    self.standing_service.recalculate_standings(match.league_id, match.season)
            except Exception:
                self.db.rollback()
                raise
        return match

    def update_status(self, match_id: str, status: str) -> Match:
        """
        Move a match through its lifecycle and fire the matching standings update.

        not_started -> live          kickoff, 0-0 provisional standings
        live/halftime -> ended       finalize the provisional standings
        other -> ended               apply the result directly
        live/halftime -> postponed/canceled   discard provisional standings
        """
        if status not in STATUSES:
            raise ValidationError(f"Invalid match status: {status}")

        with self._locked_match(match_id) as match:
            previous = match.status
            if previous == status:
                return match
            if previous == MatchStatus.ENDED.value:
                raise InvalidStateError(f"Match {match_id} has ended; its result is final")

            match.status = status
            try:
                self.db.flush()
                if status in LIVE_STATUSES:
                    self.live_service.apply_live_event(match.match_id, {"type": "match_start"})
                elif status == MatchStatus.ENDED.value:
                    if previous in LIVE_STATUSES:
                        self.live_service.finalize_match(match.match_id)
                    else:
                        self.standing_service.apply_finalized_match(match)
                elif previous in LIVE_STATUSES:
                    self.live_service.discard_live_match(match.match_id)
                else:
                    self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(f"📣 Match {match_id}: {previous} -> {status}")
        return match
