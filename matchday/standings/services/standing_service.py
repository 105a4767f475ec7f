import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from matchday.core.config import settings
from matchday.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from matchday.core.utils import utcnow
from matchday.leagues.services.league_service import LeagueService
from matchday.matches.models.match_model import Match, MatchStatus
from matchday.standings.models.standings_model import Standing
from matchday.standings.services import standings_calculator as calculator
from matchday.standings.services.match_feed import MatchFeed
from matchday.standings.services.standing_store import StandingStore
from matchday.standings.services.standings_locks import StandingsLockRegistry, standings_locks
from matchday.teams.models.team_model import Team

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("played", "won", "drawn", "lost", "goals_for", "goals_against", "points", "form")


def serialize_standing(standing: Standing, live_team_ids=()) -> dict:
    overlay = standing.overlay
    return {
        "standing_id": standing.standing_id,
        "league_id": standing.league_id,
        "season": standing.season,
        "team_id": standing.team_id,
        "team_name": standing.team.team_name if standing.team else None,
        "position": standing.position,
        "played": standing.played,
        "won": standing.won,
        "drawn": standing.drawn,
        "lost": standing.lost,
        "goals_for": standing.goals_for,
        "goals_against": standing.goals_against,
        "goal_difference": standing.goal_difference,
        "points": standing.points,
        "form": list(standing.form or []),
        "is_live": standing.team_id in live_team_ids,
        "is_live_update": overlay is not None,
        "provisional": {
            "match_id": overlay.match_id,
            "goals_for": overlay.temp_goals_for,
            "goals_against": overlay.temp_goals_against,
            "points": overlay.temp_points,
        } if overlay is not None else None,
        "last_updated": standing.last_updated.isoformat() if standing.last_updated else None,
    }


class StandingService:
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
        self.league_service = LeagueService(db)

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def assign_positions(self, league_id: str, season: str) -> List[Standing]:
        """Re-read the table, order it and persist positions 1..N."""
        with self.locks.hold(league_id, season, self.db):
            ranked = calculator.rank(self.store.find(league_id, season))
            self.store.commit()
            return ranked

    # ------------------------------------------------------------------
    # Incremental update on a finished match
    # ------------------------------------------------------------------

    def apply_finalized_match(self, match: Match):
        """
        Fold one ended match into both teams' standings, then rerank.

        Callers must invoke this once per match: it does not deduplicate, so a
        second call for the same match counts it twice.
        """
        if match.status != MatchStatus.ENDED.value:
            raise InvalidStateError(f"Match {match.match_id} is not ended (status={match.status})")
        calculator.check_score(match.home_score, "home_score")
        calculator.check_score(match.away_score, "away_score")

        with self.locks.hold(match.league_id, match.season, self.db):
            try:
                home = self.store.get_or_create(match.league_id, match.season, match.home_team_id)
                away = self.store.get_or_create(match.league_id, match.season, match.away_team_id)
                calculator.apply_result(home, away, match.home_score, match.away_score)
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise

            self.assign_positions(match.league_id, match.season)
            logger.info(
                f"✅ Standings updated from match {match.match_id} "
                f"({match.home_team_id} {match.home_score}-{match.away_score} {match.away_team_id})"
            )
            return home, away

    # ------------------------------------------------------------------
    # Full rebuild
    # ------------------------------------------------------------------

    def recalculate_standings(self, league_id: str, season: str) -> dict:
        """
        Delete the season's table and rebuild it from every ended match.

        Matches still in play are folded back in as provisional overlays at
        their current score, so a rebuild leaves the live table as it found it.
        """
        if not season:
            raise ValidationError("Season is required")
        self.league_service.require_league(league_id)

        with self.locks.hold(league_id, season, self.db):
            roster = [team.team_id for team in self.feed.list_roster(league_id, season)]
            matches = self.feed.list_finalized(league_id, season)
            live_matches = self.feed.live_matches(league_id, season)
            standings = calculator.aggregate(league_id, season, roster, matches)

            try:
                self.store.delete_all(league_id, season)
                inserted, skipped = self.store.insert_many(standings)
                if live_matches:
                    self._restore_live_overlays({standing.team_id: standing for standing in inserted}, live_matches)
                    self.store.flush()
                    calculator.rank(inserted)
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise

        if skipped:
            logger.warning(f"⚠️ Recalculation of {league_id}/{season} skipped {len(skipped)} team(s)")
        logger.info(
            f"🔁 Recalculated {league_id}/{season}: {len(inserted)} standings from {len(matches)} matches"
        )
        return {
            "standings": inserted,
            "matches_processed": len(matches),
            "skipped_teams": [standing.team_id for standing in skipped],
        }

    def _restore_live_overlays(self, rows: dict, live_matches: List[Match]):
        for match in live_matches:
            home, away = rows.get(match.home_team_id), rows.get(match.away_team_id)
            if home is None or away is None:
                logger.warning(f"⚠️ Live match {match.match_id} has a team outside the rebuilt table; not restored")
                continue
            home_score = calculator.check_score(match.home_score, "home_score")
            away_score = calculator.check_score(match.away_score, "away_score")
            calculator.attach_provisional(home, match.match_id, home_score, away_score)
            calculator.attach_provisional(away, match.match_id, away_score, home_score)
            logger.info(f"⚽ Restored provisional standings of live match {match.match_id} at {home_score}-{away_score}")

    # ------------------------------------------------------------------
    # Read view
    # ------------------------------------------------------------------

    def get_standings(self, league_id: str, season: Optional[str] = None) -> List[dict]:
        league = self.league_service.require_league(league_id)
        season = season or league.season
        live_team_ids = self.feed.live_team_ids(league_id, season)
        return [
            serialize_standing(standing, live_team_ids)
            for standing in self.store.find(league_id, season)
            if standing.team is not None
        ]

    def list_seasons(self, league_id: str) -> List[str]:
        self.league_service.require_league(league_id)
        seasons = self.store.seasons(league_id)
        return sorted(seasons, key=_season_sort_key, reverse=True)

    # ------------------------------------------------------------------
    # Season and roster management
    # ------------------------------------------------------------------

    def initialize_season(self, league_id: str, season: str, team_ids: Optional[List[str]] = None) -> List[Standing]:
        """Create zeroed standings for a new season in roster order."""
        if not season:
            raise ValidationError("Season is required")
        self.league_service.require_league(league_id)

        with self.locks.hold(league_id, season, self.db):
            if self.store.find(league_id, season):
                raise InvalidStateError(f"Season {season} already exists for league {league_id}")

            if team_ids is None:
                team_ids = [team.team_id for team in self.feed.list_roster(league_id, season)]

            standings = [
                calculator.new_standing(league_id, season, team_id, position=index)
                for index, team_id in enumerate(team_ids, start=1)
            ]
            try:
                inserted, _ = self.store.insert_many(standings)
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise

        logger.info(f"📅 Season {season} created for {league_id} with {len(inserted)} teams")
        return inserted

    def create_next_season(self, league_id: str) -> dict:
        """Open the season after the latest one, carrying over its teams."""
        league = self.league_service.require_league(league_id)
        seasons = self.list_seasons(league_id)

        if not seasons:
            next_season = league.season or str(utcnow().year)
            team_ids = None
        else:
            latest = seasons[0]
            if not latest.isdigit():
                raise ValidationError(f"Cannot derive the season after '{latest}'")
            next_season = str(int(latest) + 1)
            team_ids = [standing.team_id for standing in self.store.find(league_id, latest)]

        standings = self.initialize_season(league_id, next_season, team_ids)
        league.season = next_season
        self.db.commit()
        return {"season": next_season, "teams_count": len(standings)}

    def add_team_to_standings(self, team: Team) -> List[Standing]:
        """Append a zeroed record for every existing season of each of the team's leagues."""
        league_ids = team.league_ids()
        if not league_ids:
            raise ValidationError(f"Team {team.team_id} has no leagues assigned")

        created = []
        for league_id in league_ids:
            league = self.league_service.require_league(league_id)
            seasons = self.store.seasons(league_id) or [league.season]
            for season in seasons:
                with self.locks.hold(league_id, season, self.db):
                    if self.store.find_one(league_id, season, team.team_id):
                        continue
                    created.append(self.store.get_or_create(league_id, season, team.team_id))
                    self.store.commit()
        return created

    def remove_team_from_standings(self, team_id: str) -> int:
        """Delete a team's records everywhere and close the gaps it leaves."""
        affected = {(s.league_id, s.season) for s in self.store.find_by_team(team_id)}
        deleted = self.store.delete_for_team(team_id)
        self.store.commit()

        for league_id, season in sorted(affected):
            self.assign_positions(league_id, season)
        return deleted

    def update_team_standing(self, league_id: str, team_id: str, season: Optional[str], data: dict) -> Standing:
        """Manual correction by an administrator, followed by a rerank."""
        league = self.league_service.require_league(league_id)
        season = season or league.season
        if self.db.get(Team, team_id) is None:
            raise NotFoundError(f"Team {team_id} not found")

        unknown = set(data) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {sorted(unknown)}")
        for field, value in data.items():
            if field == "form":
                if any(symbol not in calculator.POINTS for symbol in value):
                    raise ValidationError(f"Invalid form symbols: {value}")
                continue
            calculator.check_score(value, field)

        with self.locks.hold(league_id, season, self.db):
            try:
                standing = self.store.get_or_create(league_id, season, team_id)
                for field, value in data.items():
                    setattr(standing, field, list(value)[:settings.FORM_LENGTH] if field == "form" else value)
                standing.last_updated = utcnow()
                self.store.commit()
            except Exception:
                self.db.rollback()
                raise
            self.assign_positions(league_id, season)
        return standing


def _season_sort_key(season: str):
    # Numeric seasons ("2024") before anything free-form, newest first when reversed
    digits = season.split("/")[0]
    return (digits.isdigit(), int(digits) if digits.isdigit() else 0, season)
