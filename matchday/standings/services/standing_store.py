import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from matchday.core.exceptions import PersistenceConflictError
from matchday.standings.models.standings_model import Standing, StandingOverlay
from matchday.standings.services import standings_calculator as calculator

logger = logging.getLogger(__name__)


class StandingStore:
    """Keyed access to standing records for one (league, season, team) key space."""

    def __init__(self, db: Session):
        self.db = db

    def find(self, league_id: str, season: str) -> List[Standing]:
        return (
            self.db.query(Standing)
            .filter(Standing.league_id == league_id, Standing.season == season)
            .order_by(Standing.position, Standing.team_id)
            .all()
        )

    def find_one(self, league_id: str, season: str, team_id: str) -> Optional[Standing]:
        return (
            self.db.query(Standing)
            .filter(
                Standing.league_id == league_id,
                Standing.season == season,
                Standing.team_id == team_id,
            )
            .first()
        )

    def find_by_team(self, team_id: str) -> List[Standing]:
        return self.db.query(Standing).filter(Standing.team_id == team_id).all()

    def find_by_overlay_match(self, match_id: str) -> List[Standing]:
        return (
            self.db.query(Standing)
            .join(StandingOverlay, StandingOverlay.standing_id == Standing.standing_id)
            .filter(StandingOverlay.match_id == match_id)
            .all()
        )

    def seasons(self, league_id: str) -> List[str]:
        rows = self.db.query(Standing.season).filter(Standing.league_id == league_id).distinct().all()
        return [row[0] for row in rows]

    def league_seasons(self) -> List[Tuple[str, str]]:
        return [tuple(row) for row in self.db.query(Standing.league_id, Standing.season).distinct().all()]

    def max_position(self, league_id: str, season: str) -> int:
        value = (
            self.db.query(func.max(Standing.position))
            .filter(Standing.league_id == league_id, Standing.season == season)
            .scalar()
        )
        return value or 0

    def get_or_create(self, league_id: str, season: str, team_id: str) -> Standing:
        """Fetch a record, creating it zeroed at the bottom of the table on first use."""
        standing = self.find_one(league_id, season, team_id)
        if standing:
            return standing

        standing = calculator.new_standing(
            league_id, season, team_id, position=self.max_position(league_id, season) + 1
        )
        try:
            with self.db.begin_nested():
                self.db.add(standing)
        except IntegrityError:
            # Lost the race against another insert; use the winner's row
            logger.warning(f"⚠️ Standing for {team_id} in {league_id}/{season} created concurrently, re-fetching")
            standing = self.find_one(league_id, season, team_id)
            if standing is None:
                raise PersistenceConflictError(
                    f"Standing for team {team_id} in {league_id}/{season} could not be created"
                )
        return standing

    def upsert(self, standing: Standing) -> Standing:
        existing = self.find_one(standing.league_id, standing.season, standing.team_id)
        if existing is not None and existing is not standing:
            for field in (
                "position", "played", "won", "drawn", "lost",
                "goals_for", "goals_against", "points", "form", "last_updated",
            ):
                setattr(existing, field, getattr(standing, field))
            standing = existing
        else:
            self.db.add(standing)
        self.flush()
        return standing

    def delete_all(self, league_id: str, season: str) -> int:
        standing_ids = (
            self.db.query(Standing.standing_id)
            .filter(Standing.league_id == league_id, Standing.season == season)
        )
        self.db.query(StandingOverlay).filter(
            StandingOverlay.standing_id.in_(standing_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        deleted = (
            self.db.query(Standing)
            .filter(Standing.league_id == league_id, Standing.season == season)
            .delete(synchronize_session=False)
        )
        self.db.expire_all()
        return deleted

    def delete_for_team(self, team_id: str) -> int:
        count = 0
        for standing in self.find_by_team(team_id):
            self.db.delete(standing)
            count += 1
        self.flush()
        return count

    def insert_many(self, standings: Iterable[Standing]) -> Tuple[List[Standing], List[Standing]]:
        """Insert each record in its own savepoint. Failed rows are logged and skipped."""
        inserted, skipped = [], []
        for standing in standings:
            try:
                with self.db.begin_nested():
                    self.db.add(standing)
                inserted.append(standing)
            except IntegrityError as e:
                logger.error(
                    f"❌ Could not insert standing for team {standing.team_id} "
                    f"in {standing.league_id}/{standing.season}: {e.orig}"
                )
                skipped.append(standing)
        return inserted, skipped

    def flush(self):
        try:
            self.db.flush()
        except (IntegrityError, StaleDataError) as e:
            self.db.rollback()
            raise PersistenceConflictError(f"Standings were modified concurrently: {e}") from e

    def commit(self):
        try:
            self.db.commit()
        except (IntegrityError, StaleDataError) as e:
            self.db.rollback()
            raise PersistenceConflictError(f"Standings were modified concurrently: {e}") from e
