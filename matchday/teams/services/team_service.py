import logging
from sqlalchemy.orm import Session
from rapidfuzz import fuzz
from matchday.core.config import settings
from matchday.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from matchday.core.utils import generate_custom_id
from matchday.leagues.services.league_service import LeagueService
from matchday.teams.models import Team

logger = logging.getLogger(__name__)


class TeamService:
    def __init__(self, db: Session):
        self.db = db
        self.league_service = LeagueService(db)

    def get_team(self, team_id: str):
        return self.db.query(Team).filter(Team.team_id == team_id).first()

    def require_team(self, team_id: str) -> Team:
        team = self.get_team(team_id)
        if not team:
            raise NotFoundError(f"Team {team_id} not found")
        return team

    def create_team(self, team_name: str, league_id: str, short_name: str = None) -> Team:
        if not team_name:
            raise ValidationError("Team name is required")
        league = self.league_service.require_league(league_id)

        team = Team(
            team_id=generate_custom_id(self.db, Team, "T", "team_id"),
            team_name=team_name,
            short_name=short_name or team_name[:3].upper(),
            league_id=league.league_id,
        )
        self.db.add(team)
        self.db.flush()
        return team

    def add_to_league(self, team_id: str, league_id: str) -> Team:
        """Register a secondary league membership."""
        team = self.require_team(team_id)
        league = self.league_service.require_league(league_id)
        if league.league_id not in team.league_ids():
            team.leagues.append(league)
            self.db.flush()
        return team

    def resolve_team(self, team_name: str, league_id: str) -> Team:
        """Match a free-text team name to a team, creating it in the league when nothing is close."""
        try:
            name = team_name.strip()

            # Step 1: exact name
            team = self.db.query(Team).filter(Team.team_name == name).first()
            if team:
                return team

            # Step 2: case-insensitive name or short name
            lowered = name.lower()
            for existing_team in self.db.query(Team).all():
                if existing_team.team_name.lower() == lowered or (existing_team.short_name or "").lower() == lowered:
                    return existing_team

            # Step 3: fuzzy match, league members first
            candidates = sorted(
                self.db.query(Team).all(),
                key=lambda t: league_id not in t.league_ids(),
            )
            best_team, best_score = None, 0
            for existing_team in candidates:
                score = fuzz.ratio(lowered, existing_team.team_name.lower())
                if score > best_score:
                    best_team, best_score = existing_team, score
            if best_team is not None and best_score > settings.TEAM_MATCH_THRESHOLD:
                return best_team

            # Step 4: nothing close, create it
            logger.warning(f"⚠️ Creating new team '{name}', no match above {settings.TEAM_MATCH_THRESHOLD}")
            return self.create_team(name, league_id)
        except Exception:
            self.db.rollback()
            raise

    def check_deletable(self, team: Team):
        if team.home_matches or team.away_matches:
            raise InvalidStateError(f"Team {team.team_id} has matches and cannot be deleted")

    def delete_team(self, team: Team):
        self.check_deletable(team)
        try:
            team.leagues = []
            self.db.delete(team)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
