from sqlalchemy.orm import Session
from matchday.leagues.models import League
from matchday.core.exceptions import NotFoundError, ValidationError
from matchday.core.utils import generate_custom_id


class LeagueService:
    def __init__(self, db: Session):
        self.db = db

    def get_league(self, league_id: str):
        return self.db.query(League).filter(League.league_id == league_id).first()

    def require_league(self, league_id: str) -> League:
        league = self.get_league(league_id)
        if not league:
            raise NotFoundError(f"League {league_id} not found")
        return league

    def create_league(self, league_name: str, season: str, country: str = None) -> League:
        '''Create a league, or return the existing one with the same name.'''
        if not league_name or not season:
            raise ValidationError("League name and season are required")

        league = self.db.query(League).filter(League.league_name == league_name).first()
        if league:
            return league

        league = League(
            league_id=generate_custom_id(self.db, League, "L", "league_id"),
            league_name=league_name,
            country=country,
            season=season,
            active=True,
        )
        self.db.add(league)
        self.db.commit()
        self.db.refresh(league)
        return league
