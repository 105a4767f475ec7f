from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.security import require_admin
from matchday.leagues.services.league_service import LeagueService
from matchday.standings.services.match_feed import MatchFeed

router = APIRouter()


class LeagueCreate(BaseModel):
    league_name: str = Field(..., min_length=1)
    season: str = Field(..., min_length=1)
    country: Optional[str] = None


def serialize_league(league):
    return {
        "league_id": league.league_id,
        "league_name": league.league_name,
        "country": league.country,
        "season": league.season,
        "active": league.active,
    }


@router.post("/", status_code=201)
def create_league(body: LeagueCreate, db: Session = Depends(get_db), role: str = Depends(require_admin)):
    return serialize_league(LeagueService(db).create_league(body.league_name, body.season, body.country))


@router.get("/{league_id}")
def get_league(league_id: str, db: Session = Depends(get_db)):
    return serialize_league(LeagueService(db).require_league(league_id))


@router.get("/{league_id}/teams")
def get_league_roster(league_id: str, db: Session = Depends(get_db)):
    league = LeagueService(db).require_league(league_id)
    return [
        {"team_id": team.team_id, "team_name": team.team_name, "short_name": team.short_name}
        for team in MatchFeed(db).list_roster(league.league_id, league.season)
    ]
