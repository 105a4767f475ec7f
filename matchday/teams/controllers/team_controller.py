from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.security import require_admin
from matchday.standings.services.standing_service import StandingService
from matchday.teams.services.team_service import TeamService

router = APIRouter()


class TeamCreate(BaseModel):
    team_name: str = Field(..., min_length=1)
    league_id: str
    short_name: Optional[str] = None


def serialize_team(team):
    return {
        "team_id": team.team_id,
        "team_name": team.team_name,
        "short_name": team.short_name,
        "league_ids": team.league_ids(),
    }


@router.post("/", status_code=201)
def create_team(body: TeamCreate, db: Session = Depends(get_db), role: str = Depends(require_admin)):
    """Create a team and give it a zeroed row in its league's tables."""
    team = TeamService(db).create_team(body.team_name, body.league_id, body.short_name)
    StandingService(db).add_team_to_standings(team)
    db.commit()
    return serialize_team(team)


@router.post("/{team_id}/leagues/{league_id}")
def join_league(team_id: str, league_id: str, db: Session = Depends(get_db), role: str = Depends(require_admin)):
    team = TeamService(db).add_to_league(team_id, league_id)
    StandingService(db).add_team_to_standings(team)
    db.commit()
    return serialize_team(team)


@router.delete("/{team_id}")
def delete_team(team_id: str, db: Session = Depends(get_db), role: str = Depends(require_admin)):
    """Remove a team, its standings rows, and re-rank the tables it was in."""
    team_service = TeamService(db)
    team = team_service.require_team(team_id)
    team_service.check_deletable(team)
    removed = StandingService(db).remove_team_from_standings(team.team_id)
    team_service.delete_team(team)
    return {"message": f"Team {team_id} deleted", "standings_removed": removed}
