import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.security import require_admin
from matchday.standings.services.standing_service import StandingService, serialize_standing

logger = logging.getLogger(__name__)

router = APIRouter()


class RecalculateRequest(BaseModel):
    season: str = Field(..., min_length=1)


class StandingUpdate(BaseModel):
    season: Optional[str] = None
    played: Optional[int] = Field(None, ge=0)
    won: Optional[int] = Field(None, ge=0)
    drawn: Optional[int] = Field(None, ge=0)
    lost: Optional[int] = Field(None, ge=0)
    goals_for: Optional[int] = Field(None, ge=0)
    goals_against: Optional[int] = Field(None, ge=0)
    points: Optional[int] = Field(None, ge=0)
    form: Optional[List[str]] = None


@router.get("/league/{league_id}")
def get_league_standings(league_id: str, season: Optional[str] = None, db: Session = Depends(get_db)):
    """Standings table ordered by position, with goal difference and live flags."""
    service = StandingService(db)
    try:
        return service.get_standings(league_id, season)
    except SQLAlchemyError as e:
        # Display path: a degraded empty table beats an error page
        db.rollback()
        logger.error(f"❌ Error fetching standings for {league_id}: {e}")
        return []


@router.get("/league/{league_id}/seasons")
def get_league_seasons(league_id: str, db: Session = Depends(get_db)):
    return StandingService(db).list_seasons(league_id)


@router.post("/recalculate/{league_id}")
def recalculate_standings(
    league_id: str,
    body: RecalculateRequest,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    """Rebuild a season's table from all ended matches."""
    result = StandingService(db).recalculate_standings(league_id, body.season)
    return {
        "message": "Standings recalculated successfully",
        "matches_processed": result["matches_processed"],
        "standings_count": len(result["standings"]),
        "skipped_teams": result["skipped_teams"],
    }


@router.post("/league/{league_id}/seasons/{season}", status_code=201)
def initialize_season(
    league_id: str,
    season: str,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    standings = StandingService(db).initialize_season(league_id, season)
    return {"message": "New season created successfully", "season": season, "teams_count": len(standings)}


@router.post("/league/{league_id}/create-season", status_code=201)
def create_next_season(league_id: str, db: Session = Depends(get_db), role: str = Depends(require_admin)):
    result = StandingService(db).create_next_season(league_id)
    return {"message": "New season created successfully", **result}


@router.put("/league/{league_id}/team/{team_id}")
def update_team_standing(
    league_id: str,
    team_id: str,
    body: StandingUpdate,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    """Manual correction of one team's record."""
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    season = data.pop("season", None)
    service = StandingService(db)
    standing = service.update_team_standing(league_id, team_id, season, data)
    return serialize_standing(standing, service.feed.live_team_ids(league_id, standing.season))
