from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.security import require_editor
from matchday.matches.models.match_model import EventType, MatchStatus
from matchday.matches.services.match_service import MatchService, serialize_match

router = APIRouter()


class MatchCreate(BaseModel):
    league_id: str
    home_team_id: str
    away_team_id: str
    date: datetime
    season: Optional[str] = None
    venue: Optional[str] = None
    round: Optional[str] = None


class MatchEventCreate(BaseModel):
    type: EventType
    minute: int = Field(..., ge=0, le=130)
    team_id: str
    player: str = Field(..., min_length=1)
    additional_info: Optional[str] = None


class ScoreUpdate(BaseModel):
    home_score: int = Field(..., ge=0)
    away_score: int = Field(..., ge=0)


class StatusUpdate(BaseModel):
    status: MatchStatus


@router.get("/")
def list_matches(league_id: Optional[str] = None, team_id: Optional[str] = None, db: Session = Depends(get_db)):
    return [serialize_match(match) for match in MatchService(db).list_matches(league_id, team_id)]


@router.get("/live")
def list_live_matches(db: Session = Depends(get_db)):
    return [serialize_match(match) for match in MatchService(db).list_live_matches()]


@router.get("/{match_id}")
def get_match(match_id: str, db: Session = Depends(get_db)):
    return serialize_match(MatchService(db).get_match(match_id), with_events=True)


@router.post("/", status_code=201)
def create_match(body: MatchCreate, db: Session = Depends(get_db), role: str = Depends(require_editor)):
    return serialize_match(MatchService(db).create_match(body.model_dump()))


@router.post("/{match_id}/events")
def add_match_event(
    match_id: str,
    body: MatchEventCreate,
    db: Session = Depends(get_db),
    role: str = Depends(require_editor),
):
    """Record an event; goals update the score and the live standings."""
    data = body.model_dump()
    data["type"] = body.type.value
    return serialize_match(MatchService(db).add_event(match_id, data), with_events=True)


@router.put("/{match_id}/score")
def update_match_score(
    match_id: str,
    body: ScoreUpdate,
    db: Session = Depends(get_db),
    role: str = Depends(require_editor),
):
    return serialize_match(MatchService(db).update_score(match_id, body.home_score, body.away_score))


@router.put("/{match_id}/status")
def update_match_status(
    match_id: str,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    role: str = Depends(require_editor),
):
    """Status transitions drive the standings: kickoff, finalization, abandonment."""
    return serialize_match(MatchService(db).update_status(match_id, body.status.value))
