from fastapi import APIRouter
from matchday.leagues.controllers.league_controller import router as league_router
from matchday.teams.controllers.team_controller import router as team_router
from matchday.matches.controllers.match_controller import router as match_router
from matchday.matches.controllers.match_upload_controller import router as upload_match_router
from matchday.standings.controllers.standings_controller import router as standings_router

api_router = APIRouter()

api_router.include_router(league_router, prefix="/leagues", tags=["leagues"])
api_router.include_router(team_router, prefix="/teams", tags=["teams"])
api_router.include_router(upload_match_router, prefix="/matches", tags=["matches"])
api_router.include_router(match_router, prefix="/matches", tags=["matches"])
api_router.include_router(standings_router, prefix="/standings", tags=["standings"])
