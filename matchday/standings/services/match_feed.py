from typing import List, Set, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from matchday.core.exceptions import NotFoundError
from matchday.matches.models.match_model import Match, MatchStatus, LIVE_STATUSES
from matchday.teams.models.team_model import Team, team_leagues


class MatchFeed:
    """Read-only view of matches and rosters as the standings code consumes them."""

    def __init__(self, db: Session):
        self.db = db

    def get_match(self, match_id: str) -> Match:
        match = self.db.query(Match).filter(Match.match_id == match_id).first()
        if not match:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    def list_finalized(self, league_id: str, season: str) -> List[Match]:
        return (
            self.db.query(Match)
            .filter(
                Match.league_id == league_id,
                Match.season == season,
                Match.status == MatchStatus.ENDED.value,
            )
            .order_by(Match.date, Match.match_id)
            .all()
        )

    def list_roster(self, league_id: str, season: str = None) -> List[Team]:
        """Teams whose primary league is ``league_id`` or who list it as a membership.

        Membership is not season-scoped, so ``season`` does not narrow the roster.
        """
        member_ids = self.db.query(team_leagues.c.team_id).filter(team_leagues.c.league_id == league_id)
        return (
            self.db.query(Team)
            .filter(or_(Team.league_id == league_id, Team.team_id.in_(member_ids.scalar_subquery())))
            .order_by(Team.team_id)
            .all()
        )

    def live_matches(self, league_id: str, season: str) -> List[Match]:
        return (
            self.db.query(Match)
            .filter(
                Match.league_id == league_id,
                Match.season == season,
                Match.status.in_(LIVE_STATUSES),
            )
            .all()
        )

    def live_team_ids(self, league_id: str, season: str) -> Set[str]:
        team_ids = set()
        for match in self.live_matches(league_id, season):
            team_ids.add(match.home_team_id)
            team_ids.add(match.away_team_id)
        return team_ids

    def league_seasons(self) -> List[Tuple[str, str]]:
        return [tuple(row) for row in self.db.query(Match.league_id, Match.season).distinct().all()]
