from sqlalchemy import Column, String, ForeignKey, Integer, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from matchday.core.database import Base

class Standing(Base):
    __tablename__ = "standings"
    __table_args__ = (
        UniqueConstraint("league_id", "season", "team_id", name="uq_standings_league_season_team"),
    )

    standing_id = Column(String, primary_key=True, index=True)
    league_id = Column(String, ForeignKey("leagues.league_id"), nullable=False, index=True)
    season = Column(String, nullable=False, index=True)
    team_id = Column(String, ForeignKey("teams.team_id"), nullable=False)

    position = Column(Integer, nullable=False, default=0)
    played = Column(Integer, nullable=False, default=0)
    won = Column(Integer, nullable=False, default=0)
    drawn = Column(Integer, nullable=False, default=0)
    lost = Column(Integer, nullable=False, default=0)
    goals_for = Column(Integer, nullable=False, default=0)
    goals_against = Column(Integer, nullable=False, default=0)
    points = Column(Integer, nullable=False, default=0)
    form = Column(JSON, nullable=False, default=list)  # newest first
    last_updated = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency: a stale UPDATE fails instead of overwriting
    version = Column(Integer, nullable=False)

    team = relationship("Team", back_populates="standings")
    league = relationship("League", back_populates="standings")
    overlay = relationship(
        "StandingOverlay",
        back_populates="standing",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def goal_difference(self):
        return self.goals_for - self.goals_against

    @property
    def is_live_update(self):
        return self.overlay is not None


class StandingOverlay(Base):
    """Provisional contribution of the one in-progress match already folded into a standing."""

    __tablename__ = "standing_overlays"

    standing_id = Column(String, ForeignKey("standings.standing_id", ondelete="CASCADE"), primary_key=True)
    match_id = Column(String, ForeignKey("matches.match_id"), nullable=False, index=True)
    temp_goals_for = Column(Integer, nullable=False, default=0)
    temp_goals_against = Column(Integer, nullable=False, default=0)
    temp_points = Column(Integer, nullable=False, default=0)

    standing = relationship("Standing", back_populates="overlay")
