import enum

from sqlalchemy import Column, String, Integer, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from matchday.core.database import Base


class MatchStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    LIVE = "live"
    HALFTIME = "halftime"
    ENDED = "ended"
    POSTPONED = "postponed"
    CANCELED = "canceled"


class EventType(str, enum.Enum):
    GOAL = "goal"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    SUBSTITUTION = "substitution"
    PENALTY = "penalty"


LIVE_STATUSES = (MatchStatus.LIVE.value, MatchStatus.HALFTIME.value)


class Match(Base):
    __tablename__ = "matches"

    match_id = Column(String, primary_key=True, index=True)
    date = Column(DateTime, nullable=False)
    league_id = Column(String, ForeignKey("leagues.league_id"), nullable=False, index=True)
    season = Column(String, nullable=False, index=True)
    home_team_id = Column(String, ForeignKey("teams.team_id"), nullable=False)
    away_team_id = Column(String, ForeignKey("teams.team_id"), nullable=False)
    venue = Column(String, nullable=True)
    round = Column(String, nullable=True)

    status = Column(String, nullable=False, default=MatchStatus.NOT_STARTED.value)
    home_score = Column(Integer, nullable=False, default=0)
    away_score = Column(Integer, nullable=False, default=0)

    league = relationship("League", back_populates="matches")
    home_team = relationship("Team", foreign_keys=[home_team_id], back_populates="home_matches")
    away_team = relationship("Team", foreign_keys=[away_team_id], back_populates="away_matches")
    events = relationship(
        "MatchEvent",
        back_populates="match",
        order_by="MatchEvent.minute",
        cascade="all, delete-orphan",
    )

    @property
    def is_live(self):
        return self.status in LIVE_STATUSES


class MatchEvent(Base):
    __tablename__ = "match_events"

    event_id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(String, ForeignKey("matches.match_id"), nullable=False, index=True)
    type = Column(String, nullable=False)
    minute = Column(Integer, nullable=False)
    team_id = Column(String, ForeignKey("teams.team_id"), nullable=False)
    player = Column(String, nullable=False)
    additional_info = Column(String, nullable=True)

    match = relationship("Match", back_populates="events")
