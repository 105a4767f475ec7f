from sqlalchemy import Column, String, ForeignKey, Table
from sqlalchemy.orm import relationship
from matchday.core.database import Base

# Secondary league memberships (cups, second divisions) on top of the primary league
team_leagues = Table(
    "team_leagues",
    Base.metadata,
    Column("team_id", String, ForeignKey("teams.team_id"), primary_key=True),
    Column("league_id", String, ForeignKey("leagues.league_id"), primary_key=True),
)


class Team(Base):
    __tablename__ = "teams"

    team_id = Column(String, primary_key=True, index=True)
    team_name = Column(String, unique=True, nullable=False)
    short_name = Column(String, nullable=True)
    league_id = Column(String, ForeignKey("leagues.league_id"))

    league = relationship("League", back_populates="teams")
    leagues = relationship("League", secondary=team_leagues)
    home_matches = relationship("Match", foreign_keys="[Match.home_team_id]", back_populates="home_team")
    away_matches = relationship("Match", foreign_keys="[Match.away_team_id]", back_populates="away_team")

    standings = relationship("Standing", back_populates="team")

    def league_ids(self):
        """Primary league first, then memberships, without duplicates."""
        ids = [self.league_id] if self.league_id else []
        for league in self.leagues:
            if league.league_id not in ids:
                ids.append(league.league_id)
        return ids
