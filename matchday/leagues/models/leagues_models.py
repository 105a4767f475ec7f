from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from matchday.core.database import Base

class League(Base):
    __tablename__ = "leagues"

    league_id = Column(String, primary_key=True, index=True)
    league_name = Column(String, unique=True, nullable=False)
    country = Column(String, nullable=True)
    season = Column(String, nullable=False)  # current season, e.g. "2024"
    active = Column(Boolean, nullable=False, default=True)

    teams = relationship("Team", back_populates="league")
    matches = relationship("Match", back_populates="league")
    standings = relationship("Standing", back_populates="league")
