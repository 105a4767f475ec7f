from matchday.standings.models.standings_model import Standing, StandingOverlay
