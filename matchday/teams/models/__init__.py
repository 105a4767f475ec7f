from matchday.teams.models.team_model import Team, team_leagues
