from matchday.leagues.models.leagues_models import League
