from matchday.matches.models.match_model import Match, MatchEvent, MatchStatus, LIVE_STATUSES
