# db_tables.py: single source of truth for table names
TEAMS        = "teams"           # default schema: public
PLAYERS      = "players"
MATCHES      = "matches"
GOALS        = "goals"

# tables whose changes invalidate standings and scorers
WATCHED = (MATCHES, PLAYERS, TEAMS, GOALS)
