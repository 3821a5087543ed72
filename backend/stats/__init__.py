"""
Derived statistics for FixtureWatch: team statistics and head-to-head served
through a Redis / PostgreSQL layered cache in front of API-Football, guarded by
a daily request budget.
"""
