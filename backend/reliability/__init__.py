"""
Multi-source fixture reconciliation for FixtureWatch.
Fetches fixtures from independent sources, merges reports about the same match
by identity, resolves conflicts by source trust and persists change-aware.
"""
