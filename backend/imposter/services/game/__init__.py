"""Game domain services: room registry, phase state machine, roles,
scoring, recovery policy and timers.

This package contains the game mechanics imported by socket handlers and
HTTP routes, keeping transport concerns separated from core game logic.
Only ``store`` and ``catalog`` touch the database.
"""
