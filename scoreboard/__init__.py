"""
Safety Scoreboard — "days since last incident", live.

A single shared counter with an incident log and best streak, persisted
to a JSON file and pushed to every connected browser over WebSockets.
Only a logged-in admin can start, stop or reset it, or log incidents.
"""

__version__ = "1.0.0"
