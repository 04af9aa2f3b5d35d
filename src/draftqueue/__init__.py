"""
draftqueue - fantasy draft queue sync

Turns a typed or pasted list of player names into the queue of a live
fantasy football draft board.

Main components:
- players: Name normalization, roster records and identity resolution
- roster: Roster providers (Sleeper API, saved JSON)
- surface: Adapters for the draft board page (Playwright, HTML snapshot)
- board: Queue scanning, adding, clearing and review
- cli: The draftqueue command
"""

__version__ = "1.0.0"
