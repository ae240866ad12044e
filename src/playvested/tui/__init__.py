"""
PlayVested demo host - Textual terminal UI.

A small host application that wires the SessionController to real widgets:
the create-player, link-account and summary panels, plus buttons for each
controller operation. It exists to exercise the client end to end against
a local or production ledger.

Example:
    # Local ledger
    playvested-demo --publisher pub-1 --application game-1

    # Production ledger, stored player
    PLAYVESTED_PRODUCTION=1 playvested-demo --application game-1 --player p-42
"""

from playvested.tui.app import PlayVestedApp, main

__all__ = [
    "PlayVestedApp",
    "main",
]
