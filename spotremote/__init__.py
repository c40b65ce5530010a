"""Spotify remote for hardware button decks."""

__version__ = "0.1.0"
