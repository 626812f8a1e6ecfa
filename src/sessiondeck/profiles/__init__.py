"""Saved connection profiles."""

from sessiondeck.profiles.store import ProfileNotFound, ProfileStore, ServerProfile

__all__ = ["ProfileNotFound", "ProfileStore", "ServerProfile"]
