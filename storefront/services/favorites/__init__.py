"""Favorites collaborators split by responsibility.

``FavoritesRemote`` talks to the REST endpoints, ``FavoritesStore`` owns the
per-user storage slot.  ``FavoritesSynchronizer`` coordinates both.
"""

from .remote import FavoritesRemote
from .store import FavoritesStore

__all__ = [
    "FavoritesRemote",
    "FavoritesStore",
]
