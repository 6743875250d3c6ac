"""Per-student favorite questions."""

from .models import Favorite
from .service import FavoriteService


__all__ = ["Favorite", "FavoriteService"]
