from .favorites import FavoriteChangeBus, FavoriteListener, FavoriteOverrideCache

__all__ = [
    "FavoriteChangeBus",
    "FavoriteListener",
    "FavoriteOverrideCache",
]
