# Domain Stats Package
from .models import CardLifecycle, CollectionStats, Histogram

__all__ = ["CardLifecycle", "CollectionStats", "Histogram"]
