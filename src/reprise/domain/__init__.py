# Domain Package
from .errors import CardNotFoundError, InvalidStateError, RepriseError, StoreUnavailableError
from .models import (
    Card,
    MemoryState,
    NewState,
    ReviewedState,
    ReviewGrade,
    StoredCardRow,
)

__all__ = [
    "Card",
    "CardNotFoundError",
    "InvalidStateError",
    "MemoryState",
    "NewState",
    "RepriseError",
    "ReviewGrade",
    "ReviewedState",
    "StoreUnavailableError",
    "StoredCardRow",
]
