"""Exception hierarchy for reprise."""


class RepriseError(Exception):
    """Base class for every error raised by reprise itself."""


class CardNotFoundError(RepriseError, KeyError):
    """Lookup on a card identity that was never registered with the store."""

    def __init__(self, identity: str):
        super().__init__(identity)
        self.identity = identity

    def __str__(self) -> str:
        return f"Card not registered: {self.identity}"


class InvalidStateError(RepriseError, ValueError):
    """Scheduler input outside its domain (non-finite or non-positive numbers, bad grade)."""


class StoreUnavailableError(RepriseError):
    """The underlying card store could not be opened or queried."""
