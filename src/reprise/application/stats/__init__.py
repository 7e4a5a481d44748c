# Application Stats Package
from .aggregator import aggregate, classify

__all__ = ["aggregate", "classify"]
