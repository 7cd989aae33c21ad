"""storeauth - credential and identity lifecycle service for the store backend."""

__version__ = "1.0.0"
