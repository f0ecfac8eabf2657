"""Desktop assistant for testing TCP servers, TCP clients and UDP endpoints."""

__version__ = "0.1.0"
__all__ = ["__version__"]