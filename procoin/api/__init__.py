"""API package exports."""

from procoin.api.middleware import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
