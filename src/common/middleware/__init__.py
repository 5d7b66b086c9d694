"""Common middleware for passbook."""

from .observability import StructlogContextMiddleware

__all__ = ["StructlogContextMiddleware"]
