"""Access-gated student content queries."""

from .service import PaidContentService


__all__ = ["PaidContentService"]
