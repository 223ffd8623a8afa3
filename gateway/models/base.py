"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- AuditMixin: created_at / updated_at timestamps
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all gateway models."""
    pass


class AuditMixin:
    """Standard audit columns.

    Adds:
    - created_at: Timestamp set on insert
    - updated_at: Timestamp updated on every change
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
