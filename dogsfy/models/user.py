"""
Dogsfy Backend — User SQLAlchemy Model
========================================

What:  ORM model for the `users` table.
How:   The same table definition is created in both the north and the south
       partition (see schema.py); which copy a row lives in is decided once,
       at registration, from the user's coordinates.
Who:   UserDirectory via the two user PartitionStores.

Table Design:
    - id: "<tag><32 hex>"; the leading tag routes every lookup by id
    - username / email: unique within one partition only; uniqueness across
      both partitions is an application pre-check (AccountService)
    - password: opaque hash, never selected into API models
    - hemisphere: the partition tag, duplicated from the id for reporting
    - created_at / updated_at: UTC
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from dogsfy.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A user account stored in one hemisphere partition.

    Lifecycle:
        1. Inserted by registration into the partition chosen by its coordinates
        2. Updated in place by sparse profile updates (never moves partition)
        3. Deleted after its friendship edges have been removed
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(33),
        primary_key=True,
        comment="Partition tag followed by a 32-char hex token",
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Unique within this partition; checked across partitions by the app",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Unique within this partition; checked across partitions by the app",
    )

    password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Opaque credential hash",
    )

    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)

    language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")

    hemisphere: Mapped[str] = mapped_column(
        String(1),
        nullable=False,
        comment="Partition tag; equals the first character of id",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', hemisphere='{self.hemisphere}')>"
