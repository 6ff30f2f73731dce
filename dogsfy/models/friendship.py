"""
Dogsfy Backend — Friendship SQLAlchemy Model
==============================================

What:  ORM model for the `friends` table in the friends partition.
How:   One row per unordered pair. Whoever added the friend is `user_id`,
       the other side is `friend_id`; every query checks both orders.

Table Design:
    - id: autoincrement surrogate key, never exposed to callers
    - user_id / friend_id: user ids living in other partitions, so no
      foreign keys (they cannot span databases)
    - no unique constraint on the pair: duplicates are prevented by the
      add-friend pre-check only
    - one index per column, because listing a user's friends filters on
      user_id in one branch of the union and on friend_id in the other
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dogsfy.database import Base


class Friendship(Base):
    """A symmetric friendship edge between two users."""

    __tablename__ = "friends"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(String(33), nullable=False)
    friend_id: Mapped[str] = mapped_column(String(33), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_friends_user_id", "user_id"),
        Index("idx_friends_friend_id", "friend_id"),
    )

    def __repr__(self) -> str:
        return f"<Friendship(user_id={self.user_id}, friend_id={self.friend_id})>"
