from sqlalchemy import BigInteger, CheckConstraint, Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from enum import Enum
from user_management.database.base import Base


class UserStatus(str, Enum):
    """Closed set of user statuses, stored as a single character."""

    ACTIVE = "A"
    INACTIVE = "I"
    TERMINATED = "T"


class User(Base):
    """
    SQLAlchemy model for User.

    `user_name` and `email` are unique among all existing rows; delete is a
    hard delete. Timestamps are written by the repository in UTC.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "user_status IN ('A', 'I', 'T')",
            name="user_status_valid",
        ),
    )

    # Server-assigned integer identity. BigInteger on Postgres, INTEGER on
    # SQLite so that it stays an autoincrementing ROWID alias.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    user_name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False
    )

    first_name: Mapped[str] = mapped_column(String(255), nullable=False)

    last_name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False
    )

    # One of UserStatus values ("A", "I", "T")
    user_status: Mapped[str] = mapped_column(String(1), nullable=False)

    department: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, user_name={self.user_name!r}, email={self.email!r})>"
