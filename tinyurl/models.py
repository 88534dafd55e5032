"""SQLAlchemy ORM model for the short-code pool.

Data Model Layout
=================
::
    short_codes table
    ├─ short_code (VARCHAR(32) PRIMARY KEY)
    └─ used (BOOLEAN NOT NULL DEFAULT false, INDEXED)

How to Use
===========
**Query the unused count**::
    result = await session.execute(
        select(func.count()).select_from(ShortCode).where(ShortCode.used.is_(False))
    )

Key Behaviours
===============
- The primary key is the uniqueness constraint that seeding relies on
  (``ON CONFLICT (short_code) DO NOTHING``).
- A row flips from ``used = false`` to ``used = true`` exactly once and is
  never deleted.

Classes:
    ShortCode:  One pre-generated code and its allocation flag.
"""

from sqlalchemy import Boolean, String, false
from sqlalchemy.orm import Mapped, mapped_column

from tinyurl.database import Base

__all__ = ["ShortCode"]


class ShortCode(Base):
    __tablename__ = "short_codes"

    short_code: Mapped[str] = mapped_column(String(32), primary_key=True)
    used: Mapped[bool] = mapped_column(
        Boolean, server_default=false(), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<ShortCode(short_code='{self.short_code}', used={self.used})>"
