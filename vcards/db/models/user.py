from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import validates

from vcards.db.base import Base


class User(Base):
    """Card holder. Owns cards; audit entries survive the account with a null ``user_id``."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    # Login identifier, stored lowercase so lookups are case-insensitive.
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)

    @validates("email")
    def normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()
