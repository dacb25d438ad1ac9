"""
User table and repository.

Column names match the existing ``users`` schema (camelCase); Python code
works with the snake_case keys.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, insert, select

from google_signup.database import Database

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("googleId", String(255), key="google_id", nullable=False, unique=True),
    Column("displayName", String(255), key="display_name", nullable=False),
    Column("email", String(255), key="email", nullable=False),
    Column("location", String(255), key="location", nullable=False),
    Column("mobileNumber", String(64), key="mobile_number", nullable=False),
    Column("address", String(512), key="address", nullable=False),
    Column("zip", String(32), key="zip", nullable=False),
)

# Labelled by key so result rows map straight onto User fields.
_USER_COLUMNS = [column.label(column.key) for column in users.c if column.key != "id"]


@dataclass(frozen=True)
class User:
    google_id: str
    display_name: str
    email: str
    location: str
    mobile_number: str
    address: str
    zip: str


class UserRepository:
    """Lookups and inserts against the ``users`` table, one statement each."""

    def __init__(self, database: Database):
        self.database = database

    async def find_by_google_id(self, google_id: str) -> Optional[User]:
        rows = await self.database.query(
            select(*_USER_COLUMNS).where(users.c.google_id == google_id)
        )
        if not rows:
            return None
        return User(**rows[0])

    async def create(self, user: User) -> None:
        """Insert ``user``; raises DuplicateRecordError if the Google id is already stored."""
        await self.database.query(insert(users).values(**asdict(user)))
