from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column
from datetime import datetime
from typing import List
from uuid import uuid4

from .types import UTCDateTime, utcnow


class User(SQLModel, table=True):
    """User model for authentication and task ownership."""
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    username: str = Field(unique=True, index=True, max_length=30)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))

    tasks: List["Task"] = Relationship(back_populates="user")
