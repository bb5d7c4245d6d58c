from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel

from pocketbook.services.database.models.base import Timestamp, utcnow

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, nullable=False)
    email: str = Field(index=True, nullable=False, unique=True)
    password: str = Field(nullable=False)  # bcrypt hash
    avatar_file: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)
