from __future__ import annotations

from sqlmodel import Field, SQLModel


class Client(SQLModel, table=True):
    __tablename__ = "clients"

    id: int | None = Field(default=None, primary_key=True)
    # Unique per organization by convention only.
    name: str = Field(index=True)
