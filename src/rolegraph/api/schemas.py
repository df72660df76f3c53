"""Schemas shared by several API modules."""

from pydantic import BaseModel, Field


class NameList(BaseModel):
    """A list of names, slugs or logins, e.g. a role's permissions."""

    items: list[str] = Field(default_factory=list)


class Record(BaseModel):
    """A name with its display title, for selection lists."""

    name: str
    title: str


class RecordList(BaseModel):
    """Every record of a kind, unpaginated."""

    items: list[Record]
