"""
CardDB artifact metadata.

INVARIANT: a `sorted_format` artifact always names a supported game
format, and no other artifact kind carries one.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from carddex.config import GROUP_KINDS
from carddex.models.reference import is_supported_format


class DBKind(str, Enum):
    """Kind of CardDB artifact."""

    INVENTORY = "inventory"
    SORTED = "sorted"
    SORTED_FORMAT = "sorted_format"


def is_group_kind(value: object) -> bool:
    return value in GROUP_KINDS


class CardDBMetadata(BaseModel):
    """Self-describing header of a CardDB artifact."""

    type: DBKind
    format: str | None = None
    name: str | None = None
    groups: dict[str, list[str]] = Field(default_factory=dict)
    generator_version: str | None = None
    schema_version: str | None = None
    generated_at: datetime | None = None

    @field_validator("groups")
    @classmethod
    def _known_groups(cls, groups: dict[str, list[str]]) -> dict[str, list[str]]:
        unknown = [name for name in groups if not is_group_kind(name)]
        if unknown:
            raise ValueError(f"unknown group names: {', '.join(sorted(unknown))}")
        return groups

    @model_validator(mode="after")
    def _kind_matches_format(self) -> "CardDBMetadata":
        if self.type is DBKind.SORTED_FORMAT:
            if not is_supported_format(self.format):
                raise ValueError("a sorted_format CardDB must include a supported game format")
        elif self.format is not None:
            raise ValueError(f"a {self.type.value} CardDB must not include a game format")
        return self

    def group_sets(self) -> dict[str, set[str]]:
        """Group name -> set of origin filenames."""
        return {group: set(filenames) for group, filenames in self.groups.items()}
