"""Core domain entities for the poem indexer."""

from __future__ import annotations

import hashlib
from typing import Any, Dict, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class Poem(BaseModel):
    """One poem record as stored in the source JSON files.

    Field names are the wire contract with both the input files and the
    search index mapping. The optional ``description`` field also accepts the
    shorter ``desc`` key used by some collections.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str = Field(default="", description="Poem title")
    paragraphs: List[str] = Field(default_factory=list, description="Verse lines in order")
    author: str = Field(default="", description="Attributed author")
    rhythmic: str = Field(default="", description="Tune or meter pattern name, if any")
    notes: List[str] = Field(default_factory=list, description="Editorial notes in order")
    name: str | None = Field(default=None)
    description: str | None = Field(
        default=None,
        validation_alias=AliasChoices("description", "desc"),
    )

    @field_validator("title", "author", "rhythmic", mode="before")
    @classmethod
    def _null_to_empty_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("paragraphs", "notes", mode="before")
    @classmethod
    def _null_to_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_document(self) -> Dict[str, Any]:
        """Return the JSON body sent to the index; absent optional fields are omitted."""

        return self.model_dump(mode="json", exclude_none=True)

    def stable_id(self) -> str:
        """Derive a deterministic document identifier from title, author and verse.

        Indexing with this identifier turns a re-run over the same input into
        an in-place overwrite instead of a duplicate.
        """

        digest = hashlib.sha1()
        for part in (self.title, self.author, *self.paragraphs):
            digest.update(part.encode("utf-8"))
            digest.update(b"\x1f")
        return digest.hexdigest()


POEM_LIST_ADAPTER: TypeAdapter[List[Poem]] = TypeAdapter(List[Poem])


__all__ = ["Poem", "POEM_LIST_ADAPTER"]
