"""Tests for the poem record model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from poemindex.entities.core import POEM_LIST_ADAPTER, Poem


def test_poem_defaults_missing_fields() -> None:
    poem = Poem.model_validate({"title": "春曉"})

    assert poem.author == ""
    assert poem.rhythmic == ""
    assert poem.paragraphs == []
    assert poem.notes == []
    assert poem.name is None and poem.description is None


def test_poem_accepts_null_values_as_empty() -> None:
    poem = Poem.model_validate({"title": None, "paragraphs": None, "notes": None, "rhythmic": None})

    assert poem.title == ""
    assert poem.paragraphs == []
    assert poem.notes == []


def test_poem_reads_desc_alias_and_ignores_unknown_keys() -> None:
    poem = Poem.model_validate({"title": "t", "desc": "summary", "id": "abc", "tags": ["x"]})

    assert poem.description == "summary"
    assert "id" not in poem.to_document()


def test_poem_rejects_wrong_field_types() -> None:
    with pytest.raises(ValidationError):
        Poem.model_validate({"title": 12})
    with pytest.raises(ValidationError):
        Poem.model_validate({"paragraphs": "not a list"})


def test_to_document_omits_absent_optional_fields() -> None:
    document = Poem(title="t", author="a", paragraphs=["p1", "p2"]).to_document()

    assert document == {
        "title": "t",
        "paragraphs": ["p1", "p2"],
        "author": "a",
        "rhythmic": "",
        "notes": [],
    }


def test_to_document_keeps_present_optional_fields() -> None:
    document = Poem(title="t", name="collection", description="about").to_document()

    assert document["name"] == "collection"
    assert document["description"] == "about"


def test_stable_id_is_deterministic_and_content_sensitive() -> None:
    first = Poem(title="静夜思", author="李白", paragraphs=["床前明月光"])
    same = Poem(title="静夜思", author="李白", paragraphs=["床前明月光"], notes=["ignored"])
    other = Poem(title="静夜思", author="李白", paragraphs=["疑是地上霜"])

    assert first.stable_id() == same.stable_id()
    assert first.stable_id() != other.stable_id()
    assert Poem(title="ab", author="c").stable_id() != Poem(title="a", author="bc").stable_id()


def test_poem_list_adapter_requires_a_json_array() -> None:
    poems = POEM_LIST_ADAPTER.validate_json(b'[{"title": "a"}, {"title": "b"}]')
    assert [poem.title for poem in poems] == ["a", "b"]

    with pytest.raises(ValidationError):
        POEM_LIST_ADAPTER.validate_json(b'{"title": "a"}')
