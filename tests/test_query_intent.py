import pytest

from conftest import make_chunk
from docqa.retrieval.query_intent import (
    DOCUMENT_START_BOOST,
    EXPANSIONS,
    expand_query,
    expansion_for,
    is_identity_query,
    positional_boost,
)


@pytest.mark.parametrize(
    "query",
    ["name", "Name?", "who", "who?", "contact", "what is the name?", "What's your name", "full name",
     "who wrote this", "author", "email", "name.", "Name:", "who?!", "contact details!"],
)
def test_identity_queries(query):
    assert is_identity_query(query)


@pytest.mark.parametrize(
    "query",
    ["what is the refund policy", "who is responsible for maintenance?", "name three risks", "skills"],
)
def test_non_identity_queries(query):
    assert not is_identity_query(query)


def test_exact_trigger_is_expanded():
    assert expand_query("skills") == "skills " + EXPANSIONS["skills"]
    assert expansion_for("Skills?") == EXPANSIONS["skills"]


def test_short_query_containing_trigger_is_expanded():
    assert expansion_for("your work experience") == EXPANSIONS["experience"]


def test_longer_queries_are_left_alone():
    text = "describe the experience with cloud platforms"
    assert expansion_for(text) is None
    assert expand_query(text) == text


def test_no_trigger_no_expansion():
    assert expand_query("refund policy") == "refund policy"
    assert expansion_for("") is None


def test_positional_boost():
    assert positional_boost(make_chunk("a", "x", page=1, chunk_index=0)) == DOCUMENT_START_BOOST
    assert positional_boost(make_chunk("b", "x", chunk_index=0)) == DOCUMENT_START_BOOST
    assert positional_boost(make_chunk("c", "x", page=1)) == DOCUMENT_START_BOOST
    assert positional_boost(make_chunk("d", "x", page=1, chunk_index=1)) == pytest.approx(DOCUMENT_START_BOOST / 2)
    assert positional_boost(make_chunk("e", "x", page=2, chunk_index=0)) == 0.0
    assert positional_boost(make_chunk("f", "x", page=1, chunk_index=2)) == 0.0
    assert positional_boost(make_chunk("g", "x")) == 0.0
