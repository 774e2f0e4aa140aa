from conftest import make_source
from docqa.generation.answerer import enforce_citations
from docqa.generation.citation_guard import (
    attach_verbatim_citation,
    citations_with_pages,
    extract_citations,
    is_abstention,
    is_contradictory,
    strip_invalid_citations,
    validate_citations,
)
from docqa.generation.prompting import ABSTENTION_MESSAGE


def _sources():
    return [
        make_source(1, "The contract is governed by the laws of England.", page=3),
        make_source(2, "Termination requires thirty days written notice."),
    ]


def test_extract_and_validate():
    sources = _sources()
    assert extract_citations("A [S1]. B [S2][S9].") == [1, 2, 9]
    assert validate_citations("English law applies [S1].", sources)
    assert not validate_citations("English law applies [S3].", sources)
    assert not validate_citations("English law applies.", sources)


def test_strip_invalid_citations():
    sources = _sources()
    assert strip_invalid_citations("English law [S7].", sources) == "English law."
    assert strip_invalid_citations("English law [S1] [S7].", sources) == "English law [S1]."
    assert strip_invalid_citations("Untouched , text [S2]", sources) == "Untouched , text [S2]"


def test_abstention_detection():
    assert is_abstention(ABSTENTION_MESSAGE)
    assert is_abstention("Sorry, I don’t have that information.")
    assert not is_abstention("English law applies [S1].")
    assert not is_contradictory(ABSTENTION_MESSAGE)
    assert is_contradictory(
        ABSTENTION_MESSAGE + " However, the contract is governed by English law and requires notice."
    )


def test_attach_verbatim_citation():
    sources = _sources()
    assert attach_verbatim_citation("thirty days written notice.", sources) == "thirty days written notice. [S2]"
    assert attach_verbatim_citation("ninety days", sources) is None
    assert attach_verbatim_citation("x" * 81, sources) is None


def test_citations_with_pages():
    cits = citations_with_pages("English law [S1]. Notice [S2]. Bogus [S5].", _sources())
    assert cits == [
        {"source_id": "S1", "doc_id": "doc1", "chunk_id": "doc1-1", "page": 3},
        {"source_id": "S2", "doc_id": "doc1", "chunk_id": "doc1-2", "page": None},
    ]


def test_enforce_keeps_cited_answer():
    assert enforce_citations("governing law", "English law applies [S1].", _sources()) == "English law applies [S1]."


def test_enforce_normalizes_abstentions():
    text = ABSTENTION_MESSAGE + " But the contract is governed by the laws of England, see clause 12 for details."
    assert enforce_citations("governing law", text, _sources()) == ABSTENTION_MESSAGE
    assert enforce_citations("governing law", "I don't have that information.", _sources()) == "I don't have that information."


def test_short_abstention_is_kept_and_long_one_is_rewritten():
    short = "Sorry, I don't have that information about fees."
    assert not is_contradictory(short)
    assert enforce_citations("fees", short, _sources()) == short
    assert enforce_citations("fees", "I don't have that information [S9].", _sources()) == "I don't have that information."

    long = short + " The notice period is thirty days and English law governs it."
    assert is_contradictory(long)
    assert enforce_citations("fees", long, _sources()) == ABSTENTION_MESSAGE


def test_enforce_falls_back_to_extractive_summary():
    answer = "The agreement says that English courts and English law decide every dispute between parties."
    result = enforce_citations("which laws govern the contract", answer, _sources())
    assert result == "The contract is governed by the laws of England. [S1]"


def test_enforce_abstains_when_nothing_matches():
    answer = "It is probably fine to assume a reasonable period applies in most circumstances here."
    assert enforce_citations("refund window", answer, _sources()) == ABSTENTION_MESSAGE
    assert enforce_citations("refund window", "", _sources()) == ABSTENTION_MESSAGE


def test_every_non_abstention_result_cites_a_labeled_source():
    sources = _sources()
    for answer in ["English law [S9].", "thirty days written notice", "Something unrelated entirely."]:
        result = enforce_citations("notice termination", answer, sources)
        assert result == ABSTENTION_MESSAGE or validate_citations(result, sources)
