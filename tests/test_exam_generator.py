"""Tests for the retrieval-augmented exam pipeline (ExamGenerator)."""
import json

import pytest

from app.exceptions import (
    EmptyKnowledgeBaseError,
    ExamFormatError,
    InvalidRequestError,
    UpstreamServiceError,
)
from app.services.exam_generator import CONTEXT_DELIMITER, ExamGenerator
from tests.fakes import (
    FakeChat,
    FakeEmbedder,
    InMemoryVectorIndex,
    indexed,
    sample_exam_payload,
)


def _generator(embedder, index, chat, **kwargs) -> ExamGenerator:
    kwargs.setdefault("search_retry_base_delay", 0)
    return ExamGenerator(embedder, index, chat, **kwargs)


@pytest.mark.asyncio
@pytest.mark.parametrize("topic", [None, "", "   "])
async def test_missing_topic_fails_before_any_upstream_call(topic):
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()

    with pytest.raises(InvalidRequestError):
        await _generator(embedder, index, chat).generate(topic, "doc-1", "some notes")

    assert embedder.calls == []
    assert index.ensure_calls == 0
    assert index.upsert_calls == 0
    assert chat.calls == []


@pytest.mark.asyncio
async def test_empty_knowledge_base_never_reaches_chat():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()

    with pytest.raises(EmptyKnowledgeBaseError):
        await _generator(embedder, index, chat).generate("Física Cuántica")

    assert index.ensure_calls == 1
    assert index.search_calls == 1
    assert chat.calls == []


@pytest.mark.asyncio
async def test_inline_ingestion_then_exam():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()
    note = "La mecánica cuántica describe partículas con funciones de onda."

    exam = await _generator(embedder, index, chat).generate("Física Cuántica", "note-42", note)

    assert exam.exam_title == "Física Cuántica"
    assert len(exam.questions) == 3
    assert index.documents["note-42"].content == note
    # note embedded first, then the topic
    assert embedder.calls == [note, "Física Cuántica"]

    system_prompt, user_prompt = chat.calls[0]
    assert note in system_prompt
    assert "Física Cuántica" in user_prompt
    assert "3 questions" in user_prompt


@pytest.mark.asyncio
async def test_ingestion_needs_both_id_and_content():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()

    with pytest.raises(EmptyKnowledgeBaseError):
        await _generator(embedder, index, chat).generate("Biology", "doc-1", None)

    assert index.upsert_calls == 0


@pytest.mark.asyncio
async def test_context_is_top_k_chunks_joined_by_delimiter():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()
    index.created = True
    notes = {
        "a": "mitochondria produce energy for the cell",
        "b": "the cell membrane controls what enters the cell",
        "c": "photosynthesis happens in chloroplasts",
        "d": "rome was founded on seven hills",
    }
    for doc_id, text in notes.items():
        await index.upsert([indexed(doc_id, text, await embedder.embed_text(text))])

    await _generator(embedder, index, chat, top_k=2).generate("the cell")

    system_prompt, _ = chat.calls[0]
    context = system_prompt.split("Context:\n", 1)[1]
    chunks = context.split(CONTEXT_DELIMITER)
    assert len(chunks) == 2
    assert set(chunks) == {notes["a"], notes["b"]}


@pytest.mark.asyncio
async def test_search_retried_with_backoff_after_ingestion():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()
    index.hidden_searches = 2

    exam = await _generator(embedder, index, chat, search_retry_attempts=3).generate(
        "Física Cuántica", "note-1", "Notas sobre física cuántica."
    )

    assert exam.questions
    assert index.search_calls == 3


@pytest.mark.asyncio
async def test_search_retries_are_bounded():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()
    index.hidden_searches = 10

    with pytest.raises(EmptyKnowledgeBaseError):
        await _generator(embedder, index, chat, search_retry_attempts=3).generate(
            "Física Cuántica", "note-1", "Notas sobre física cuántica."
        )

    assert index.search_calls == 3
    assert chat.calls == []


@pytest.mark.asyncio
async def test_failed_ingestion_is_an_upstream_error():
    embedder, index, chat = FakeEmbedder(dimension=8), InMemoryVectorIndex(), FakeChat()

    with pytest.raises(UpstreamServiceError):
        await _generator(embedder, index, chat).generate("Topic", "doc-1", "text")

    assert chat.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", "   ", "not json at all", '{"examTitle": "x"}'])
async def test_unusable_model_output_is_a_format_error(reply):
    embedder, index = FakeEmbedder(), InMemoryVectorIndex()

    with pytest.raises(ExamFormatError):
        await _generator(embedder, index, FakeChat(reply)).generate("Topic", "d", "Topic notes")


@pytest.mark.asyncio
async def test_out_of_range_correct_option_is_rejected():
    payload = sample_exam_payload()
    payload["questions"][0]["correctOptionIndex"] = 4
    embedder, index = FakeEmbedder(), InMemoryVectorIndex()

    with pytest.raises(ExamFormatError):
        await _generator(embedder, index, FakeChat(json.dumps(payload))).generate(
            "Topic", "d", "Topic notes"
        )


@pytest.mark.asyncio
async def test_generated_exam_satisfies_answer_key_invariants():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()

    exam = await _generator(embedder, index, chat).generate("Topic", "d", "Topic notes")

    for question in exam.questions:
        assert len(question.options) == 4
        assert 0 <= question.correct_option_index < len(question.options)
        assert question.question_text


@pytest.mark.asyncio
async def test_numeric_question_ids_are_coerced_to_strings():
    payload = sample_exam_payload()
    for i, question in enumerate(payload["questions"], start=1):
        question["id"] = i
    embedder, index = FakeEmbedder(), InMemoryVectorIndex()

    exam = await _generator(embedder, index, FakeChat(json.dumps(payload))).generate(
        "Topic", "d", "Topic notes"
    )

    assert [q.id for q in exam.questions] == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_duplicate_question_ids_are_rejected():
    payload = sample_exam_payload(count=2)
    payload["questions"][1]["id"] = "q1"
    embedder, index = FakeEmbedder(), InMemoryVectorIndex()

    with pytest.raises(ExamFormatError):
        await _generator(embedder, index, FakeChat(json.dumps(payload))).generate(
            "Topic", "d", "Topic notes"
        )


@pytest.mark.asyncio
async def test_whitespace_content_is_treated_as_topic_only():
    embedder, index, chat = FakeEmbedder(), InMemoryVectorIndex(), FakeChat()
    index.created = True
    await index.upsert([indexed("old", "topic notes", await embedder.embed_text("topic notes"))])
    embedder.calls.clear()

    exam = await _generator(embedder, index, chat).generate("topic", "doc-1", "   \n ")

    assert exam.questions
    assert "doc-1" not in index.documents
    assert index.upsert_calls == 1
    assert embedder.calls == ["topic"]
