import asyncio
import sys
from pathlib import Path

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import aiosqlite
import pytest

from chatter.config import MemoryConfig
from chatter.context.selector import AIModel
from chatter.memory.inmemory import InMemoryStore
from chatter.memory.manager import MemoryManager
from chatter.memory.retriever import CONTEXT_HEADER
from chatter.memory.store import SQLiteMemoryStore
from chatter.memory.types import MemoryType, RelationType
from chatter.memory.usecase import MemoryUseCase
from chatter.storage.conversations import ChatMessage, ConversationLog, MessageSender
from conftest import FailingStore


def _usecase(store=None, conversations=None, **config) -> MemoryUseCase:
    manager = MemoryManager(store or InMemoryStore(), MemoryConfig(**config))
    return MemoryUseCase(manager, conversations)


def _message(content: str, conversation_id: str = "conv-1") -> ChatMessage:
    return ChatMessage.create(conversation_id, content)


@pytest.mark.asyncio
async def test_preference_message_becomes_memory():
    usecase = _usecase()

    created = await usecase.process_message_for_memory("agent-1", _message("我喜欢蓝色，请记住"), "conv-1")

    assert created is True
    [memory] = await usecase.list_memories("agent-1")
    assert memory.type == MemoryType.PREFERENCE
    assert memory.importance == pytest.approx(0.79)
    assert memory.tags == ["preference"]
    assert memory.conversation_id == "conv-1"
    assert memory.access_count == 0


@pytest.mark.asyncio
async def test_below_threshold_is_not_remembered():
    usecase = _usecase(importance_threshold=0.9)

    assert await usecase.process_message_for_memory("agent-1", _message("hi")) is False
    assert await usecase.list_memories("agent-1") == []


@pytest.mark.asyncio
async def test_long_content_is_bounded():
    usecase = _usecase()

    await usecase.process_message_for_memory("agent-1", _message("z" * 500))

    [memory] = await usecase.list_memories("agent-1")
    assert memory.content == "z" * 200 + "..."


@pytest.mark.asyncio
async def test_similar_memories_are_linked():
    usecase = _usecase()
    await usecase.process_message_for_memory("agent-1", _message("i like to write code every night"))
    await usecase.process_message_for_memory("agent-1", _message("i like to write code every day"))

    memories = await usecase.list_memories("agent-1")
    newest = next(m for m in memories if m.content.endswith("day"))
    relations = await usecase.get_memory_relations(newest.id)

    assert len(relations) == 1
    assert relations[0].type == RelationType.SIMILAR
    assert relations[0].source_id == newest.id
    assert relations[0].strength == pytest.approx(0.75)


@pytest.mark.asyncio
async def test_capacity_is_never_exceeded():
    usecase = _usecase(max_memories_per_agent=5)

    for i in range(12):
        await usecase.process_message_for_memory("agent-1", _message(f"note number {i}" + "!" * (i % 4)))
        assert len(await usecase.list_memories("agent-1")) <= 5

    memories = await usecase.list_memories("agent-1")
    assert len(memories) == 5
    # The emphatic notes score highest and survive
    assert all(m.content.endswith("!!!") or m.content.endswith("!!") for m in memories)


@pytest.mark.asyncio
async def test_retrieval_limits_and_updates_access():
    usecase = _usecase()
    for text in ("green tea is my favourite", "i must finish the report", "tea with lemon please"):
        await usecase.process_message_for_memory("agent-1", _message(text))

    results = await usecase.retrieve_relevant_memories("agent-1", "tea", limit=2)

    assert len(results) == 2
    assert len({m.id for m in results}) == 2
    for memory in results:
        stored = await usecase.manager.get_memory(memory.id)
        assert stored.access_count == 1


@pytest.mark.asyncio
async def test_feedback_nudges_and_clamps():
    usecase = _usecase()
    await usecase.process_message_for_memory("agent-1", _message("plain note"))
    [memory] = await usecase.list_memories("agent-1")
    start = memory.importance

    await usecase.update_memory_importance(memory.id, 1.0)
    assert (await usecase.manager.get_memory(memory.id)).importance == pytest.approx(start + 0.1)

    await usecase.update_memory_importance(memory.id, -25.0)
    assert (await usecase.manager.get_memory(memory.id)).importance == pytest.approx(start)

    await usecase.update_memory_feedback(memory.id, is_helpful=False)
    assert (await usecase.manager.get_memory(memory.id)).importance == pytest.approx(start - 0.1)

    for _ in range(20):
        await usecase.update_memory_feedback(memory.id, is_helpful=True)
    assert (await usecase.manager.get_memory(memory.id)).importance == 1.0

    # Unknown ids are ignored
    await usecase.update_memory_importance("missing", 1.0)


@pytest.mark.asyncio
async def test_feedback_does_not_trigger_eviction():
    usecase = _usecase(max_memories_per_agent=2)
    for text in ("first note", "second note"):
        await usecase.process_message_for_memory("agent-1", _message(text))
    memories = await usecase.list_memories("agent-1")

    for memory in memories:
        await usecase.update_memory_importance(memory.id, -1.0)

    assert len(await usecase.list_memories("agent-1")) == 2


@pytest.mark.asyncio
async def test_forget_leaves_relations():
    usecase = _usecase()
    await usecase.process_message_for_memory("agent-1", _message("alpha beta gamma"))
    await usecase.process_message_for_memory("agent-1", _message("alpha beta gamma"))
    first, second = await usecase.list_memories("agent-1")

    assert await usecase.forget(first.id) is True
    assert len(await usecase.get_memory_relations(first.id)) == 1
    assert await usecase.forget_agent("agent-1") == 1


@pytest.mark.asyncio
async def test_statistics_and_summary():
    usecase = _usecase()
    assert (await usecase.get_memory_statistics("agent-1")).total == 0
    assert await usecase.get_conversation_memory_summary("agent-1", "conv-1") == ""

    await usecase.process_message_for_memory("agent-1", _message("我喜欢蓝色，请记住"))
    await usecase.process_message_for_memory("agent-1", _message("ok"))

    stats = await usecase.get_memory_statistics("agent-1")
    assert stats.total == 2
    assert stats.important == 1
    assert stats.recent == 2
    assert stats.type_distribution == {MemoryType.PREFERENCE: 1, MemoryType.CONVERSATION: 1}
    assert stats.average_importance == pytest.approx((0.79 + 0.52) / 2)

    summary = await usecase.get_conversation_memory_summary("agent-1", "conv-1")
    lines = summary.splitlines()
    assert len(lines) == 3
    assert lines[1] == "- 我喜欢蓝色，请记住 (importance: 0.79)"


@pytest.mark.asyncio
async def test_enhanced_context_lists_memories():
    usecase = _usecase()
    assert await usecase.generate_memory_enhanced_context("agent-1", "conv-1", "颜色") == ""

    await usecase.process_message_for_memory("agent-1", _message("我喜欢蓝色，请记住"))
    text = await usecase.generate_memory_enhanced_context("agent-1", "conv-2", "what colour do I like")

    assert text.splitlines() == [CONTEXT_HEADER, "- 我喜欢蓝色，请记住", "  Tags: preference"]


@pytest.mark.asyncio
async def test_build_prompt_context(tmp_path):
    log = ConversationLog(tmp_path)
    usecase = _usecase(conversations=log)
    history = [
        ChatMessage.create("conv-1", "my birthday is in may", MessageSender.USER),
        ChatMessage.create("conv-1", "noted!", MessageSender.AI),
        ChatMessage.create("conv-1", "   ", MessageSender.AI),
    ]
    for message in history:
        await log.append(message)
        await usecase.process_message_for_memory("agent-1", message, "conv-1")

    context = await usecase.build_prompt_context("agent-1", "conv-1", "when is my birthday?", AIModel.KIMI)

    assert [m.id for m in context.messages] == [history[0].id, history[1].id]
    assert "my birthday is in may" in context.memory_text
    assert not context.is_empty


@pytest.mark.asyncio
async def test_store_failures_degrade_silently():
    failing = FailingStore({
        "insert", "search_by_text", "top_by_importance",
        "get_by_conversation", "get_by_agent", "get_by_id",
    })
    usecase = _usecase(store=failing)

    assert await usecase.process_message_for_memory("agent-1", _message("remember this!")) is False
    assert await usecase.retrieve_relevant_memories("agent-1", "anything") == []
    assert await usecase.generate_memory_enhanced_context("agent-1", "conv-1", "anything") == ""
    assert await usecase.get_conversation_memory_summary("agent-1", "conv-1") == ""
    assert (await usecase.get_memory_statistics("agent-1")).total == 0
    await usecase.update_memory_importance("memory_x", 1.0)


@pytest.mark.asyncio
async def test_eviction_failure_still_reports_creation():
    failing = FailingStore({"delete"})
    usecase = _usecase(store=failing, max_memories_per_agent=1)

    assert await usecase.process_message_for_memory("agent-1", _message("first")) is True
    assert await usecase.process_message_for_memory("agent-1", _message("second")) is True


@pytest.mark.asyncio
async def test_summary_rounds_scores(store, make_memory):
    await store.insert(make_memory("rounded up", importance=0.789))
    await store.insert(make_memory("rounded down", importance=0.784))
    usecase = _usecase(store=store)

    summary = await usecase.get_conversation_memory_summary("agent-1", "conv-1")

    assert summary.splitlines()[1:] == [
        "- rounded up (importance: 0.79)",
        "- rounded down (importance: 0.78)",
    ]


@pytest.mark.asyncio
async def test_unreadable_row_does_not_break_retrieval(tmp_path):
    db_path = tmp_path / "memories.db"
    usecase = _usecase(store=SQLiteMemoryStore(db_path))
    await usecase.process_message_for_memory("agent-1", _message("my birthday is in may"))
    await usecase.process_message_for_memory("agent-1", _message("i must call mum on sunday"))
    broken, kept = await usecase.list_memories("agent-1")

    async with aiosqlite.connect(db_path) as db:
        await db.execute("UPDATE memories SET last_accessed = ? WHERE id = ?", ("garbage", broken.id))
        await db.commit()

    results = await usecase.retrieve_relevant_memories("agent-1", "birthday")
    assert [m.id for m in results] == [kept.id]

    text = await usecase.generate_memory_enhanced_context("agent-1", "conv-1", "birthday")
    assert [line for line in text.splitlines() if line.startswith("- ")] == [f"- {kept.content}"]


@pytest.mark.asyncio
async def test_concurrent_ingestion_stays_within_capacity(tmp_path):
    store = SQLiteMemoryStore(tmp_path / "memories.db")
    await store.initialize()
    usecase = _usecase(store=store, max_memories_per_agent=3)

    results = await asyncio.gather(*(
        usecase.process_message_for_memory("agent-1", _message(f"fact number {i} worth keeping"))
        for i in range(20)
    ))

    assert all(results)
    assert len(await usecase.list_memories("agent-1")) == 3
    assert len(usecase.manager.locks) == 0


@pytest.mark.asyncio
async def test_concurrent_retrieval_counts_every_access(tmp_path):
    store = SQLiteMemoryStore(tmp_path / "memories.db")
    await store.initialize()
    usecase = _usecase(store=store)
    await usecase.process_message_for_memory("agent-1", _message("green tea every morning"))
    [memory] = await usecase.list_memories("agent-1")

    await asyncio.gather(*(
        usecase.retrieve_relevant_memories("agent-1", "tea") for _ in range(10)
    ))

    assert (await usecase.manager.get_memory(memory.id)).access_count == 10


@pytest.mark.asyncio
async def test_forget_agent_drops_its_lock():
    usecase = _usecase()
    await usecase.process_message_for_memory("agent-1", _message("something to keep"))

    assert await usecase.forget_agent("agent-1") == 1
    assert len(usecase.manager.locks) == 0
