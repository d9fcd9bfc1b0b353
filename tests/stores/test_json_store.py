"""
Unit tests for the JSON file-backed store behaviour shared by every kind.

Tests CRUD, persistence, query filters and recovery from damaged files.
"""

import json

import pytest
from pydantic import ValidationError

from agent_memory.exceptions import UnknownMemoryTypeError
from agent_memory.models import SemanticMemory
from agent_memory.outcome import DegradedReason
from agent_memory.stores import STORE_CLASSES, SemanticMemoryStore, create_store


@pytest.fixture
def semantic_store(workspace):
    """Create a fresh semantic store in an empty workspace."""
    return SemanticMemoryStore(workspace)


def test_missing_file_starts_empty(semantic_store):
    """A store with no file on disk is empty."""
    assert len(semantic_store) == 0
    assert semantic_store.get_all() == []


def test_add_stamps_envelope(semantic_store):
    """add() assigns id, type and timestamps."""
    memory_id = semantic_store.add({"content": "User prefers dark mode"})

    memory = semantic_store.get(memory_id)
    assert memory is not None
    assert memory.id == memory_id
    assert memory.type == "semantic"
    assert memory.created_at == memory.updated_at
    assert memory.created_at > 0


def test_content_fills_primary_field(semantic_store):
    """Content-only input populates the kind's primary field."""
    memory_id = semantic_store.add({"content": "Paris is in France"})

    assert semantic_store.get(memory_id).fact == "Paris is in France"


def test_primary_field_fills_content(semantic_store):
    """Primary-field-only input populates content."""
    memory_id = semantic_store.add({"fact": "Water boils at 100C", "category": "science"})

    memory = semantic_store.get(memory_id)
    assert memory.content == "Water boils at 100C"
    assert memory.category == "science"


def test_add_ignores_caller_supplied_identity(semantic_store):
    """Callers cannot choose id, type or createdAt."""
    memory_id = semantic_store.add(
        {"content": "fact", "id": "mine", "type": "episodic", "createdAt": 1}
    )

    memory = semantic_store.get(memory_id)
    assert memory_id != "mine"
    assert memory.type == "semantic"
    assert memory.created_at != 1


def test_round_trip_across_instances(workspace):
    """A stored memory reads back field-for-field from a new store instance."""
    store = SemanticMemoryStore(workspace)
    memory_id = store.add(
        {
            "content": "User lives in Berlin",
            "category": "location",
            "source": "chat",
            "confidence": 0.9,
            "metadata": {"conversationId": "conv-1", "channelSource": "slack"},
        }
    )
    original = store.get(memory_id)

    reloaded = SemanticMemoryStore(workspace).get(memory_id)

    assert reloaded == original
    assert reloaded.conversation_id == "conv-1"
    assert reloaded.channel_source == "slack"


def test_file_uses_camel_case_records(semantic_store):
    """The on-disk document is {"memories": [...]} with camelCase keys."""
    semantic_store.add({"content": "fact", "metadata": {"conversationId": "c1"}})

    data = json.loads(semantic_store.storage_path.read_text(encoding="utf-8"))

    assert list(data) == ["memories"]
    record = data["memories"][0]
    assert "createdAt" in record
    assert "updatedAt" in record
    assert "created_at" not in record
    assert record["metadata"] == {"conversationId": "c1"}


def test_unchanged_state_rewrites_identical_bytes(semantic_store):
    """Returning to the same state produces a byte-identical file."""
    semantic_store.add({"content": "stable fact"})
    before = semantic_store.storage_path.read_bytes()

    temporary = semantic_store.add({"content": "temporary"})
    semantic_store.delete(temporary)

    assert semantic_store.storage_path.read_bytes() == before


def test_unknown_fields_are_preserved(workspace):
    """Keys the model does not know survive a load/save cycle."""
    path = workspace / "memory" / "semantic.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "memories": [
                    {
                        "id": "m1",
                        "type": "semantic",
                        "content": "fact",
                        "fact": "fact",
                        "createdAt": 1,
                        "updatedAt": 1,
                        "metadata": {},
                        "customField": "kept",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )

    store = SemanticMemoryStore(workspace)
    store.add({"content": "another"})

    records = json.loads(path.read_text(encoding="utf-8"))["memories"]
    kept = next(r for r in records if r["id"] == "m1")
    assert kept["customField"] == "kept"


def test_update_merges_and_bumps_timestamp(semantic_store):
    """update() merges fields and strictly increases updatedAt."""
    memory_id = semantic_store.add({"content": "User likes tea"})
    first = semantic_store.get(memory_id)

    assert semantic_store.update(memory_id, {"content": "User likes coffee"})
    second = semantic_store.get(memory_id)
    assert semantic_store.update(memory_id, {"category": "preferences"})
    third = semantic_store.get(memory_id)

    assert second.fact == "User likes coffee"
    assert second.content == "User likes coffee"
    assert third.category == "preferences"
    assert first.updated_at < second.updated_at < third.updated_at
    assert third.created_at == first.created_at


def test_update_keeps_immutable_fields(semantic_store):
    """id, type and createdAt cannot be changed through update()."""
    memory_id = semantic_store.add({"content": "fact"})
    created_at = semantic_store.get(memory_id).created_at

    semantic_store.update(memory_id, {"id": "other", "type": "episodic", "createdAt": 5})

    memory = semantic_store.get(memory_id)
    assert memory.id == memory_id
    assert memory.type == "semantic"
    assert memory.created_at == created_at
    assert semantic_store.get("other") is None


def test_update_accepts_camel_case_keys(workspace):
    """camelCase partials update the matching attributes."""
    store = create_store("prospective", workspace)
    memory_id = store.add({"content": "Call mom", "triggerContext": "evening"})

    store.update(memory_id, {"triggerContext": "weekend"})

    assert store.get(memory_id).trigger_context == "weekend"


def test_update_missing_memory(semantic_store):
    """Updating an unknown id returns False."""
    assert semantic_store.update("missing", {"content": "x"}) is False


def test_update_rejects_invalid_values(semantic_store):
    """Invalid updates raise and leave the memory untouched."""
    memory_id = semantic_store.add({"content": "fact", "confidence": 0.5})

    with pytest.raises(ValidationError):
        semantic_store.update(memory_id, {"confidence": 2.0})

    assert semantic_store.get(memory_id).confidence == 0.5


def test_delete(semantic_store):
    """delete() removes the memory and reports whether it existed."""
    memory_id = semantic_store.add({"content": "fact"})

    assert semantic_store.delete(memory_id) is True
    assert semantic_store.delete(memory_id) is False
    assert semantic_store.get(memory_id) is None


def test_query_filters_intersect(semantic_store):
    """All query criteria must match."""
    semantic_store.add({"content": "Likes dark mode", "metadata": {"conversationId": "c1"}})
    semantic_store.add({"content": "Likes light mode", "metadata": {"conversationId": "c1"}})
    semantic_store.add({"content": "Likes dark chocolate", "metadata": {"conversationId": "c2"}})

    results = semantic_store.query(conversation_id="c1", text="DARK")

    assert [m.content for m in results] == ["Likes dark mode"]


def test_query_orders_newest_first_and_limits(semantic_store):
    """Results are sorted by updatedAt descending before the limit applies."""
    first = semantic_store.add({"content": "one"})
    semantic_store.add({"content": "two"})
    semantic_store.add({"content": "three"})
    semantic_store.update(first, {"category": "touched"})

    results = semantic_store.query(limit=2)

    assert len(results) == 2
    assert results[0].id == first
    assert results[0].updated_at >= results[1].updated_at


def test_query_by_category_and_time(semantic_store):
    """Semantic query supports category plus since/until windows."""
    old = semantic_store.add({"content": "old", "category": "a"})
    new = semantic_store.add({"content": "new", "category": "a"})
    semantic_store.add({"content": "other", "category": "b"})
    cutoff = semantic_store.get(old).updated_at

    by_category = semantic_store.query(category="a")
    since = semantic_store.query(category="a", since=cutoff)

    assert {m.id for m in by_category} == {old, new}
    assert old in {m.id for m in since}


def test_trailing_commas_are_repaired(workspace):
    """A file made invalid by trailing commas still loads."""
    path = workspace / "memory" / "semantic.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        '{"memories": [{"id": "m1", "type": "semantic", "content": "fact",'
        ' "createdAt": 1, "updatedAt": 1,},]}',
        encoding="utf-8",
    )

    store = SemanticMemoryStore(workspace)

    assert store.get("m1").fact == "fact"
    assert store.last_degraded is None


def test_unparseable_file_starts_empty(workspace):
    """Garbage on disk gives an empty store instead of an exception."""
    path = workspace / "memory" / "semantic.json"
    path.parent.mkdir(parents=True)
    path.write_text("this is not json {", encoding="utf-8")

    store = SemanticMemoryStore(workspace)

    assert len(store) == 0
    assert store.last_degraded == DegradedReason.STORAGE_UNREADABLE


def test_invalid_records_are_skipped(workspace):
    """Records without id, of another kind, or failing validation are dropped."""
    path = workspace / "memory" / "semantic.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "memories": [
                    {"type": "semantic", "content": "no id"},
                    {"id": "e1", "type": "episodic", "content": "wrong kind"},
                    {"id": "bad", "type": "semantic", "content": "x", "confidence": 7},
                    {"id": "ok", "type": "semantic", "content": "valid"},
                ]
            }
        ),
        encoding="utf-8",
    )

    store = SemanticMemoryStore(workspace)

    assert [m.id for m in store.get_all()] == ["ok"]


def test_save_failure_keeps_memory_state(semantic_store, monkeypatch):
    """A failed write is logged and the in-memory state is kept."""

    def fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr("agent_memory.stores.base.tempfile.mkstemp", fail)

    memory_id = semantic_store.add({"content": "survives"})

    assert semantic_store.get(memory_id).content == "survives"
    assert not semantic_store.storage_path.exists()
    assert semantic_store.last_degraded == DegradedReason.STORAGE_UNWRITABLE

    monkeypatch.undo()
    semantic_store.add({"content": "written"})

    assert semantic_store.last_degraded is None
    assert semantic_store.storage_path.exists()


def test_create_store_for_every_kind(workspace):
    """create_store builds each registered kind."""
    for kind, store_class in STORE_CLASSES.items():
        store = create_store(kind, workspace)
        assert isinstance(store, store_class)
        assert store.storage_path == workspace / "memory" / f"{kind}.json"


def test_create_store_unknown_kind(workspace):
    """Unknown kinds raise UnknownMemoryTypeError with the documented message."""
    with pytest.raises(UnknownMemoryTypeError, match="Memory store not found for type: bogus"):
        create_store("bogus", workspace)


def test_model_to_record_excludes_none():
    """Optional fields that are unset are not written."""
    record = SemanticMemory(fact="x").to_record()

    assert "category" not in record
    assert record["content"] == "x"
