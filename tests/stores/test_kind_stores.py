"""
Unit tests for kind-specific store operations.

Episodic links and tags, procedural triggers and usage tracking,
prospective lifecycle, emotional ordering and working-memory expiry.
"""

import json

import pytest

from agent_memory.models import EmotionalTag, now_ms
from agent_memory.stores import (
    EmotionalMemoryStore,
    EpisodicMemoryStore,
    ProceduralMemoryStore,
    ProspectiveMemoryStore,
    WorkingMemoryStore,
)


@pytest.fixture
def episodic_store(workspace):
    return EpisodicMemoryStore(workspace)


@pytest.fixture
def procedural_store(workspace):
    return ProceduralMemoryStore(workspace)


@pytest.fixture
def prospective_store(workspace):
    return ProspectiveMemoryStore(workspace)


@pytest.fixture
def emotional_store(workspace):
    return EmotionalMemoryStore(workspace)


@pytest.fixture
def working_store(workspace):
    return WorkingMemoryStore(workspace)


# ----------------------------------------------------------------------
# Episodic
# ----------------------------------------------------------------------


def test_episodic_default_context(episodic_store):
    """An event without context gets context.what = event."""
    memory_id = episodic_store.add({"content": "Deployed version 2"})

    memory = episodic_store.get(memory_id)
    assert memory.event == "Deployed version 2"
    assert memory.context.what == "Deployed version 2"


def test_episodic_query_by_time_range(episodic_store):
    """Time filters use the event timestamp; newest event first."""
    early = episodic_store.add({"content": "early", "timestamp": 1_000})
    middle = episodic_store.add({"content": "middle", "timestamp": 2_000})
    episodic_store.add({"content": "late", "timestamp": 3_000})

    results = episodic_store.query(start_time=1_000, end_time=2_000)

    assert [m.id for m in results] == [middle, early]


def test_episodic_text_search_covers_context(episodic_store):
    """Text search looks at event, context.what and context.why."""
    memory_id = episodic_store.add(
        {"content": "Meeting", "context": {"what": "planning", "why": "quarterly roadmap"}}
    )

    assert [m.id for m in episodic_store.query(text="roadmap")] == [memory_id]


def test_episodic_link_is_bidirectional(episodic_store):
    """link_memories adds each id to the other's related list exactly once."""
    first = episodic_store.add({"content": "first"})
    second = episodic_store.add({"content": "second"})

    assert episodic_store.link_memories(first, second)
    assert episodic_store.link_memories(first, second)

    assert episodic_store.get(first).related_memories == [second]
    assert episodic_store.get(second).related_memories == [first]
    assert episodic_store.link_memories(first, "missing") is False


def test_episodic_emotional_tag_persists(workspace, episodic_store):
    """add_emotional_tag attaches a tag that survives reload."""
    memory_id = episodic_store.add({"content": "Shipped it"})

    episodic_store.add_emotional_tag(
        memory_id, EmotionalTag(emotion="joy", intensity="high", timestamp=5)
    )

    tag = EpisodicMemoryStore(workspace).get(memory_id).emotional_tag
    assert tag.emotion == "joy"
    assert tag.intensity == "high"


# ----------------------------------------------------------------------
# Procedural
# ----------------------------------------------------------------------


def test_find_by_trigger_substring_and_regex(procedural_store):
    """Triggers match as case-insensitive substrings or /regex/ patterns."""
    substring = procedural_store.add(
        {"content": "Greet warmly", "action": "say hi", "trigger": "Hello", "successRate": 0.5}
    )
    regex = procedural_store.add(
        {"content": "Offer help", "action": "ask", "trigger": "/need (help|support)/",
         "successRate": 0.9}
    )
    procedural_store.add({"content": "Unrelated", "trigger": "goodbye"})

    results = procedural_store.find_by_trigger("hello, I need help")

    assert [m.id for m in results] == [regex, substring]


def test_record_use_tracks_running_success_rate(procedural_store):
    """record_use increments use_count and averages successes."""
    memory_id = procedural_store.add({"content": "Run tests first", "action": "pytest"})

    procedural_store.record_use(memory_id, success=True)
    procedural_store.record_use(memory_id, success=False)
    procedural_store.record_use(memory_id, success=True)

    memory = procedural_store.get(memory_id)
    assert memory.use_count == 3
    assert memory.success_rate == pytest.approx(2 / 3)
    assert memory.last_used is not None


def test_procedural_min_success_rate(procedural_store):
    """min_success_rate filters out weaker patterns."""
    procedural_store.add({"content": "weak", "successRate": 0.2})
    strong = procedural_store.add({"content": "strong", "successRate": 0.8})

    assert [m.id for m in procedural_store.query(min_success_rate=0.5)] == [strong]


# ----------------------------------------------------------------------
# Prospective
# ----------------------------------------------------------------------


def test_prospective_due_then_complete(prospective_store):
    """A due reminder is reported until it is completed."""
    past = now_ms() - 60_000
    memory_id = prospective_store.add({"content": "Call mom", "triggerTime": past})

    due = prospective_store.get_due()
    assert [m.id for m in due] == [memory_id]

    assert prospective_store.complete(memory_id)
    assert prospective_store.get_due() == []
    assert prospective_store.get(memory_id).status == "completed"


def test_prospective_due_ordering(prospective_store):
    """Due items sort by priority descending, then trigger time ascending."""
    now = now_ms()
    low = prospective_store.add({"content": "low", "triggerTime": now - 10, "priority": 0.1})
    late = prospective_store.add({"content": "late", "triggerTime": now - 10, "priority": 0.9})
    early = prospective_store.add({"content": "early", "triggerTime": now - 20, "priority": 0.9})
    prospective_store.add({"content": "future", "triggerTime": now + 60_000, "priority": 1.0})

    assert [m.id for m in prospective_store.get_due(now)] == [early, late, low]


def test_prospective_status_transitions(prospective_store):
    """trigger/cancel update status; unknown ids return False."""
    first = prospective_store.add({"content": "first"})
    second = prospective_store.add({"content": "second"})

    assert prospective_store.trigger(first)
    assert prospective_store.cancel(second)
    assert prospective_store.complete("missing") is False

    assert [m.id for m in prospective_store.query(status="triggered")] == [first]
    assert [m.id for m in prospective_store.query(status="cancelled")] == [second]


def test_prospective_get_by_context(prospective_store):
    """Pending reminders match when either context contains the other."""
    memory_id = prospective_store.add({"content": "Buy milk", "triggerContext": "grocery store"})
    done = prospective_store.add({"content": "Buy eggs", "triggerContext": "grocery"})
    prospective_store.complete(done)

    assert [m.id for m in prospective_store.get_by_context("at the grocery store now")] == [
        memory_id
    ]
    assert [m.id for m in prospective_store.get_by_context("grocery")] == [memory_id]


# ----------------------------------------------------------------------
# Emotional
# ----------------------------------------------------------------------


def test_emotional_query_orders_by_intensity(emotional_store):
    """Strongest emotions first, then most recent tag."""
    low = emotional_store.add(
        {"content": "meh", "tag": {"emotion": "neutral", "intensity": "low", "timestamp": 3}}
    )
    high_old = emotional_store.add(
        {"content": "great", "tag": {"emotion": "joy", "intensity": "high", "timestamp": 1}}
    )
    high_new = emotional_store.add(
        {"content": "awful", "tag": {"emotion": "fear", "intensity": "high", "timestamp": 2}}
    )

    assert [m.id for m in emotional_store.query()] == [high_new, high_old, low]
    assert [m.id for m in emotional_store.query(min_intensity="medium")] == [high_new, high_old]


def test_emotional_lookup_by_target_and_emotion(emotional_store):
    """Emotions can be fetched by target memory or by emotion."""
    memory_id = emotional_store.add(
        {
            "content": "Proud of the launch",
            "tag": {"emotion": "satisfaction", "intensity": "medium"},
            "targetMemoryId": "ep-1",
            "targetMemoryType": "episodic",
        }
    )

    assert [m.id for m in emotional_store.get_by_target("ep-1")] == [memory_id]
    assert [m.id for m in emotional_store.get_by_emotion("satisfaction")] == [memory_id]
    assert emotional_store.get(memory_id).context == "Proud of the launch"


# ----------------------------------------------------------------------
# Working
# ----------------------------------------------------------------------


def test_working_memory_expires_on_read(working_store):
    """Expired entries disappear from reads and from the file."""
    live = working_store.add({"content": "current task"})
    expired = working_store.add({"content": "stale", "ttl_ms": -1})

    assert working_store.get(expired) is None
    assert [m.id for m in working_store.get_all()] == [live]

    records = json.loads(working_store.storage_path.read_text(encoding="utf-8"))["memories"]
    assert [r["id"] for r in records] == [live]


def test_working_memory_drops_expired_on_load(workspace):
    """Entries that expired while the process was down are not loaded."""
    path = workspace / "memory" / "working.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "memories": [
                    {"id": "old", "type": "working", "content": "x", "expiresAt": 1},
                    {"id": "new", "type": "working", "content": "y",
                     "expiresAt": now_ms() + 60_000},
                ]
            }
        ),
        encoding="utf-8",
    )

    store = WorkingMemoryStore(workspace)

    assert [m.id for m in store.get_all()] == ["new"]


def test_working_set_items_replaces_buffer(working_store):
    """set_items replaces everything with one entry per content string."""
    working_store.add({"content": "old"})

    ids = working_store.set_items(["step 1", "step 2"], ttl_ms=60_000)

    contents = sorted(m.content for m in working_store.get_all())
    assert contents == ["step 1", "step 2"]
    assert len(ids) == 2


def test_working_clear(working_store):
    working_store.add({"content": "a"})
    working_store.add({"content": "b"})

    assert working_store.clear() == 2
    assert len(working_store) == 0
