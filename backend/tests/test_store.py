# backend/tests/test_store.py
import pytest

from core.errors import NotFoundError


def _interview(**kw):
    data = {
        "position": "Data Engineer",
        "description": "Pipelines and warehouses",
        "experience": 2,
        "techStack": "Python,Spark",
        "questions": [],
    }
    data.update(kw)
    return data


def test_create_get_uses_wire_names(store):
    iid = store.create("interviews", _interview())
    rec = store.get("interviews", iid)
    assert rec["id"] == iid
    assert rec["techStack"] == "Python,Spark"
    assert rec["createdAt"] is not None
    assert rec["updatedAt"] is None


def test_get_missing_returns_none(store):
    assert store.get("interviews", "nope") is None


def test_query_filters_by_wire_field(store):
    store.create("userAnswers", {"mockIdRef": "a", "question": "Q1", "rating": 5})
    store.create("userAnswers", {"mockIdRef": "a", "question": "Q2", "rating": 7})
    store.create("userAnswers", {"mockIdRef": "b", "question": "Q1", "rating": 9})

    assert len(store.query("userAnswers", mockIdRef="a")) == 2
    hits = store.query("userAnswers", mockIdRef="b", question="Q1")
    assert [h["rating"] for h in hits] == [9]

    with pytest.raises(KeyError):
        store.query("userAnswers", interview="a")


def test_update_and_delete(store):
    iid = store.create("interviews", _interview())
    store.update("interviews", iid, {"position": "Staff Data Engineer"})
    assert store.get("interviews", iid)["position"] == "Staff Data Engineer"

    with pytest.raises(NotFoundError):
        store.update("interviews", "missing", {"position": "x"})

    assert store.delete("interviews", iid) is True
    assert store.delete("interviews", iid) is False


def test_subscribe_delivers_snapshots_until_unsubscribed(store):
    seen = []
    sub = store.subscribe("interviews", seen.append)
    assert seen == [[]]

    store.create("interviews", _interview())
    assert len(seen) == 2 and len(seen[-1]) == 1

    sub.unsubscribe()
    assert store.subscriber_count("interviews") == 0
    store.create("interviews", _interview(position="Other"))
    assert len(seen) == 2


def test_broken_subscriber_does_not_break_writes(store):
    def boom(_snapshot):
        raise RuntimeError("listener failed")

    seen = []
    store.subscribe("interviews", boom)
    store.subscribe("interviews", seen.append)
    store.create("interviews", _interview())
    assert len(seen[-1]) == 1


def test_writes_to_other_collection_do_not_publish(store):
    seen = []
    store.subscribe("interviews", seen.append)
    store.create("userAnswers", {"mockIdRef": "x", "question": "Q"})
    assert len(seen) == 1
