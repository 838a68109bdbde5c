from raindrop_mcp.api import RaindropAPI
from raindrop_mcp.server import RaindropRegistry
from raindrop_mcp.sessions import SSE, STREAMABLE, Session, SessionStore


def make_session(session_id, kind=STREAMABLE):
    return Session(session_id, kind, RaindropRegistry(RaindropAPI("test-token")), transport=None)


def test_add_get_remove():
    store = SessionStore()
    session = make_session("abc")
    store.add(session)

    assert "abc" in store
    assert store.get("abc") is session
    assert store.get("missing") is None
    assert store.get(None) is None

    assert store.remove("abc") is session
    assert store.remove("abc") is None
    assert len(store) == 0


def test_counts_by_transport():
    store = SessionStore()
    store.add(make_session("a"))
    store.add(make_session("b"))
    store.add(make_session("c", SSE))

    assert store.counts() == {"streamable": 2, "sse": 1, "total": 3}
    assert sorted(s.id for s in store) == ["a", "b", "c"]


def test_describe():
    store = SessionStore()
    store.add(make_session("a", SSE))
    (entry,) = store.describe()
    assert entry["id"] == "a"
    assert entry["kind"] == "sse"
    assert entry["created"].endswith("+00:00")


def test_iteration_survives_removal():
    store = SessionStore()
    store.add(make_session("a"))
    store.add(make_session("b"))
    for session in store:
        store.remove(session.id)
    assert len(store) == 0
