# backend/tests/test_dashboard.py
from conftest import INTERVIEW_FORM, QUESTION_SET
from services.dashboard import DashboardState, DashboardView, interview_card, render


def test_placeholders_while_first_snapshot_pending():
    view = render(DashboardState())
    assert view["loading"] is True
    assert view["placeholders"] == 6
    assert view["cards"] == []


def test_empty_state(store):
    view = DashboardView(store).mount()
    out = view.render()
    assert out["loading"] is False
    assert out["placeholders"] == 0
    assert out["empty"]["title"] == "No Data Found"


def test_list_follows_store_until_teardown(store):
    pushed = []
    view = DashboardView(store, on_change=pushed.append).mount()
    assert view.mounted
    assert store.subscriber_count("interviews") == 1

    store.create("interviews", {**INTERVIEW_FORM, "questions": []})
    assert len(pushed[-1]["cards"]) == 1
    assert len(view.state.interviews) == 1

    view.teardown()
    assert not view.mounted
    assert store.subscriber_count("interviews") == 0

    store.create("interviews", {**INTERVIEW_FORM, "position": "SRE", "questions": []})
    assert len(view.state.interviews) == 1


def test_card_links_and_badges(interview):
    card = interview_card(interview)
    iid = interview["id"]
    assert card["tech_stack"] == ["Go", "Postgres"]
    assert card["links"] == {
        "view": f"/generate/interview/{iid}",
        "start": f"/generate/interview/{iid}/start",
        "feedback": f"/generate/feedback/{iid}",
    }
    assert card["created"] is not None


def test_dashboard_route(client, interview):
    r = client.get("/generate")
    assert r.status_code == 200
    body = r.json()
    assert body["view"] == "dashboard"
    assert [c["id"] for c in body["cards"]] == [interview["id"]]


def test_dashboard_socket_pushes_snapshots(client, store, genai):
    with client.websocket_connect("/generate/ws") as ws:
        first = ws.receive_json()
        assert first["cards"] == []
        assert store.subscriber_count("interviews") == 1

        genai.queue(QUESTION_SET)
        r = client.post("/generate/create", json=INTERVIEW_FORM)
        assert r.status_code == 201

        update = ws.receive_json()
        assert [c["position"] for c in update["cards"]] == ["Backend Engineer"]
