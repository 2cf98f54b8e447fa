import json

from fakes import add_user
from services.inbound import normalize_recipient, parse_inbound_payload
from services.llm import LLMError

POSTMARK_PAYLOAD = {
    "From": "ann@x.com",
    "To": "Ann <ANN@save.steep.news>",
    "Subject": "Fwd: Jane Doe on LinkedIn: Why remote work wins",
    "TextBody": (
        "Jane Doe on LinkedIn\n"
        "Remote work wins because focus compounds.\n"
        "https://www.linkedin.com/posts/janedoe_why-remote-work-wins-activity-7123456789012345678-AbCd\n"
    ),
    "HtmlBody": "",
}

EXTRACTED = {
    "source": "linkedin",
    "author_name": "Jane Doe",
    "author_headline": "Founder at Focus Co",
    "content": "Remote work wins because focus compounds.",
    "original_url": "https://www.linkedin.com/posts/janedoe_why-remote-work-wins-activity-7123456789012345678-AbCd",
    "post_date": "2026-10-15",
    "tags": ["remote work"],
}


def test_forwarded_post_is_stored_for_alias_owner(client, db, llm):
    user = add_user(db)
    llm.response = json.dumps(EXTRACTED)

    resp = client.post("/api/inbound", json=POSTMARK_PAYLOAD)

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["author"] == "Jane Doe"
    assert data["source"] == "linkedin"
    post = db.posts[0]
    assert post["id"] == data["post_id"]
    assert post["user_id"] == user["id"]
    assert post["author_headline"] == "Founder at Focus Co"
    assert post["tags"] == ["remote work"]
    assert post["raw_email"] == POSTMARK_PAYLOAD


def test_unknown_recipient_is_reported_with_200(client, db, llm):
    payload = {**POSTMARK_PAYLOAD, "To": "stranger@save.steep.news"}

    resp = client.post("/api/inbound", json=payload)

    assert resp.status_code == 200
    assert resp.json() == {
        "success": False,
        "error": "User not found",
        "inbound_email": "stranger@save.steep.news",
    }
    assert db.posts == []
    assert llm.prompts == []


def test_invalid_json_is_reported_with_200(client, db):
    resp = client.post("/api/inbound", content=b"{not json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 200
    assert resp.json() == {"success": False, "error": "Invalid JSON"}


def test_non_object_payload_is_rejected(client):
    resp = client.post("/api/inbound", json=["To", "ann@save.steep.news"])

    assert resp.status_code == 200
    assert resp.json()["success"] is False


def test_llm_outage_still_saves_fallback_post(client, db, llm):
    add_user(db)
    llm.error = LLMError("overloaded")

    resp = client.post("/api/inbound", json=POSTMARK_PAYLOAD)

    assert resp.json()["success"] is True
    post = db.posts[0]
    assert post["author_name"] == "Jane Doe"
    assert post["source"] == "linkedin"
    assert "Remote work wins" in post["content"]


def test_database_failure_is_reported(client, db, llm, monkeypatch):
    add_user(db)
    llm.response = json.dumps(EXTRACTED)

    def broken_insert(post_data):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(db, "insert_post", broken_insert)

    resp = client.post("/api/inbound", json=POSTMARK_PAYLOAD)

    assert resp.status_code == 200
    assert resp.json() == {"success": False, "error": "Failed to save post"}


def test_generic_provider_fields_are_understood(client, db, llm):
    add_user(db)
    llm.response = json.dumps(EXTRACTED)

    resp = client.post("/api/inbound", json={
        "recipient": "ann@save.steep.news",
        "sender": "ann@x.com",
        "subject": "Fwd: post",
        "body-plain": "Remote work wins because focus compounds.",
    })

    assert resp.json()["success"] is True


def test_status_probe(client):
    resp = client.get("/api/inbound")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert "timestamp" in resp.json()


def test_recipient_prefers_inbound_domain():
    value = "Ann <ann@x.com>, Steep <ANN@save.steep.news>"

    assert normalize_recipient(value, "save.steep.news") == "ann@save.steep.news"
    assert normalize_recipient(value) == "ann@x.com"
    assert normalize_recipient("") == ""


def test_postmark_fields_win_over_generic_ones():
    email = parse_inbound_payload({"TextBody": "  ", "text": "plain body", "Subject": "Hi", "subject": "lo"})

    assert email.text_body == "plain body"
    assert email.subject == "Hi"
