# tests/test_api.py

from datetime import datetime, timedelta

from bson import ObjectId

from app.core.jwt import create_access_token


def seed(collection, sender, receiver, content, timestamp):
    doc = {
        "_id": ObjectId(),
        "sender": sender,
        "receiver": receiver,
        "content": content,
        "timestamp": timestamp,
    }
    collection.docs.append(doc)
    return doc


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "Co-Living Chat"}

def test_history_requires_a_token(client):
    response = client.get("/conversation/bob")
    assert response.status_code in (401, 403)
    assert response.json()["success"] is False

def test_history_rejects_an_invalid_token(client):
    response = client.get("/conversation/bob", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"]["detail"] == "Unauthorized: Invalid token."

def test_history_rejects_an_expired_token(client):
    token = create_access_token({"userId": "alice"}, expires_delta=timedelta(minutes=-1))
    response = client.get("/conversation/bob", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401

def test_history_accepts_sub_claim(client, collection):
    seed(collection, "alice", "bob", "hello", datetime(2025, 1, 1, 9, 0))
    token = create_access_token({"sub": "bob"})
    response = client.get("/conversation/alice", headers={"Authorization": f"Bearer {token}"})
    assert [m["content"] for m in response.json()["messages"]] == ["hello"]

def test_history_is_the_same_from_both_sides(client, collection, auth_headers):
    start = datetime(2025, 1, 1, 9, 0)
    seed(collection, "alice", "bob", "hi bob", start)
    seed(collection, "bob", "alice", "hi alice", start + timedelta(seconds=1))
    seed(collection, "carol", "alice", "not in this conversation", start + timedelta(seconds=2))
    seed(collection, "alice", "bob", "lunch?", start + timedelta(seconds=3))

    as_alice = client.get("/conversation/bob", headers=auth_headers("alice")).json()
    as_bob = client.get("/conversation/alice", headers=auth_headers("bob")).json()

    assert as_alice == as_bob
    assert [m["content"] for m in as_alice["messages"]] == ["hi bob", "hi alice", "lunch?"]
    assert set(as_alice["messages"][0]) == {"_id", "sender", "receiver", "content", "timestamp"}

def test_history_orders_by_timestamp_then_id(client, collection, auth_headers):
    same_ms = datetime(2025, 1, 1, 9, 0, 0, 123000)
    seed(collection, "bob", "alice", "later", same_ms + timedelta(seconds=5))
    first = seed(collection, "alice", "bob", "tie-1", same_ms)
    second = seed(collection, "bob", "alice", "tie-2", same_ms)
    assert first["_id"] < second["_id"]

    messages = client.get("/conversation/bob", headers=auth_headers("alice")).json()["messages"]
    assert [m["content"] for m in messages] == ["tie-1", "tie-2", "later"]

def test_history_is_available_at_the_legacy_path(client, collection, auth_headers):
    seed(collection, "alice", "bob", "hi", datetime(2025, 1, 1))
    response = client.get("/api/messages/bob", headers=auth_headers("alice"))
    assert response.status_code == 200
    assert len(response.json()["messages"]) == 1

def test_history_pagination(client, collection, auth_headers):
    start = datetime(2025, 1, 1)
    for i in range(5):
        seed(collection, "alice", "bob", str(i), start + timedelta(minutes=i))

    def page(n):
        response = client.get(f"/conversation/bob?page={n}&page_size=2", headers=auth_headers("alice"))
        assert response.status_code == 200
        return [m["content"] for m in response.json()["messages"]]

    assert page(1) == ["0", "1"]
    assert page(2) == ["2", "3"]
    assert page(3) == ["4"]
    assert page(4) == []

def test_history_page_size_is_bounded(client, auth_headers):
    response = client.get("/conversation/bob?page_size=100000", headers=auth_headers("alice"))
    assert response.status_code == 422

def test_history_store_failure_is_503(client, collection, auth_headers):
    collection.unreachable = True
    response = client.get("/conversation/bob", headers=auth_headers("alice"))
    assert response.status_code == 503
    assert response.json()["error"]["detail"] == "Failed to load conversation history."

def test_reading_history_never_changes_stored_messages(client, collection, auth_headers):
    seed(collection, "alice", "bob", "hi", datetime(2025, 1, 1))
    before = [dict(d) for d in collection.docs]
    client.get("/conversation/bob", headers=auth_headers("alice"))
    client.get("/conversation/alice", headers=auth_headers("bob"))
    assert collection.docs == before

def test_history_schema_publishes_the_message_shape(client):
    schemas = client.get("/openapi.json").json()["components"]["schemas"]
    assert set(schemas["Message"]["properties"]) == {"_id", "sender", "receiver", "content", "timestamp"}
    assert schemas["ConversationResponse"]["properties"]["messages"]["items"] == {"$ref": "#/components/schemas/Message"}
