# tests/v1/test_chats.py
"""Tests for the encrypted chat endpoints."""

import pytest
from fastapi import status

from flatshare_chat.api.v1.dependencies import get_chat_service
from flatshare_chat.models.chat import EncryptedMessage
from flatshare_chat.repositories.chat_repo import ChatRepository
from flatshare_chat.services.chat_service import ChatService
from flatshare_chat.services.encryption import EncryptionService
from flatshare_chat.services.errors import EncryptionFailure

CHATS_URL = "/api/v1/chats"


def _open_chat(client, auth_headers, user_id="u1", other_user_id="u2", **extra) -> dict:
    response = client.post(
        CHATS_URL,
        json={"otherUserId": other_user_id, **extra},
        headers=auth_headers(user_id),
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()


def _send(client, auth_headers, chat_id, user_id, text):
    return client.post(
        f"{CHATS_URL}/{chat_id}/messages",
        json={"message": text},
        headers=auth_headers(user_id),
    )


class _FailingEncryption(EncryptionService):
    @staticmethod
    def encrypt(plaintext, key):
        raise EncryptionFailure("Failed to encrypt message")


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", CHATS_URL),
        ("post", CHATS_URL),
        ("get", f"{CHATS_URL}/some-chat"),
        ("get", f"{CHATS_URL}/some-chat/messages"),
        ("post", f"{CHATS_URL}/some-chat/messages"),
    ],
)
def test_chat_endpoints_require_authentication(client, method, path) -> None:
    """Every chat endpoint rejects requests without a bearer token."""
    response = getattr(client, method)(path)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_invalid_token_is_rejected(client) -> None:
    response = client.get(CHATS_URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Could not validate credentials"


def test_create_chat_returns_session_without_key_material(client, auth_headers) -> None:
    """Opening a chat returns camelCase fields and no key or fingerprint."""
    data = _open_chat(client, auth_headers, listingId="L1", listingTitle="Sunny room")

    assert data["participants"] == ["u1", "u2"]
    assert data["listingId"] == "L1"
    assert data["listingTitle"] == "Sunny room"
    assert {"id", "createdAt", "lastActivity"} <= data.keys()
    assert "keyFingerprint" not in data
    assert "key" not in data


def test_create_chat_is_idempotent_for_either_participant(client, auth_headers) -> None:
    first = _open_chat(client, auth_headers, "u1", "u2")
    repeat = _open_chat(client, auth_headers, "u1", "u2")
    reversed_caller = _open_chat(client, auth_headers, "u2", "u1")

    assert first["id"] == repeat["id"] == reversed_caller["id"]


def test_create_chat_per_listing(client, auth_headers) -> None:
    general = _open_chat(client, auth_headers)
    listing = _open_chat(client, auth_headers, listingId="L1")

    assert general["id"] != listing["id"]
    assert general["listingId"] is None


@pytest.mark.parametrize(
    "body, detail",
    [
        ({}, "Other user ID is required"),
        ({"otherUserId": ""}, "Other user ID is required"),
        ({"otherUserId": "u1"}, "Cannot create chat with yourself"),
    ],
)
def test_create_chat_rejects_bad_counterpart(client, auth_headers, body, detail) -> None:
    response = client.post(CHATS_URL, json=body, headers=auth_headers("u1"))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == detail


def test_get_chat_by_id(client, auth_headers) -> None:
    chat = _open_chat(client, auth_headers)

    response = client.get(f"{CHATS_URL}/{chat['id']}", headers=auth_headers("u2"))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == chat["id"]

    assert client.get(f"{CHATS_URL}/{chat['id']}", headers=auth_headers("u3")).status_code == 403
    assert client.get(f"{CHATS_URL}/missing", headers=auth_headers("u1")).status_code == 404


def test_send_message_returns_ciphertext_only(client, auth_headers) -> None:
    chat = _open_chat(client, auth_headers)

    response = _send(client, auth_headers, chat["id"], "u1", "Hi! Is this still available?")

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["chatId"] == chat["id"]
    assert data["senderId"] == "u1"
    assert data["messageType"] == "text"
    assert data["read"] is False
    assert data["ciphertext"] and data["iv"] and data["authTag"]
    assert "text" not in data
    assert "message" not in data
    assert "available" not in response.text


@pytest.mark.parametrize("body", [{"message": ""}, {"message": "   "}, {}])
def test_send_blank_message_is_rejected(client, auth_headers, body) -> None:
    chat = _open_chat(client, auth_headers)

    response = client.post(
        f"{CHATS_URL}/{chat['id']}/messages",
        json=body,
        headers=auth_headers("u1"),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Message content is required"


def test_send_message_to_unknown_chat(client, auth_headers) -> None:
    response = _send(client, auth_headers, "missing", "u1", "hello")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Chat not found"


def test_send_message_as_outsider(client, auth_headers, db_session) -> None:
    chat = _open_chat(client, auth_headers)

    response = _send(client, auth_headers, chat["id"], "u3", "hello")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Unauthorized access to chat"
    assert db_session.query(EncryptedMessage).count() == 0


def test_send_message_encryption_failure_is_500(client, app, auth_headers, db_session) -> None:
    chat = _open_chat(client, auth_headers)
    app.dependency_overrides[get_chat_service] = lambda: ChatService(
        ChatRepository(db_session), _FailingEncryption()
    )
    try:
        response = _send(client, auth_headers, chat["id"], "u1", "hello")
    finally:
        app.dependency_overrides.pop(get_chat_service, None)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["detail"] == "Failed to send message"
    assert db_session.query(EncryptedMessage).count() == 0


def test_get_messages_decrypts_in_order(client, auth_headers) -> None:
    chat = _open_chat(client, auth_headers)
    _send(client, auth_headers, chat["id"], "u1", "Hi! Is this still available?")
    _send(client, auth_headers, chat["id"], "u2", "Yes, come by on Saturday")

    response = client.get(f"{CHATS_URL}/{chat['id']}/messages", headers=auth_headers("u2"))

    assert response.status_code == status.HTTP_200_OK
    messages = response.json()
    assert [m["text"] for m in messages] == [
        "Hi! Is this still available?",
        "Yes, come by on Saturday",
    ]
    assert [m["senderId"] for m in messages] == ["u1", "u2"]
    assert all(m["encrypted"] is True for m in messages)
    assert all("decryptionError" not in m for m in messages)


def test_get_messages_flags_corrupted_entries(client, auth_headers, db_session) -> None:
    chat = _open_chat(client, auth_headers)
    _send(client, auth_headers, chat["id"], "u1", "first")
    broken_id = _send(client, auth_headers, chat["id"], "u1", "second").json()["id"]
    _send(client, auth_headers, chat["id"], "u2", "third")

    stored = db_session.get(EncryptedMessage, broken_id)
    raw = bytearray.fromhex(stored.ciphertext)
    raw[0] ^= 0x01
    stored.ciphertext = raw.hex()
    db_session.commit()

    response = client.get(f"{CHATS_URL}/{chat['id']}/messages", headers=auth_headers("u1"))

    assert response.status_code == status.HTTP_200_OK
    messages = response.json()
    assert [m["text"] for m in messages] == ["first", "[Message could not be decrypted]", "third"]
    assert messages[1]["decryptionError"] is True
    assert "decryptionError" not in messages[0]
    assert "decryptionError" not in messages[2]


def test_get_messages_access_control(client, auth_headers) -> None:
    chat = _open_chat(client, auth_headers)
    _send(client, auth_headers, chat["id"], "u1", "private")

    outsider = client.get(f"{CHATS_URL}/{chat['id']}/messages", headers=auth_headers("u3"))
    assert outsider.status_code == status.HTTP_403_FORBIDDEN
    assert "private" not in outsider.text

    missing = client.get(f"{CHATS_URL}/missing/messages", headers=auth_headers("u1"))
    assert missing.status_code == status.HTTP_404_NOT_FOUND


def test_get_messages_limit(client, auth_headers) -> None:
    chat = _open_chat(client, auth_headers)
    for n in range(4):
        _send(client, auth_headers, chat["id"], "u1", f"message {n}")

    response = client.get(
        f"{CHATS_URL}/{chat['id']}/messages",
        params={"limit": 2},
        headers=auth_headers("u1"),
    )
    assert [m["text"] for m in response.json()] == ["message 2", "message 3"]


@pytest.mark.parametrize("limit", [0, -1, 101])
def test_get_messages_rejects_out_of_range_limit(client, auth_headers, limit) -> None:
    chat = _open_chat(client, auth_headers)

    response = client.get(
        f"{CHATS_URL}/{chat['id']}/messages",
        params={"limit": limit},
        headers=auth_headers("u1"),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_list_chats_shows_placeholder_preview(client, auth_headers) -> None:
    quiet = _open_chat(client, auth_headers, "u1", "u3")
    busy = _open_chat(client, auth_headers, "u1", "u2", listingId="L1")
    _send(client, auth_headers, busy["id"], "u2", "Still available?")

    response = client.get(CHATS_URL, headers=auth_headers("u1"))

    assert response.status_code == status.HTTP_200_OK
    chats = response.json()
    assert [c["id"] for c in chats] == [busy["id"], quiet["id"]]
    assert chats[0]["lastMessage"]["text"] == "[Encrypted]"
    assert chats[0]["lastMessage"]["senderId"] == "u2"
    assert chats[1]["lastMessage"] is None
    assert "Still available" not in response.text

    assert client.get(CHATS_URL, headers=auth_headers("u4")).json() == []


def test_send_initial_message(client, auth_headers) -> None:
    response = client.post(
        f"{CHATS_URL}/initial-message",
        json={"otherUserId": "u2", "message": "Is the room free?", "listingId": "L7"},
        headers=auth_headers("u1"),
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["message"]["chatId"] == data["chatId"]

    history = client.get(f"{CHATS_URL}/{data['chatId']}/messages", headers=auth_headers("u2"))
    assert [m["text"] for m in history.json()] == ["Is the room free?"]

    reopened = _open_chat(client, auth_headers, "u2", "u1", listingId="L7")
    assert reopened["id"] == data["chatId"]


def test_send_initial_message_requires_text(client, auth_headers) -> None:
    response = client.post(
        f"{CHATS_URL}/initial-message",
        json={"otherUserId": "u2", "message": " "},
        headers=auth_headers("u1"),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_mark_message_read(client, auth_headers) -> None:
    chat = _open_chat(client, auth_headers)
    message_id = _send(client, auth_headers, chat["id"], "u1", "ping").json()["id"]
    url = f"{CHATS_URL}/{chat['id']}/messages/{message_id}/read"

    response = client.put(url, headers=auth_headers("u2"))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "marked_as_read"}

    history = client.get(f"{CHATS_URL}/{chat['id']}/messages", headers=auth_headers("u1"))
    assert history.json()[0]["read"] is True

    assert client.put(url, headers=auth_headers("u3")).status_code == 403
    missing = f"{CHATS_URL}/{chat['id']}/messages/999999/read"
    assert client.put(missing, headers=auth_headers("u2")).status_code == 404
