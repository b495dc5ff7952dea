from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from duochat.config.app_config import AppConfig
from duochat.models.enums import MessageRole, ProviderModel, ResponseType
from duochat.store.chat_store import InMemoryChatStore, JsonFileChatStore, create_store


def _add_turn(store, chat_id: int, prompt: str = "Hi", reply: str = "Hello!") -> None:
    store.create_message(chat_id, prompt, MessageRole.USER, ProviderModel.TEXT_PROVIDER, ResponseType.TEXT)
    store.create_message(chat_id, reply, MessageRole.ASSISTANT, ProviderModel.TEXT_PROVIDER, ResponseType.TEXT)


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemoryChatStore()
    return JsonFileChatStore(tmp_path / "chats.json")


def test_created_chat_round_trips(any_store) -> None:
    started = datetime.now(timezone.utc)

    created = any_store.create_chat("Test", owner_id=9)
    fetched = any_store.get_chat(created.id)

    assert fetched is not None
    assert fetched.title == "Test"
    assert fetched.owner_id == 9
    assert fetched.created_at >= started
    assert fetched == created


def test_ids_are_monotonic_and_never_reused(any_store) -> None:
    first = any_store.create_chat("one")
    second = any_store.create_chat("two")
    assert (first.id, second.id) == (1, 2)

    assert any_store.delete_chat(second.id) is True
    third = any_store.create_chat("three")

    assert third.id == 3


def test_delete_cascades_to_messages(any_store) -> None:
    chat = any_store.create_chat("doomed")
    other = any_store.create_chat("kept")
    _add_turn(any_store, chat.id)
    _add_turn(any_store, other.id)

    assert any_store.delete_chat(chat.id) is True

    assert any_store.get_chat(chat.id) is None
    assert any_store.get_messages_by_chat_id(chat.id) == []
    assert len(any_store.get_messages_by_chat_id(other.id)) == 2


def test_deleting_unknown_chat_reports_false(any_store) -> None:
    assert any_store.delete_chat(404) is False


def test_messages_are_returned_oldest_first(any_store) -> None:
    chat = any_store.create_chat("ordered")
    _add_turn(any_store, chat.id, "first", "second")
    _add_turn(any_store, chat.id, "third", "fourth")

    contents = [message.content for message in any_store.get_messages_by_chat_id(chat.id)]

    assert contents == ["first", "second", "third", "fourth"]


def test_message_for_unknown_chat_is_not_created(any_store) -> None:
    message = any_store.create_message(7, "Hi", MessageRole.USER, ProviderModel.TEXT_PROVIDER)

    assert message is None
    assert any_store.get_messages_by_chat_id(7) == []


def test_chats_are_listed_newest_first(any_store) -> None:
    for title in ("a", "b", "c"):
        any_store.create_chat(title)

    assert [chat.title for chat in any_store.list_chats()] == ["c", "b", "a"]


def test_only_title_can_be_updated(any_store) -> None:
    chat = any_store.create_chat("before")

    updated = any_store.update_chat_title(chat.id, "after")

    assert updated is not None
    assert updated.title == "after"
    assert updated.created_at == chat.created_at
    assert any_store.get_chat(chat.id).title == "after"
    assert any_store.update_chat_title(999, "nope") is None


def test_returned_records_are_copies(any_store) -> None:
    chat = any_store.create_chat("original")

    chat.title = "mutated"

    assert any_store.get_chat(chat.id).title == "original"


def test_json_store_survives_restart(tmp_path: Path) -> None:
    path = tmp_path / "data" / "chats.json"
    store = JsonFileChatStore(path)
    chat = store.create_chat("persisted")
    _add_turn(store, chat.id)
    doomed = store.create_chat("gone")
    store.delete_chat(doomed.id)

    reloaded = JsonFileChatStore(path)

    assert reloaded.get_chat(chat.id).title == "persisted"
    assert [m.role for m in reloaded.get_messages_by_chat_id(chat.id)] == [MessageRole.USER, MessageRole.ASSISTANT]
    assert reloaded.get_chat(doomed.id) is None
    # Deleted ids stay retired across restarts
    assert reloaded.create_chat("new").id == 3


def test_json_store_writes_camel_case_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "chats.json"
    store = JsonFileChatStore(path)
    store.create_chat("snap", owner_id=1)

    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["lastChatId"] == 1
    assert payload["chats"][0]["ownerId"] == 1
    assert "createdAt" in payload["chats"][0]


@pytest.mark.parametrize(
    "contents",
    ["{not json", "[]", "null", '"text"', '{"chats": 5}', '{"chats": [{"id": "x"}]}', '{"lastChatId": "abc"}'],
)
def test_json_store_starts_empty_on_unusable_snapshot(tmp_path: Path, contents: str) -> None:
    path = tmp_path / "chats.json"
    path.write_text(contents, encoding="utf-8")

    store = JsonFileChatStore(path)

    assert store.list_chats() == []
    assert store.create_chat("fresh").id == 1


def _block_snapshot_writes(path: Path) -> Path:
    blocker = path.with_suffix(path.suffix + ".tmp")
    blocker.mkdir()
    return blocker


def test_failed_write_leaves_new_chat_unstored(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = JsonFileChatStore(path)
    kept = store.create_chat("kept")
    blocker = _block_snapshot_writes(path)

    with pytest.raises(OSError):
        store.create_chat("ghost")

    assert store.get_chat(kept.id + 1) is None
    assert [chat.title for chat in store.list_chats()] == ["kept"]

    blocker.rmdir()
    assert store.create_chat("after").id == kept.id + 2
    assert [chat.title for chat in JsonFileChatStore(path).list_chats()] == ["after", "kept"]


def test_failed_write_leaves_messages_and_deletes_unapplied(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    store = JsonFileChatStore(path)
    chat = store.create_chat("kept")
    _add_turn(store, chat.id)
    _block_snapshot_writes(path)

    with pytest.raises(OSError):
        store.create_message(chat.id, "lost", MessageRole.USER, ProviderModel.TEXT_PROVIDER)
    with pytest.raises(OSError):
        store.delete_chat(chat.id)
    with pytest.raises(OSError):
        store.update_chat_title(chat.id, "renamed")

    assert store.get_chat(chat.id).title == "kept"
    assert [m.content for m in store.get_messages_by_chat_id(chat.id)] == ["Hi", "Hello!"]


def test_create_store_selects_backend(tmp_path: Path) -> None:
    assert type(create_store(AppConfig(store_type="in_memory"))) is InMemoryChatStore

    store = create_store(AppConfig(store_type="json_file", store_path=str(tmp_path / "s.json")))
    assert isinstance(store, JsonFileChatStore)
