import uuid

import pytest
from sqlalchemy import select

from app.core.exceptions import NotFoundError, PermissionDeniedError, ServiceError
from app.db.session import utcnow
from app.models.match import ChatRoom, MatchStatus, Message
from app.services import chat_service
from tests.factories import make_match


async def send(db, user, match, content):
    message, chat_room_id = await chat_service.send_message(db, user.id, match.id, content)
    return message, chat_room_id


async def test_first_message_creates_chat_room(db, alice, bob, realtime):
    match = await make_match(db, alice, bob)
    assert await chat_service.get_chat_room_by_match_id(db, alice.id, match.id) is None

    message, chat_room_id = await send(db, alice, match, "Hello!")

    assert message["content"] == "Hello!"
    assert message["is_own_message"] is True
    assert message["sender"]["display_name"] == "Alice"
    assert await chat_service.get_chat_room_by_match_id(db, bob.id, match.id) == chat_room_id
    assert realtime.rooms_created == [str(chat_room_id)]
    assert [e["type"] for e in realtime.events] == ["INSERT"]
    assert realtime.events[0]["message"]["content"] == "Hello!"


async def test_second_message_reuses_room_and_updates_last_message(db, alice, bob):
    match = await make_match(db, alice, bob)
    _, first_room = await send(db, alice, match, "Hi")
    message, second_room = await send(db, bob, match, "Hey there")

    assert first_room == second_room
    room = (await db.execute(select(ChatRoom).where(ChatRoom.id == first_room))).scalar_one()
    assert room.last_message_id == message["id"]
    assert match.last_message_at is not None


async def test_send_message_rejects_long_content(db, alice, bob):
    match = await make_match(db, alice, bob)
    await send(db, alice, match, "x" * 1000)

    with pytest.raises(ServiceError, match="too long"):
        await send(db, alice, match, "x" * 1001)


async def test_send_message_requires_content(db, alice, bob):
    match = await make_match(db, alice, bob)
    with pytest.raises(ServiceError):
        await send(db, alice, match, "")


async def test_send_message_to_unknown_match(db, alice):
    with pytest.raises(NotFoundError):
        await chat_service.send_message(db, alice.id, uuid.uuid4(), "Hello")


async def test_send_message_requires_active_match(db, alice, bob):
    match = await make_match(db, alice, bob, status=MatchStatus.UNMATCHED.value)
    with pytest.raises(PermissionDeniedError):
        await send(db, alice, match, "Hello")


async def test_send_message_requires_participant(db, alice, bob, carol):
    match = await make_match(db, alice, bob)
    with pytest.raises(PermissionDeniedError):
        await send(db, carol, match, "Hello")


async def test_messages_are_paged_newest_first_and_returned_in_order(db, alice, bob):
    match = await make_match(db, alice, bob)
    chat_room_id = None
    for i in range(5):
        _, chat_room_id = await send(db, alice, match, f"m{i}")

    page, has_more = await chat_service.get_chat_messages(db, bob.id, chat_room_id, limit=2, offset=0)
    assert [m["content"] for m in page] == ["m3", "m4"]
    assert has_more is True

    page, has_more = await chat_service.get_chat_messages(db, bob.id, chat_room_id, limit=2, offset=2)
    assert [m["content"] for m in page] == ["m1", "m2"]
    assert has_more is True

    page, has_more = await chat_service.get_chat_messages(db, bob.id, chat_room_id, limit=2, offset=4)
    assert [m["content"] for m in page] == ["m0"]
    assert has_more is False


async def test_exact_page_boundary_has_no_more(db, alice, bob):
    match = await make_match(db, alice, bob)
    for i in range(2):
        _, chat_room_id = await send(db, alice, match, f"m{i}")

    _, has_more = await chat_service.get_chat_messages(db, alice.id, chat_room_id, limit=2)
    assert has_more is False


async def test_reading_marks_only_partner_messages_in_page(db, alice, bob, realtime):
    match = await make_match(db, alice, bob)
    _, chat_room_id = await send(db, alice, match, "from alice 1")
    await send(db, alice, match, "from alice 2")
    await send(db, bob, match, "from bob")
    realtime.events.clear()

    # Bob reads only the newest two
    page, _ = await chat_service.get_chat_messages(db, bob.id, chat_room_id, limit=2)

    assert [m["is_own_message"] for m in page] == [False, True]
    rows = (await db.execute(select(Message).order_by(Message.sent_at))).scalars().all()
    assert [row.read_at is not None for row in rows] == [False, True, False]
    assert [e["type"] for e in realtime.events] == ["UPDATE"]
    assert realtime.events[0]["message"]["content"] == "from alice 2"


async def test_deleted_messages_are_hidden(db, alice, bob, realtime):
    match = await make_match(db, alice, bob)
    message, chat_room_id = await send(db, alice, match, "oops")
    await send(db, alice, match, "hello")

    deleted = await chat_service.delete_message(db, alice.id, message["id"])
    assert deleted.is_deleted is True
    assert realtime.events[-1]["type"] == "UPDATE"
    assert realtime.events[-1]["message"]["is_deleted"] is True

    page, _ = await chat_service.get_chat_messages(db, bob.id, chat_room_id)
    assert [m["content"] for m in page] == ["hello"]


async def test_only_sender_can_delete(db, alice, bob):
    match = await make_match(db, alice, bob)
    message, _ = await send(db, alice, match, "mine")

    with pytest.raises(PermissionDeniedError):
        await chat_service.delete_message(db, bob.id, message["id"])


async def test_outsider_cannot_read_room(db, alice, bob, carol):
    match = await make_match(db, alice, bob)
    _, chat_room_id = await send(db, alice, match, "private")

    with pytest.raises(PermissionDeniedError):
        await chat_service.get_chat_messages(db, carol.id, chat_room_id)


async def test_unknown_room(db, alice):
    with pytest.raises(NotFoundError):
        await chat_service.get_chat_messages(db, alice.id, uuid.uuid4())


async def test_mark_messages_read(db, alice, bob):
    match = await make_match(db, alice, bob)
    _, chat_room_id = await send(db, alice, match, "one")
    await send(db, alice, match, "two")

    assert await chat_service.mark_messages_read(db, bob.id, chat_room_id) == 2
    assert await chat_service.mark_messages_read(db, bob.id, chat_room_id) == 0


async def test_chat_list(db, alice, bob, carol):
    with_messages = await make_match(db, alice, bob)
    without_messages = await make_match(db, alice, carol)
    await send(db, bob, with_messages, "first")
    await send(db, bob, with_messages, "latest")

    chats = await chat_service.get_chat_list(db, alice.id)

    by_match = {chat["match_id"]: chat for chat in chats}
    assert by_match[with_messages.id]["last_message"] == "latest"
    assert by_match[with_messages.id]["unread_count"] == 2
    assert by_match[with_messages.id]["partner"]["display_name"] == "Bob"
    assert by_match[without_messages.id]["chat_room_id"] == ""
    assert by_match[without_messages.id]["last_message"] is None
    assert by_match[without_messages.id]["unread_count"] == 0
    # Newest match first
    assert [chat["match_id"] for chat in chats] == [without_messages.id, with_messages.id]


async def test_chat_list_skips_partner_without_profile(db, alice, bob):
    await make_match(db, alice, bob)
    await db.delete(bob)
    await db.commit()

    assert await chat_service.get_chat_list(db, alice.id) == []


async def test_deleting_latest_message_updates_chat_list_preview(db, alice, bob):
    match = await make_match(db, alice, bob)
    await send(db, alice, match, "hello")
    secret, chat_room_id = await send(db, alice, match, "secret text")

    await chat_service.delete_message(db, alice.id, secret["id"])

    chats = await chat_service.get_chat_list(db, bob.id)
    assert chats[0]["last_message"] == "hello"
    assert chats[0]["unread_count"] == 1

    room = (await db.execute(select(ChatRoom).where(ChatRoom.id == chat_room_id))).scalar_one()
    remaining, _ = await chat_service.get_chat_messages(db, alice.id, chat_room_id)
    assert room.last_message_id == remaining[-1]["id"]


async def test_deleting_only_message_clears_preview(db, alice, bob):
    match = await make_match(db, alice, bob)
    message, _ = await send(db, alice, match, "only one")

    await chat_service.delete_message(db, alice.id, message["id"])

    chats = await chat_service.get_chat_list(db, bob.id)
    assert chats[0]["last_message"] is None
    assert chats[0]["last_message_at"] is None


async def test_send_message_without_sender_profile_stores_nothing(db, alice, bob):
    match = await make_match(db, alice, bob)
    await db.delete(alice)
    await db.commit()

    with pytest.raises(NotFoundError):
        await chat_service.send_message(db, alice.id, match.id, "Hello")

    assert (await db.execute(select(Message))).scalars().all() == []
    assert (await db.execute(select(ChatRoom))).scalars().all() == []


async def test_paging_is_stable_for_messages_sent_in_the_same_instant(db, alice, bob):
    match = await make_match(db, alice, bob)
    for i in range(3):
        _, chat_room_id = await send(db, alice, match, f"m{i}")

    same_instant = utcnow()
    for row in (await db.execute(select(Message))).scalars().all():
        row.sent_at = same_instant
    await db.commit()

    seen = []
    for offset in range(3):
        page, _ = await chat_service.get_chat_messages(db, bob.id, chat_room_id, limit=1, offset=offset)
        seen.extend(m["id"] for m in page)

    assert len(seen) == 3
    assert len(set(seen)) == 3
