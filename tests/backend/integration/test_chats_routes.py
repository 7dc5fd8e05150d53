import asyncio
import uuid

import pytest

from app.core.events import Room
from fakes import open_session


pytestmark = pytest.mark.asyncio


async def _group(client, headers, name, *participants):
    return await client.post(
        "/api/v1/chats/group",
        json={"name": name, "participants": [str(p.id) for p in participants]},
        headers=headers,
    )


async def _settle():
    # Frames are written before the route returns; this only lets socket tasks run
    await asyncio.sleep(0.05)


async def test_one_to_one_chat_is_created_once(client, member, realtime):
    alice, alice_h, _ = await member()
    bob, _, bob_token = await member()
    bob_ws = await open_session(realtime, token=bob_token)

    first = await client.post(f"/api/v1/chats/c/{bob.id}", headers=alice_h)
    assert first.status_code == 201
    chat = first.json()["data"]
    assert chat["isGroupChat"] is False
    assert {p["id"] for p in chat["participants"]} == {str(alice.id), str(bob.id)}
    assert all("password_hash" not in p for p in chat["participants"])

    frame = await bob_ws.socket.expect("newChat")
    assert frame["data"]["id"] == chat["id"]

    again = await client.post(f"/api/v1/chats/c/{bob.id}", headers=alice_h)
    assert again.status_code == 200
    assert again.json()["data"]["id"] == chat["id"]
    await _settle()
    assert bob_ws.socket.events().count("newChat") == 1

    await bob_ws.close()


async def test_one_to_one_errors(client, member):
    alice, alice_h, _ = await member()

    self_chat = await client.post(f"/api/v1/chats/c/{alice.id}", headers=alice_h)
    assert self_chat.status_code == 400
    assert self_chat.json()["detail"]["code"] == "CHAT_WITH_SELF"

    missing = await client.post(f"/api/v1/chats/c/{uuid.uuid4()}", headers=alice_h)
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "USER_NOT_FOUND"

    malformed = await client.post("/api/v1/chats/c/not-an-id", headers=alice_h)
    assert malformed.status_code == 404


async def test_chat_routes_require_auth(client):
    resp = await client.get("/api/v1/chats")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "AUTH_REQUIRED"


async def test_list_chats_and_users(client, member):
    alice, alice_h, _ = await member()
    bob, bob_h, _ = await member()
    carol, _, _ = await member()

    await client.post(f"/api/v1/chats/c/{bob.id}", headers=alice_h)

    alice_chats = (await client.get("/api/v1/chats", headers=alice_h)).json()["data"]
    bob_chats = (await client.get("/api/v1/chats", headers=bob_h)).json()["data"]
    assert len(alice_chats) == 1
    assert [c["id"] for c in bob_chats] == [alice_chats[0]["id"]]

    users = (await client.get("/api/v1/chats/users", headers=alice_h)).json()["data"]
    ids = {u["id"] for u in users}
    assert str(alice.id) not in ids
    assert {str(bob.id), str(carol.id)} <= ids


async def test_group_creation_notifies_other_members(client, member, realtime):
    admin, admin_h, admin_token = await member()
    bob, _, bob_token = await member()
    carol, _, carol_token = await member()
    admin_ws = await open_session(realtime, token=admin_token)
    bob_ws = await open_session(realtime, token=bob_token)
    carol_ws = await open_session(realtime, token=carol_token)

    resp = await _group(client, admin_h, "  Team  ", bob, carol)
    assert resp.status_code == 201
    chat = resp.json()["data"]
    assert chat["name"] == "Team"
    assert chat["isGroupChat"] is True
    assert chat["admin"] == str(admin.id)
    assert len(chat["participants"]) == 3

    assert (await bob_ws.socket.expect("newChat"))["data"]["id"] == chat["id"]
    assert (await carol_ws.socket.expect("newChat"))["data"]["id"] == chat["id"]
    await _settle()
    assert "newChat" not in admin_ws.socket.events()

    for s in (admin_ws, bob_ws, carol_ws):
        await s.close()


async def test_group_validation(client, member):
    admin, admin_h, _ = await member()
    bob, _, _ = await member()

    too_small = await _group(client, admin_h, "Duo", bob)
    assert too_small.status_code == 400
    assert too_small.json()["detail"]["code"] == "GROUP_TOO_SMALL"

    # duplicates do not count twice
    dup = await client.post(
        "/api/v1/chats/group",
        json={"name": "Dup", "participants": [str(bob.id), str(bob.id)]},
        headers=admin_h,
    )
    assert dup.json()["detail"]["code"] == "GROUP_TOO_SMALL"

    self_listed = await _group(client, admin_h, "Me", admin, bob)
    assert self_listed.status_code == 400
    assert self_listed.json()["detail"]["code"] == "GROUP_SELF_LISTED"

    ghost = await client.post(
        "/api/v1/chats/group",
        json={"name": "Ghost", "participants": [str(bob.id), str(uuid.uuid4())]},
        headers=admin_h,
    )
    assert ghost.status_code == 404
    assert ghost.json()["detail"]["code"] == "USER_NOT_FOUND"


async def test_group_ids_compared_in_canonical_form(client, member):
    admin, admin_h, _ = await member()
    bob, _, _ = await member()
    carol, _, _ = await member()

    same_user_twice = await client.post(
        "/api/v1/chats/group",
        json={"name": "Dup", "participants": [str(bob.id), str(bob.id).upper()]},
        headers=admin_h,
    )
    assert same_user_twice.status_code == 400
    assert same_user_twice.json()["detail"]["code"] == "GROUP_TOO_SMALL"

    self_upper = await client.post(
        "/api/v1/chats/group",
        json={"name": "Me", "participants": [str(admin.id).upper(), str(bob.id)]},
        headers=admin_h,
    )
    assert self_upper.status_code == 400
    assert self_upper.json()["detail"]["code"] == "GROUP_SELF_LISTED"

    mixed_case = await client.post(
        "/api/v1/chats/group",
        json={"name": "Ok", "participants": [str(bob.id).upper(), str(carol.id)]},
        headers=admin_h,
    )
    assert mixed_case.status_code == 201
    assert len(mixed_case.json()["data"]["participants"]) == 3


async def test_group_details_only_for_participants(client, member):
    admin, admin_h, _ = await member()
    bob, bob_h, _ = await member()
    carol, _, _ = await member()
    _, outsider_h, _ = await member()
    chat = (await _group(client, admin_h, "G", bob, carol)).json()["data"]

    ok = await client.get(f"/api/v1/chats/group/{chat['id']}", headers=bob_h)
    assert ok.status_code == 200
    assert ok.json()["data"]["name"] == "G"

    denied = await client.get(f"/api/v1/chats/group/{chat['id']}", headers=outsider_h)
    assert denied.status_code == 403
    assert denied.json()["detail"]["code"] == "CHAT_FORBIDDEN"

    one_to_one = (await client.post(f"/api/v1/chats/c/{bob.id}", headers=admin_h)).json()["data"]
    not_group = await client.get(f"/api/v1/chats/group/{one_to_one['id']}", headers=admin_h)
    assert not_group.status_code == 404


async def test_rename_reaches_every_participant(client, member, realtime):
    admin, admin_h, admin_token = await member()
    bob, bob_h, bob_token = await member()
    carol, _, _ = await member()
    chat = (await _group(client, admin_h, "Old", bob, carol)).json()["data"]
    admin_ws = await open_session(realtime, token=admin_token)
    bob_ws = await open_session(realtime, token=bob_token)

    resp = await client.patch(f"/api/v1/chats/group/{chat['id']}", json={"name": "New"}, headers=admin_h)
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "New"

    assert (await admin_ws.socket.expect("updateGroupName"))["data"]["name"] == "New"
    assert (await bob_ws.socket.expect("updateGroupName"))["data"]["name"] == "New"

    not_admin = await client.patch(f"/api/v1/chats/group/{chat['id']}", json={"name": "X"}, headers=bob_h)
    assert not_admin.status_code == 403
    assert not_admin.json()["detail"]["code"] == "CHAT_ADMIN_ONLY"

    await admin_ws.close()
    await bob_ws.close()


async def test_add_and_remove_participant(client, member, realtime):
    admin, admin_h, _ = await member()
    bob, _, _ = await member()
    carol, _, _ = await member()
    dave, _, dave_token = await member()
    chat = (await _group(client, admin_h, "G", bob, carol)).json()["data"]
    dave_ws = await open_session(realtime, token=dave_token)

    added = await client.post(f"/api/v1/chats/group/{chat['id']}/{dave.id}", headers=admin_h)
    assert added.status_code == 200
    assert str(dave.id) in {p["id"] for p in added.json()["data"]["participants"]}
    assert (await dave_ws.socket.expect("newChat"))["data"]["id"] == chat["id"]

    twice = await client.post(f"/api/v1/chats/group/{chat['id']}/{dave.id}", headers=admin_h)
    assert twice.status_code == 400
    assert twice.json()["detail"]["code"] == "ALREADY_PARTICIPANT"

    await dave_ws.join(chat["id"])
    removed = await client.delete(f"/api/v1/chats/group/{chat['id']}/{dave.id}", headers=admin_h)
    assert removed.status_code == 200
    assert (await dave_ws.socket.expect("leaveChat"))["data"]["id"] == chat["id"]
    assert await realtime.registry.members_of(Room.chat(chat["id"])) == ()

    again = await client.delete(f"/api/v1/chats/group/{chat['id']}/{dave.id}", headers=admin_h)
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "NOT_A_PARTICIPANT"

    await dave_ws.close()


async def test_leave_group(client, member, realtime):
    admin, admin_h, admin_token = await member()
    bob, bob_h, bob_token = await member()
    carol, _, _ = await member()
    chat = (await _group(client, admin_h, "G", bob, carol)).json()["data"]
    admin_ws = await open_session(realtime, token=admin_token)
    bob_ws = await open_session(realtime, token=bob_token)
    await admin_ws.join(chat["id"])
    await bob_ws.join(chat["id"])

    resp = await client.delete(f"/api/v1/chats/leave/group/{chat['id']}", headers=bob_h)
    assert resp.status_code == 200
    remaining = {p["id"] for p in resp.json()["data"]["participants"]}
    assert remaining == {str(admin.id), str(carol.id)}

    assert (await admin_ws.socket.expect("leaveChat"))["data"]["id"] == chat["id"]
    assert (await bob_ws.socket.expect("leaveChat"))["data"]["id"] == chat["id"]

    members = await realtime.registry.members_of(Room.chat(chat["id"]))
    still_in = await realtime.registry.connection(members[0])
    assert len(members) == 1
    assert still_in.user_id == str(admin.id)

    not_member = await client.delete(f"/api/v1/chats/leave/group/{chat['id']}", headers=bob_h)
    assert not_member.status_code == 400
    assert not_member.json()["detail"]["code"] == "NOT_A_PARTICIPANT"

    await admin_ws.close()
    await bob_ws.close()


async def test_delete_group_closes_room(client, member, realtime):
    admin, admin_h, admin_token = await member()
    bob, bob_h, bob_token = await member()
    carol, _, _ = await member()
    chat = (await _group(client, admin_h, "G", bob, carol)).json()["data"]
    admin_ws = await open_session(realtime, token=admin_token)
    bob_ws = await open_session(realtime, token=bob_token)
    await bob_ws.join(chat["id"])

    not_admin = await client.delete(f"/api/v1/chats/group/{chat['id']}", headers=bob_h)
    assert not_admin.status_code == 403

    resp = await client.delete(f"/api/v1/chats/group/{chat['id']}", headers=admin_h)
    assert resp.status_code == 200
    assert (await bob_ws.socket.expect("leaveChat"))["data"]["id"] == chat["id"]
    await _settle()
    assert "leaveChat" not in admin_ws.socket.events()
    assert Room.chat(chat["id"]) not in realtime.registry

    gone = await client.get(f"/api/v1/chats/group/{chat['id']}", headers=admin_h)
    assert gone.status_code == 404

    await admin_ws.close()
    await bob_ws.close()


async def test_delete_one_to_one_chat(client, member, realtime):
    alice, alice_h, _ = await member()
    bob, _, bob_token = await member()
    _, outsider_h, _ = await member()
    chat = (await client.post(f"/api/v1/chats/c/{bob.id}", headers=alice_h)).json()["data"]
    bob_ws = await open_session(realtime, token=bob_token)

    outsider = await client.delete(f"/api/v1/chats/remove/{chat['id']}", headers=outsider_h)
    assert outsider.status_code == 404

    resp = await client.delete(f"/api/v1/chats/remove/{chat['id']}", headers=alice_h)
    assert resp.status_code == 200
    assert (await bob_ws.socket.expect("leaveChat"))["data"]["id"] == chat["id"]
    assert (await client.get("/api/v1/chats", headers=alice_h)).json()["data"] == []

    await bob_ws.close()
