"""Tests for the notification inbox and the push hub."""

from uuid import uuid4

import pytest

from notifications import NotificationNotFoundError, NotificationType, SwapRequestRef


@pytest.mark.asyncio
async def test_hub_join_confirms_connection(hub, fake_socket):
    user_id = uuid4()
    socket = fake_socket()

    await hub.join(user_id, socket)

    assert hub.active_connections[str(user_id)] == {socket}
    assert socket.sent[0]['type'] == 'connection_status'
    assert socket.sent[0]['data'] == {'status': 'connected', 'user_id': str(user_id)}


@pytest.mark.asyncio
async def test_hub_emits_to_every_connection(hub, fake_socket):
    user_id = uuid4()
    tabs = [fake_socket(), fake_socket()]
    for socket in tabs:
        await hub.join(user_id, socket)

    delivered = await hub.emit(user_id, 'new-swap-request', {'hello': 'world'})

    assert delivered == 2
    for socket in tabs:
        frame = socket.sent[-1]
        assert frame['type'] == 'new-swap-request'
        assert frame['data'] == {'hello': 'world'}
        assert 'timestamp' in frame


@pytest.mark.asyncio
async def test_hub_drops_failed_connections(hub, fake_socket):
    user_id = uuid4()
    healthy = fake_socket()
    broken = fake_socket()
    await hub.join(user_id, healthy)
    await hub.join(user_id, broken)
    broken.fail = True

    assert await hub.emit(user_id, 'notification') == 1
    assert hub.connection_count() == 1


@pytest.mark.asyncio
async def test_hub_offline_user(hub):
    assert await hub.emit(uuid4(), 'notification', {}) == 0


@pytest.mark.asyncio
async def test_hub_leave(hub, fake_socket):
    user_id = uuid4()
    socket = fake_socket()
    await hub.join(user_id, socket)

    hub.leave(user_id, socket)
    hub.leave(user_id, socket)

    assert str(user_id) not in hub.active_connections
    assert hub.connection_count() == 0


@pytest.mark.asyncio
async def test_notify_uses_template_and_pushes(notification_manager, hub, fake_socket, alice):
    socket = fake_socket()
    await hub.join(alice['id'], socket)
    swap_id = uuid4()

    notification = await notification_manager.notify(
        alice['id'],
        NotificationType.SWAP_ACCEPTED,
        related=SwapRequestRef(id=swap_id)
    )

    assert notification['title'] == "Swap Request Accepted"
    assert notification['related'] == {'kind': 'swap_request', 'id': swap_id}
    pushed = socket.sent[-1]
    assert pushed['type'] == 'notification'
    assert pushed['data']['id'] == str(notification['id'])
    assert pushed['data']['related'] == {'kind': 'swap_request', 'id': str(swap_id)}


@pytest.mark.asyncio
async def test_notification_is_stored_even_if_push_fails(notification_manager, store, hub, fake_socket, alice):
    await hub.join(alice['id'], fake_socket(fail=True))

    await notification_manager.notify(alice['id'], NotificationType.SWAP_REQUEST)

    assert len(store.notifications) == 1


@pytest.mark.asyncio
async def test_inbox_flags(notification_manager, alice, bob):
    first = await notification_manager.notify(alice['id'], NotificationType.SWAP_REQUEST)
    await notification_manager.notify(alice['id'], NotificationType.SWAP_COMPLETED)
    await notification_manager.notify(bob['id'], NotificationType.SWAP_REQUEST)

    assert await notification_manager.unread_count(alice['id']) == 2

    await notification_manager.mark_read(alice['id'], first['id'])
    assert await notification_manager.unread_count(alice['id']) == 1
    unread = await notification_manager.list(alice['id'], unread_only=True)
    assert [n['type'] for n in unread.items] == ['swap_completed']

    await notification_manager.mark_unread(alice['id'], first['id'])
    assert await notification_manager.mark_all_read(alice['id']) == 2
    assert await notification_manager.unread_count(alice['id']) == 0
    assert await notification_manager.unread_count(bob['id']) == 1


@pytest.mark.asyncio
async def test_inbox_is_private(notification_manager, alice, bob):
    notification = await notification_manager.notify(alice['id'], NotificationType.SWAP_REQUEST)

    with pytest.raises(NotificationNotFoundError):
        await notification_manager.mark_read(bob['id'], notification['id'])
    with pytest.raises(NotificationNotFoundError):
        await notification_manager.delete(bob['id'], notification['id'])

    await notification_manager.delete(alice['id'], notification['id'])
    assert (await notification_manager.list(alice['id'])).total == 0


@pytest.mark.asyncio
async def test_list_is_newest_first(notification_manager, alice):
    await notification_manager.notify(alice['id'], NotificationType.SWAP_REQUEST)
    await notification_manager.notify(alice['id'], NotificationType.SWAP_ACCEPTED)

    page = await notification_manager.list(alice['id'], limit=1)

    assert page.total == 2
    assert [n['type'] for n in page.items] == ['swap_accepted']
    assert page.meta()['has_next_page'] is True
