from __future__ import annotations

import pytest

from tutorlink_sync.application.exceptions import NotFoundError
from tutorlink_sync.domain.value_objects.enums import NotificationType
from tutorlink_sync.services import notification_service
from tutorlink_sync.services.notification_service import NotificationDispatcher
from tests.conftest import FakeClock, FakePusher, FakeUoW, make_notification, uow_factory_for


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def pusher() -> FakePusher:
    return FakePusher()


@pytest.fixture
def dispatcher(uow, pusher) -> NotificationDispatcher:
    return NotificationDispatcher(uow_factory_for(uow), pusher, clock=FakeClock())


@pytest.mark.asyncio
async def test_create_stores_then_pushes(dispatcher, uow, pusher):
    notification_id = await dispatcher.create("u2", NotificationType.NEW_BOOKING, {"message": "Booked"})

    stored = uow.notifications.rows[0]
    assert stored.id == notification_id
    assert stored.user_id == "u2"
    assert uow.commits == 1

    user_id, event, data = pusher.pushes[0]
    assert (user_id, event) == ("u2", "newNotification")
    assert data["notification"]["id"] == notification_id
    assert data["notification"]["userId"] == "u2"
    assert data["notification"]["type"] == "new_booking"
    assert data["notification"]["isRead"] is False


@pytest.mark.asyncio
async def test_push_failure_does_not_fail_create(dispatcher, uow, pusher):
    pusher.fail_for.add("u2")

    notification_id = await dispatcher.create("u2", NotificationType.MESSAGE)

    assert [n.id for n in uow.notifications.rows] == [notification_id]


@pytest.mark.asyncio
async def test_storage_failure_is_raised_and_nothing_pushed(dispatcher, uow, pusher):
    uow.notifications.fail_for.add("u2")

    with pytest.raises(RuntimeError):
        await dispatcher.create("u2", NotificationType.MESSAGE)
    assert pusher.pushes == []


@pytest.mark.asyncio
async def test_fan_out_isolates_failing_recipients(dispatcher, uow, pusher):
    uow.notifications.fail_for.add("u3")
    pusher.fail_for.add("u4")

    ids = await dispatcher.create_for_users(["u2", "u3", "u4", "u2"], NotificationType.TASK_ASSIGNED)

    assert len(ids) == 2
    assert sorted(n.user_id for n in uow.notifications.rows) == ["u2", "u4"]
    assert [p[0] for p in pusher.pushes] == ["u2"]


@pytest.mark.asyncio
async def test_mark_read_unknown_id_raises(uow, principal):
    with pytest.raises(NotFoundError):
        await notification_service.mark_read("missing", principal, uow)
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_mark_read_is_scoped_to_owner(uow, principal):
    uow.notifications.rows.append(make_notification(notification_id="n1", user_id="someone-else"))

    with pytest.raises(NotFoundError):
        await notification_service.mark_read("n1", principal, uow)


@pytest.mark.asyncio
async def test_list_and_mark_all_read(uow, principal):
    uow.notifications.rows.extend([
        make_notification(notification_id="n1", user_id=principal.user_id),
        make_notification(notification_id="n2", user_id=principal.user_id),
        make_notification(notification_id="x", user_id="other"),
    ])

    listed = await notification_service.list_notifications(principal, 50, uow)
    count = await notification_service.mark_all_read(principal, uow)

    assert [n.id for n in listed] == ["n2", "n1"]
    assert count == 2
    assert uow._committed is True
