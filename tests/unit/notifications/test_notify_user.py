from unittest import mock

import pytest

from modules.notifications.models import Notification, NotificationKind
from modules.notifications.services import notify_user
from modules.notifications.tasks import deliver_push, dispatch_notification

pytestmark = pytest.mark.unit

ORDER_UPDATE = NotificationKind.ORDER_UPDATE


class TestNotifyUser:
    def test_stores_notification(self, buyer):
        notification = notify_user(
            buyer.id,
            "Order Shipped",
            "Your order is on its way.",
            ORDER_UPDATE,
            {"order_id": "abc"},
            status="Shipped",
        )

        assert notification.user == buyer
        assert notification.reference_id == "abc"
        assert notification.dedupe_key == "abc:Shipped"
        assert notification.is_read is False

    def test_replay_returns_the_stored_notification(self, buyer):
        payload = {"order_id": "1"}
        first = notify_user(buyer.id, "A", "a", ORDER_UPDATE, payload, "Shipped")
        second = notify_user(buyer.id, "B", "b", ORDER_UPDATE, payload, "Shipped")

        assert second.pk == first.pk
        assert Notification.objects.count() == 1

    def test_explicit_dedupe_key_wins(self, buyer):
        notify_user(buyer.id, "A", "a", ORDER_UPDATE, {"dedupe_key": "k1"}, "Shipped")
        notify_user(buyer.id, "A", "a", ORDER_UPDATE, {"dedupe_key": "k2"}, "Shipped")

        assert Notification.objects.count() == 2

    def test_without_key_nothing_is_deduplicated(self, buyer):
        for _ in range(2):
            notify_user(buyer.id, "Sale", "20% off", NotificationKind.PROMOTION)

        assert Notification.objects.count() == 2

    def test_same_key_for_another_user(self, buyer, make_user):
        payload = {"dedupe_key": "same"}

        notify_user(buyer.id, "A", "a", ORDER_UPDATE, payload)
        notify_user(make_user().id, "A", "a", ORDER_UPDATE, payload)

        assert Notification.objects.count() == 2

    def test_push_is_queued_once(self, buyer):
        with mock.patch.object(deliver_push, "delay") as delay:
            notify_user(buyer.id, "A", "a", ORDER_UPDATE, {"dedupe_key": "k"})
            notify_user(buyer.id, "A", "a", ORDER_UPDATE, {"dedupe_key": "k"})

        delay.assert_called_once()

    def test_broken_queue_keeps_the_notification(self, buyer):
        with mock.patch.object(deliver_push, "delay", side_effect=OSError("no broker")):
            notification = notify_user(buyer.id, "A", "a", ORDER_UPDATE)

        assert Notification.objects.filter(pk=notification.pk).exists()

    def test_store_failure_returns_none(self):
        assert notify_user("not-a-user", "A", "a", ORDER_UPDATE) is None


class TestTasks:
    def test_dispatch_returns_notification_id(self, buyer):
        result = dispatch_notification.apply(
            args=(str(buyer.id), "Order Processing", "body", ORDER_UPDATE)
        ).get()

        assert result == str(Notification.objects.get().id)

    def test_push_needs_a_device_token(self, buyer):
        notification = Notification.objects.create(
            user=buyer, title="A", body="a", kind=ORDER_UPDATE
        )

        assert deliver_push(str(notification.id)) is False

        buyer.fcm_token = "device-token"
        buyer.save()
        assert deliver_push(str(notification.id)) is True

    def test_push_for_missing_notification(self):
        assert deliver_push("0190a1b2-0000-7000-8000-000000000000") is False
