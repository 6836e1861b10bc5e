from datetime import datetime, timezone as dt_timezone

import pytest
from django.utils import timezone
from freezegun import freeze_time

from modules.orders.authorization import AuthorizationResolver
from modules.orders.constants import OrderStatus
from modules.orders.engine import StatusTransitionEngine, backfill_item_statuses
from modules.orders.events import OrderStatusChanged
from modules.orders.exceptions import (
    Forbidden,
    InvalidStatus,
    InvalidTransition,
    NoEligibleItems,
    OrderFrozen,
)

pytestmark = pytest.mark.unit

PLACED = OrderStatus.PLACED
PROCESSING = OrderStatus.PROCESSING
SHIPPED = OrderStatus.SHIPPED
OUT = OrderStatus.OUT_FOR_DELIVERY
DELIVERED = OrderStatus.DELIVERED
CANCELLED = OrderStatus.CANCELLED


@pytest.fixture()
def engine(market):
    return StatusTransitionEngine(AuthorizationResolver(market.products))


def statuses(items):
    return [item.status for item in items]


class TestSellerScope:
    def test_seller_moves_only_their_own_item(self, market, engine):
        order, items = market.order(PLACED, PLACED)

        result = engine.apply(order, items, market.seller_a, "Shipped")

        assert statuses(items) == [SHIPPED, PLACED]
        assert result.updated_items == (items[0],)
        assert result.whole_order is False

    def test_roll_up_advances_optimistically(self, market, engine):
        order, items = market.order(PLACED, PLACED)

        engine.apply(order, items, market.seller_a, "Shipped")

        assert order.status == SHIPPED

    def test_roll_up_never_moves_back_for_a_slower_seller(self, market, engine):
        order, items = market.order(SHIPPED, PLACED, order_status=SHIPPED)

        engine.apply(order, items, market.seller_b, "Processing")

        assert statuses(items) == [SHIPPED, PROCESSING]
        assert order.status == SHIPPED

    @pytest.mark.parametrize("order_status", [PLACED, SHIPPED, DELIVERED, CANCELLED])
    def test_seller_can_never_request_placed(self, market, engine, order_status):
        order, items = market.order(PLACED, PLACED, order_status=order_status)

        with pytest.raises(InvalidStatus):
            engine.apply(order, items, market.seller_a, "Placed")

    def test_backward_move_is_rejected_without_side_effects(self, market, engine):
        order, items = market.order(SHIPPED, PLACED, order_status=SHIPPED)

        with pytest.raises(InvalidTransition) as exc_info:
            engine.apply(order, items, market.seller_a, "Processing")

        assert "from Shipped to Processing" in str(exc_info.value)
        assert statuses(items) == [SHIPPED, PLACED]
        assert order.status == SHIPPED
        assert order.domain_events == []

    def test_seller_cannot_touch_other_sellers_item(self, market, engine):
        order, items = market.order(PLACED, PLACED)

        with pytest.raises(Forbidden):
            engine.apply(
                order, items, market.seller_a, "Shipped", item_id=str(items[1].id)
            )
        assert statuses(items) == [PLACED, PLACED]

    def test_buyer_cannot_update_status(self, market, engine):
        order, items = market.order(PLACED)

        with pytest.raises(Forbidden):
            engine.apply(order, items, market.buyer, "Processing")

    def test_seller_may_cancel_own_non_terminal_items(self, market, engine):
        order, items = market.order(PROCESSING, PLACED, order_status=PROCESSING)

        engine.apply(order, items, market.seller_a, "Cancelled")

        assert statuses(items) == [CANCELLED, PLACED]
        assert order.status == PROCESSING

    def test_seller_cannot_cancel_delivered_item(self, market, engine):
        order, items = market.order(DELIVERED, PLACED, order_status=DELIVERED)

        with pytest.raises(InvalidTransition):
            engine.apply(order, items, market.seller_a, "Cancelled")


class TestStatusValidation:
    @pytest.mark.parametrize("raw", ["shipped", "Lost", ""])
    def test_unknown_status_is_invalid(self, market, engine, raw):
        order, items = market.order(PLACED)

        with pytest.raises(InvalidStatus):
            engine.apply(order, items, market.admin, raw)

    def test_whitespace_around_status_is_ignored(self, market, engine):
        order, items = market.order(PLACED)

        engine.apply(order, items, market.admin, " Processing ")

        assert items[0].status == PROCESSING

    def test_cancelled_order_is_frozen(self, market, engine):
        order, items = market.order(CANCELLED, CANCELLED, order_status=CANCELLED)

        with pytest.raises(OrderFrozen):
            engine.apply(order, items, market.admin, "Processing")

    def test_unknown_status_is_reported_before_the_frozen_order(self, market, engine):
        order, items = market.order(CANCELLED, order_status=CANCELLED)

        with pytest.raises(InvalidStatus):
            engine.apply(order, items, market.admin, "Lost")


class TestEligibility:
    def test_cancelled_items_are_skipped(self, market, engine):
        order, items = market.order(CANCELLED, PLACED)

        result = engine.apply(order, items, market.admin, "Processing")

        assert statuses(items) == [CANCELLED, PROCESSING]
        assert result.updated_count == 1

    def test_only_cancelled_targets_raise_no_eligible_items(self, market, engine):
        order, items = market.order(CANCELLED, PLACED)

        with pytest.raises(NoEligibleItems):
            engine.apply(order, items, market.seller_a, "Shipped")

    def test_reapplying_current_status_is_a_no_op(self, market, engine):
        order, items = market.order(SHIPPED, SHIPPED, order_status=SHIPPED)

        result = engine.apply(order, items, market.seller_a, "Shipped")

        assert result.updated_count == 1
        assert statuses(items) == [SHIPPED, SHIPPED]
        assert order.status == SHIPPED


class TestAdmin:
    def test_admin_updates_every_item(self, market, engine):
        order, items = market.order(PLACED, PLACED)

        result = engine.apply(order, items, market.admin, "Out for Delivery")

        assert statuses(items) == [OUT, OUT]
        assert order.status == OUT
        assert result.whole_order is True

    def test_admin_whole_order_correction_lowers_roll_up(self, market, engine):
        order, items = market.order(DELIVERED, DELIVERED, order_status=DELIVERED)
        order.is_delivered = True
        order.delivered_at = timezone.now()

        engine.apply(order, items, market.admin, "Shipped")

        assert statuses(items) == [SHIPPED, SHIPPED]
        assert order.status == SHIPPED
        assert order.is_delivered is False
        assert order.delivered_at is None

    def test_correction_with_a_cancelled_line_lowers_roll_up(self, market, engine):
        order, items = market.order(DELIVERED, CANCELLED, order_status=DELIVERED)
        order.is_delivered = True
        order.delivered_at = timezone.now()

        result = engine.apply(order, items, market.admin, "Shipped")

        assert statuses(items) == [SHIPPED, CANCELLED]
        assert result.whole_order is True
        assert order.status == SHIPPED
        assert order.is_delivered is False
        assert order.delivered_at is None

    def test_admin_single_item_correction_keeps_roll_up(self, market, engine):
        order, items = market.order(SHIPPED, SHIPPED, order_status=SHIPPED)

        engine.apply(order, items, market.admin, "Processing", item_id=str(items[0].id))

        assert statuses(items) == [PROCESSING, SHIPPED]
        assert order.status == SHIPPED

    def test_cancelling_every_item_cancels_the_order(self, market, engine):
        order, items = market.order(PROCESSING, PLACED, order_status=PROCESSING)

        engine.apply(order, items, market.admin, "Cancelled")

        assert statuses(items) == [CANCELLED, CANCELLED]
        assert order.status == CANCELLED


class TestDelivery:
    @freeze_time("2025-03-01 10:00:00")
    def test_last_delivery_delivers_the_order(self, market, engine):
        order, items = market.order(DELIVERED, OUT, order_status=DELIVERED)

        engine.apply(order, items, market.seller_b, "Delivered")

        assert order.status == DELIVERED
        assert order.is_delivered is True
        assert order.delivered_at == datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc)

    def test_deliveries_by_different_sellers_at_different_times(self, market, engine):
        order, items = market.order(PLACED, PLACED)

        with freeze_time("2025-03-01 09:00:00"):
            engine.apply(order, items, market.seller_a, "Delivered")
        assert order.status == DELIVERED
        assert order.is_delivered is False

        with freeze_time("2025-03-02 15:30:00"):
            engine.apply(order, items, market.seller_b, "Delivered")

        assert order.is_delivered is True
        assert order.delivered_at == datetime(2025, 3, 2, 15, 30, tzinfo=dt_timezone.utc)

    def test_cancelled_items_do_not_block_delivery(self, market, engine):
        order, items = market.order(CANCELLED, OUT, order_status=OUT)

        engine.apply(order, items, market.seller_b, "Delivered")

        assert order.status == DELIVERED
        assert order.is_delivered is True

    def test_delivered_at_is_kept_on_reapply(self, market, engine):
        order, items = market.order(OUT, OUT, order_status=OUT)
        with freeze_time("2025-03-01 09:00:00"):
            engine.apply(order, items, market.admin, "Delivered")
        first = order.delivered_at

        with freeze_time("2025-03-05 09:00:00"):
            engine.apply(order, items, market.admin, "Delivered")

        assert order.delivered_at == first


class TestLegacyItems:
    def test_backfill_adopts_order_status(self, market):
        order, items = market.order(None, SHIPPED, order_status=PROCESSING)

        repaired = backfill_item_statuses(order, items)

        assert repaired == 1
        assert statuses(items) == [PROCESSING, SHIPPED]

    def test_legacy_items_are_repaired_before_comparison(self, market, engine):
        order, items = market.order(None, None, order_status=SHIPPED)

        with pytest.raises(InvalidTransition):
            engine.apply(order, items, market.seller_a, "Processing")

    def test_legacy_items_can_move_forward(self, market, engine):
        order, items = market.order(None, None, order_status=PROCESSING)

        engine.apply(order, items, market.seller_a, "Shipped")

        assert statuses(items) == [SHIPPED, PROCESSING]


class TestEvent:
    def test_status_change_event_is_collected(self, market, engine):
        order, items = market.order(PLACED, PLACED)

        engine.apply(order, items, market.seller_a, "Processing")

        [event] = order.domain_events
        assert isinstance(event, OrderStatusChanged)
        assert event.old_status == PLACED
        assert event.new_status == PROCESSING
        assert event.requested_status == PROCESSING
        assert event.item_ids == (str(items[0].id),)
        assert event.product_ids == (str(market.product_a),)
        assert event.actor_role == "seller"
        assert event.buyer_id == market.buyer.id
        assert event.is_admin_override is False

    def test_event_lists_only_items_whose_status_moved(self, market, engine):
        order, items = market.order(SHIPPED, PLACED, order_status=SHIPPED)

        engine.apply(order, items, market.admin, "Shipped")

        [event] = order.domain_events
        assert event.item_ids == (str(items[0].id), str(items[1].id))
        assert event.changed_item_ids == (str(items[1].id),)
