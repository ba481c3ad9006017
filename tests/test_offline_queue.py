"""Tests for optimistic writes and remote synchronization."""

import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from orderline.constants import ItemStatus, OnlinePaymentStatus, PaymentMethod
from orderline.realtime.reconciler import EventReconciler
from orderline.schemas import dump_order
from orderline.services.appended_order_service import AppendedOrderMerger
from orderline.services.item_state_machine import TransitionPermissionError
from orderline.services.payment_service import PaymentReconciler
from orderline.sync.offline_queue import OfflineSyncQueue
from orderline.sync.remote import OrdersApiClient, RemoteRequestError, RemoteUnavailableError
from orderline.validation import ValidationError

from tests.conftest import BASE_TS

ITEMS = [{"id": "i1", "name": "Adobo", "price": 100}, {"id": "i2", "name": "Rice", "price": 20}]


@pytest.fixture
def notices(sync_queue):
    received = []
    sync_queue.on_notice(received.append)
    return received


@pytest.fixture
def placed(sync_queue, order_taker):
    """An order created while the remote store is reachable."""
    return sync_queue.create_order("Juan", ITEMS, order_taker)


class TestOptimisticWrites:
    def test_create_order_lands_locally_and_syncs(self, sync_queue, store, api_client, order_taker):
        order = sync_queue.create_order("Juan", ITEMS, order_taker)

        assert order.id in store
        assert store.is_synced(order.id)
        api_client.create_order.assert_called_once()
        assert sync_queue.status.online
        assert sync_queue.status.last_sync == BASE_TS + 60_000

    def test_remote_failure_keeps_local_change(self, sync_queue, store, api_client, notices, placed):
        api_client.toggle_payment.side_effect = RemoteUnavailableError("connection refused")

        sync_queue.mark_paid(placed.id, PaymentMethod.CASH)

        assert store.get(placed.id).is_paid
        assert not store.is_synced(placed.id)
        assert not sync_queue.online
        assert notices[-1].code == "SYNC_001"
        assert notices[-1].title == "Offline Mode"
        # one retry
        assert api_client.toggle_payment.call_count == 2

    def test_rejected_request_stays_online(self, sync_queue, store, api_client, notices, placed):
        api_client.append_items.side_effect = RemoteRequestError("Order not found", 404)

        sync_queue.append_items(placed.id, [{"id": "x1", "name": "Soda", "price": 35}])

        assert len(store.get(placed.id).appended_orders) == 1
        assert not store.is_synced(placed.id)
        assert sync_queue.online
        assert notices[-1].code == "SYNC_002"
        assert api_client.append_items.call_count == 1

    def test_validation_error_makes_no_call(self, sync_queue, store, api_client, placed):
        with pytest.raises(ValidationError):
            sync_queue.mark_split_paid(placed.id, 40, 70)

        api_client.toggle_payment.assert_not_called()
        assert not store.get(placed.id).is_paid

    def test_permission_error_makes_no_change(self, sync_queue, store, api_client, placed, crew_a, crew_b):
        sync_queue.update_item_status(placed.id, "i1", ItemStatus.PREPARING, crew_a)

        with pytest.raises(TransitionPermissionError):
            sync_queue.update_item_status(placed.id, "i1", ItemStatus.READY, crew_b)

        assert store.get(placed.id).items[0].status == ItemStatus.PREPARING
        assert api_client.update_item_status.call_count == 1

    def test_status_update_sends_attribution(self, sync_queue, api_client, placed, crew_a):
        sync_queue.update_item_status(placed.id, "i1", ItemStatus.PREPARING, crew_a)

        order_id, item_id, status, attribution, appended_id = api_client.update_item_status.call_args.args
        assert (order_id, item_id, status, appended_id) == (placed.id, "i1", ItemStatus.PREPARING, None)
        assert attribution["preparedByEmail"] == "ana@example.com"
        assert attribution["preparingAt"] == BASE_TS + 60_000

    def test_repeated_status_is_not_sent_again(self, sync_queue, api_client, placed, crew_a):
        sync_queue.update_item_status(placed.id, "i1", ItemStatus.PREPARING, crew_a)
        sync_queue.update_item_status(placed.id, "i1", ItemStatus.PREPARING, crew_a)
        assert api_client.update_item_status.call_count == 1

    def test_advance_stops_at_served(self, sync_queue, placed, admin):
        for _ in range(3):
            sync_queue.advance_item(placed.id, "i2", admin)
        with pytest.raises(ValidationError):
            sync_queue.advance_item(placed.id, "i2", admin)


class TestPayments:
    def test_mark_all_paid_issues_separate_calls(self, sync_queue, store, api_client, placed):
        first = sync_queue.append_items(placed.id, [{"id": "x1", "name": "Soda", "price": 35}])
        second = sync_queue.append_items(placed.id, [{"id": "y1", "name": "Pie", "price": 45}])

        sync_queue.mark_all_paid(placed.id, PaymentMethod.GCASH)

        appended_ids = [c.kwargs["appended_id"] for c in api_client.toggle_payment.call_args_list]
        assert appended_ids == [None, first.id, second.id]
        assert PaymentReconciler.is_fully_paid(store.get(placed.id))

    def test_partial_failure_between_payment_calls(self, sync_queue, store, api_client, placed):
        sync_queue.append_items(placed.id, [{"id": "x1", "name": "Soda", "price": 35}])
        api_client.toggle_payment.side_effect = [None, RemoteUnavailableError("down"), RemoteUnavailableError("down")]

        sync_queue.mark_all_paid(placed.id, PaymentMethod.CASH)

        assert PaymentReconciler.is_fully_paid(store.get(placed.id))
        assert not store.is_synced(placed.id)
        assert not sync_queue.online

    def test_split_all_marks_appended_without_method(self, sync_queue, api_client, placed):
        appended = sync_queue.append_items(placed.id, [{"id": "x1", "name": "Soda", "price": 30}])

        sync_queue.mark_all_paid_split(placed.id, 50, 100, 200)

        main_call, appended_call = api_client.toggle_payment.call_args_list
        assert main_call.args[2] == "split"
        assert main_call.kwargs["cash_amount"] == 50
        assert appended_call.kwargs["appended_id"] == appended.id
        assert appended_call.args[1:] == (True, None)

    def test_mark_unpaid(self, sync_queue, store, placed):
        sync_queue.mark_paid(placed.id, "cash")
        sync_queue.mark_unpaid(placed.id)
        assert not store.get(placed.id).is_paid


class TestDeletes:
    def test_delete_order_with_pending_items(self, sync_queue, store, api_client, placed):
        sync_queue.delete_order(placed.id)
        assert placed.id not in store
        api_client.delete_order.assert_called_once_with(placed.id)

    def test_delete_order_in_progress_is_rejected(self, sync_queue, store, placed, crew_a):
        sync_queue.update_item_status(placed.id, "i1", ItemStatus.PREPARING, crew_a)
        with pytest.raises(ValidationError):
            sync_queue.delete_order(placed.id)
        assert placed.id in store

    def test_deleting_sole_appended_item_deletes_appended_order(self, sync_queue, store, api_client, placed):
        appended = sync_queue.append_items(placed.id, [{"id": "x1", "name": "Soda", "price": 35}])

        result = sync_queue.delete_item(placed.id, "x1", appended.id)

        assert result.removed_appended_order
        assert store.get(placed.id).appended_orders == []
        api_client.delete_appended_order.assert_called_once_with(placed.id, appended.id)

    def test_delete_main_item_updates_order(self, sync_queue, api_client, placed):
        sync_queue.delete_item(placed.id, "i2")

        order_id, payload = api_client.update_order.call_args.args
        assert order_id == placed.id
        assert [i["id"] for i in payload["items"]] == ["i1"]


class TestOnlineAndNotes:
    def test_confirm_online_payment(self, sync_queue, store, api_client):
        order = sync_queue.create_order(
            "Web", ITEMS, order_source="online", online_payment_status="pending", online_order_code="ABCD12"
        )
        sync_queue.confirm_online_payment(order.id)

        assert store.get(order.id).online_payment_status == OnlinePaymentStatus.CONFIRMED
        api_client.confirm_online_payment.assert_called_once_with(order.id)

    def test_add_note(self, sync_queue, store, api_client, placed, order_taker):
        sync_queue.add_note(placed.id, "Allergic to peanuts", order_taker)

        assert store.get(placed.id).notes[0].content == "Allergic to peanuts"
        assert api_client.update_order.call_args.args[1]["notes"][0]["content"] == "Allergic to peanuts"


class TestRefetch:
    def test_refetch_replaces_collection_and_comes_back_online(
        self, sync_queue, store, api_client, notices, placed, make_order
    ):
        api_client.toggle_payment.side_effect = RemoteUnavailableError("down")
        sync_queue.mark_paid(placed.id, "cash")
        assert not sync_queue.online

        server_order = make_order()
        api_client.list_orders.return_value = [server_order]

        assert sync_queue.refetch() is True
        assert [o.id for o in store.all()] == [server_order.id]
        assert store.unsynced() == []
        assert sync_queue.online
        assert notices[-1].code == "SYNC_003"

    def test_failed_refetch_leaves_local_state(self, sync_queue, store, api_client, placed):
        api_client.list_orders.side_effect = RemoteUnavailableError("down")

        assert sync_queue.refetch() is False
        assert placed.id in store
        assert not sync_queue.online

    def test_branch_scopes_refetch(self, store, api_client):
        queue = OfflineSyncQueue(store, api_client, branch="makati")
        api_client.list_orders.return_value = []
        queue.refetch()
        api_client.list_orders.assert_called_once_with(branch="makati")

    def test_status_listeners(self, sync_queue, api_client):
        statuses = []
        unsubscribe = sync_queue.subscribe(statuses.append)
        api_client.list_orders.return_value = []

        sync_queue.refetch()
        unsubscribe()
        sync_queue.refetch()

        assert [s.syncing for s in statuses] == [True, False]


class TestSyncFailures:
    def test_malformed_server_order_goes_offline(self, store, order_taker):
        response = MagicMock(status_code=200, text="")
        response.json.return_value = {"success": True, "data": {"id": "o1"}}
        session = MagicMock(spec=requests.Session, headers={})
        session.request.return_value = response
        queue = OfflineSyncQueue(store, OrdersApiClient("http://remote.test/api", session=session))
        notices = []
        queue.on_notice(notices.append)

        order = queue.create_order("Juan", ITEMS, order_taker)

        assert order.id in store
        assert not store.is_synced(order.id)
        assert not queue.status.syncing
        assert not queue.online
        assert notices[-1].code == "SYNC_001"
        assert session.request.call_count == 2

    def test_unexpected_error_resets_syncing(self, sync_queue, store, api_client, notices, order_taker):
        api_client.create_order.side_effect = RuntimeError("unexpected")

        order = sync_queue.create_order("Juan", ITEMS, order_taker)

        assert not store.is_synced(order.id)
        assert not sync_queue.status.syncing
        assert sync_queue.status.error == "unexpected"
        assert notices[-1].code == "SYNC_004"

    def test_earlier_confirmation_does_not_mark_later_change_synced(self, store, api_client, order_taker):
        tasks = []
        queue = OfflineSyncQueue(store, api_client, dispatch=tasks.append)
        order = queue.create_order("Juan", ITEMS, order_taker)
        queue.add_note(order.id, "No onions", order_taker)

        tasks[0]()
        assert not store.is_synced(order.id)

        tasks[1]()
        assert store.is_synced(order.id)


class TestConcurrentEvents:
    def test_push_waits_for_local_mutation(self, sync_queue, store, placed):
        reconciler = EventReconciler(store)
        renamed = dump_order(store.get(placed.id))
        renamed["customerName"] = "Juana"
        original = AppendedOrderMerger.append_items
        worker = threading.Thread(target=reconciler.apply, args=("order.updated", renamed))
        blocked = []

        def append_while_push_arrives(order, items, timestamp):
            worker.start()
            worker.join(0.2)
            blocked.append(worker.is_alive())
            return original(order, items, timestamp)

        with patch.object(AppendedOrderMerger, "append_items", side_effect=append_while_push_arrives):
            sync_queue.append_items(placed.id, [{"id": "x1", "name": "Soda", "price": 35}])
        worker.join(5)

        assert blocked == [True]
        assert not worker.is_alive()
        assert store.get(placed.id).customer_name == "Juana"
