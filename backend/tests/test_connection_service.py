"""
BeeBark Backend — Connection Service Tests
============================================

What:  ConnectionService against a real (in-memory SQLite) schema with a
       recording fan-out channel.

What we test:
    ✅ send: preconditions in order, stored row, statusUpdate to both sides
    ✅ accept / reject: receiver-only (sender and third user refused), pending-only
    ✅ accept / reject: notifications and events
    ✅ status: connected / pending / received (+ request id) / connect
    ✅ remove: symmetric, idempotent, emits "connect" to both
    ✅ crossing requests both accepted leave a single connection each way
    ✅ pending_incoming shows the sender's email; list_connections does not
"""

from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.exceptions import (
    AlreadyConnectedError,
    AlreadyProcessedError,
    DuplicatePendingError,
    NotFoundError,
    RequestNotFoundError,
    SelfRequestError,
    UnauthorizedActionError,
)
from app.models.connection import ConnectionRequest, ConnectionStatus
from app.models.notification import Notification, NotificationType
from app.models.user import user_connections


async def connection_rows(db_session):
    result = await db_session.execute(select(user_connections))
    return {(row.user_id, row.connected_user_id) for row in result}


async def notifications_for(db_session, user):
    result = await db_session.execute(
        select(Notification).where(Notification.receiver_id == user.id)
    )
    return result.scalars().all()


class TestSend:

    @pytest.mark.asyncio
    async def test_send_creates_pending_request_and_notifies_both(
        self, db_session, connection_service, fanout, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")

        created = await connection_service.send(db_session, alice.id, bob.id)

        assert created.sender_id == alice.id
        assert created.receiver_id == bob.id
        assert created.status == "pending"
        assert fanout.statuses_for(bob.id) == [(str(alice.id), "received")]
        assert fanout.statuses_for(alice.id) == [(str(bob.id), "pending")]

    @pytest.mark.asyncio
    async def test_self_request_rejected_before_anything_else(
        self, db_session, connection_service, fanout
    ):
        ghost = uuid4()
        with pytest.raises(SelfRequestError) as exc:
            await connection_service.send(db_session, ghost, ghost)

        assert exc.value.message == "You cannot send a request to yourself"
        assert fanout.statuses == []

    @pytest.mark.asyncio
    async def test_unknown_receiver_is_not_found(self, db_session, connection_service, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await connection_service.send(db_session, alice.id, uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_pending_request_rejected(
        self, db_session, connection_service, fanout, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        await connection_service.send(db_session, alice.id, bob.id)

        with pytest.raises(DuplicatePendingError) as exc:
            await connection_service.send(db_session, alice.id, bob.id)

        assert exc.value.message == "Request already exists"
        # Only the first send produced events
        assert len(fanout.statuses) == 2

    @pytest.mark.asyncio
    async def test_reverse_direction_is_not_a_duplicate(
        self, db_session, connection_service, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        await connection_service.send(db_session, alice.id, bob.id)

        crossing = await connection_service.send(db_session, bob.id, alice.id)

        assert crossing.sender_id == bob.id

    @pytest.mark.asyncio
    async def test_already_connected_rejected(self, db_session, connection_service, make_user):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.accept(db_session, request.id, bob.id)

        with pytest.raises(AlreadyConnectedError) as exc:
            await connection_service.send(db_session, alice.id, bob.id)
        assert exc.value.message == "You are already connected"

    @pytest.mark.asyncio
    async def test_can_send_again_after_rejection(self, db_session, connection_service, make_user):
        alice, bob = await make_user("alice"), await make_user("bob")
        first = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.reject(db_session, first.id, bob.id)

        second = await connection_service.send(db_session, alice.id, bob.id)

        assert second.id != first.id
        assert second.status == "pending"

    @pytest.mark.asyncio
    async def test_store_refuses_second_pending_row_for_same_pair(self, db_session, make_user):
        """The partial unique index holds even if the service check is bypassed."""
        alice, bob = await make_user("alice"), await make_user("bob")
        db_session.add(ConnectionRequest(sender_id=alice.id, receiver_id=bob.id))
        await db_session.flush()
        db_session.add(ConnectionRequest(sender_id=alice.id, receiver_id=bob.id))

        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_offline_receiver_misses_event_but_request_is_stored(
        self, db_session, make_user
    ):
        from app.services.connection_service import ConnectionService
        from app.services.notification_service import NotificationService
        from conftest import RecordingFanout

        alice, bob = await make_user("alice"), await make_user("bob")
        fanout = RecordingFanout(online={str(alice.id)})
        service = ConnectionService(fanout=fanout, notifications=NotificationService())

        await service.send(db_session, alice.id, bob.id)

        assert fanout.dropped == [(str(bob.id), str(alice.id), "received")]
        assert (await service.status(db_session, bob.id, alice.id)).status == "received"


class TestAcceptReject:

    @pytest.mark.asyncio
    async def test_accept_connects_both_and_notifies_sender(
        self, db_session, connection_service, fanout, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        fanout.statuses.clear()

        await connection_service.accept(db_session, request.id, bob.id)

        assert await connection_rows(db_session) == {(alice.id, bob.id), (bob.id, alice.id)}
        stored = await db_session.get(ConnectionRequest, request.id)
        assert stored.status == ConnectionStatus.ACCEPTED.value

        notes = await notifications_for(db_session, alice)
        assert [(n.type, n.related_user_id) for n in notes] == [
            (NotificationType.CONNECTION_ACCEPTED.value, bob.id)
        ]
        assert fanout.statuses_for(bob.id) == [(str(alice.id), "connected")]
        assert fanout.statuses_for(alice.id) == [(str(bob.id), "connected")]

    @pytest.mark.asyncio
    async def test_only_receiver_may_accept(self, db_session, connection_service, make_user):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)

        with pytest.raises(UnauthorizedActionError) as exc:
            await connection_service.accept(db_session, request.id, alice.id)

        assert exc.value.message == "Unauthorized action"
        assert await connection_rows(db_session) == set()

    @pytest.mark.asyncio
    async def test_only_receiver_may_reject(self, db_session, connection_service, make_user):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)

        with pytest.raises(UnauthorizedActionError) as exc:
            await connection_service.reject(db_session, request.id, alice.id)

        assert exc.value.message == "Unauthorized action"
        stored = await db_session.get(ConnectionRequest, request.id)
        assert stored.status == ConnectionStatus.PENDING.value
        assert await notifications_for(db_session, alice) == []

    @pytest.mark.asyncio
    async def test_third_user_cannot_accept(self, db_session, connection_service, make_user):
        alice, bob, carol = (
            await make_user("alice"),
            await make_user("bob"),
            await make_user("carol"),
        )
        request = await connection_service.send(db_session, alice.id, bob.id)

        with pytest.raises(UnauthorizedActionError):
            await connection_service.accept(db_session, request.id, carol.id)

        assert await connection_rows(db_session) == set()

    @pytest.mark.asyncio
    async def test_accept_twice_is_already_processed(
        self, db_session, connection_service, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.accept(db_session, request.id, bob.id)

        with pytest.raises(AlreadyProcessedError) as exc:
            await connection_service.accept(db_session, request.id, bob.id)
        assert exc.value.message == "Request already processed"

    @pytest.mark.asyncio
    async def test_reject_twice_is_already_processed(
        self, db_session, connection_service, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.reject(db_session, request.id, bob.id)

        with pytest.raises(AlreadyProcessedError) as exc:
            await connection_service.reject(db_session, request.id, bob.id)
        assert exc.value.message == "Request already processed"
        assert len(await notifications_for(db_session, alice)) == 1

    @pytest.mark.asyncio
    async def test_processed_check_comes_before_receiver_check(
        self, db_session, connection_service, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.reject(db_session, request.id, bob.id)

        with pytest.raises(AlreadyProcessedError):
            await connection_service.accept(db_session, request.id, alice.id)

    @pytest.mark.asyncio
    async def test_unknown_request(self, db_session, connection_service, make_user):
        bob = await make_user("bob")
        with pytest.raises(RequestNotFoundError) as exc:
            await connection_service.reject(db_session, uuid4(), bob.id)
        assert exc.value.message == "Connection does not exist"

    @pytest.mark.asyncio
    async def test_reject_notifies_sender_without_events(
        self, db_session, connection_service, fanout, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        fanout.statuses.clear()

        await connection_service.reject(db_session, request.id, bob.id)

        stored = await db_session.get(ConnectionRequest, request.id)
        assert stored.status == ConnectionStatus.REJECTED.value
        notes = await notifications_for(db_session, alice)
        assert [n.type for n in notes] == [NotificationType.CONNECTION_REJECTED.value]
        assert fanout.statuses == []
        assert (await connection_service.status(db_session, alice.id, bob.id)).status == "connect"

    @pytest.mark.asyncio
    async def test_crossing_requests_both_accepted(
        self, db_session, connection_service, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        a_to_b = await connection_service.send(db_session, alice.id, bob.id)
        b_to_a = await connection_service.send(db_session, bob.id, alice.id)

        await connection_service.accept(db_session, a_to_b.id, bob.id)
        await connection_service.accept(db_session, b_to_a.id, alice.id)

        assert await connection_rows(db_session) == {(alice.id, bob.id), (bob.id, alice.id)}
        assert [u.id for u in await connection_service.list_connections(db_session, alice.id)] == [bob.id]


class TestStatus:

    @pytest.mark.asyncio
    async def test_status_from_each_side(self, db_session, connection_service, make_user):
        alice, bob = await make_user("alice"), await make_user("bob")
        assert (await connection_service.status(db_session, alice.id, bob.id)).status == "connect"

        request = await connection_service.send(db_session, alice.id, bob.id)

        assert (await connection_service.status(db_session, alice.id, bob.id)).status == "pending"
        received = await connection_service.status(db_session, bob.id, alice.id)
        assert received.status == "received"
        assert received.request_id == request.id

        await connection_service.accept(db_session, request.id, bob.id)
        assert (await connection_service.status(db_session, alice.id, bob.id)).status == "connected"
        assert (await connection_service.status(db_session, bob.id, alice.id)).status == "connected"

    @pytest.mark.asyncio
    async def test_status_of_unknown_user_is_connect(
        self, db_session, connection_service, make_user
    ):
        alice = await make_user("alice")
        status = await connection_service.status(db_session, alice.id, uuid4())
        assert status.status == "connect"
        assert status.request_id is None


class TestRemove:

    @pytest.mark.asyncio
    async def test_remove_disconnects_both_and_emits_connect(
        self, db_session, connection_service, fanout, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.accept(db_session, request.id, bob.id)
        fanout.statuses.clear()

        await connection_service.remove(db_session, bob.id, alice.id)

        assert await connection_rows(db_session) == set()
        assert fanout.statuses_for(alice.id) == [(str(bob.id), "connect")]
        assert fanout.statuses_for(bob.id) == [(str(alice.id), "connect")]
        assert (await connection_service.status(db_session, alice.id, bob.id)).status == "connect"

    @pytest.mark.asyncio
    async def test_remove_without_connection_is_a_no_op(
        self, db_session, connection_service, make_user
    ):
        alice, bob = await make_user("alice"), await make_user("bob")

        await connection_service.remove(db_session, alice.id, bob.id)
        await connection_service.remove(db_session, alice.id, uuid4())

        assert await connection_rows(db_session) == set()

    @pytest.mark.asyncio
    async def test_request_rows_survive_removal(self, db_session, connection_service, make_user):
        alice, bob = await make_user("alice"), await make_user("bob")
        request = await connection_service.send(db_session, alice.id, bob.id)
        await connection_service.accept(db_session, request.id, bob.id)

        await connection_service.remove(db_session, alice.id, bob.id)

        stored = await db_session.get(ConnectionRequest, request.id)
        assert stored.status == ConnectionStatus.ACCEPTED.value


class TestListings:

    @pytest.mark.asyncio
    async def test_pending_incoming_includes_sender_profile(
        self, db_session, connection_service, make_user
    ):
        alice, bob, carol = (
            await make_user("alice"),
            await make_user("bob"),
            await make_user("carol"),
        )
        await connection_service.send(db_session, alice.id, carol.id)
        accepted = await connection_service.send(db_session, bob.id, carol.id)
        await connection_service.accept(db_session, accepted.id, carol.id)

        incoming = await connection_service.pending_incoming(db_session, carol.id)

        assert [r.sender.user_name for r in incoming] == ["alice"]
        assert incoming[0].sender.email == "alice@beebark.test"
        assert incoming[0].receiver_id == carol.id
        assert await connection_service.pending_incoming(db_session, alice.id) == []

    @pytest.mark.asyncio
    async def test_list_connections_sorted_by_name(
        self, db_session, connection_service, make_user
    ):
        hub = await make_user("hub")
        zed = await make_user("zed", first_name="Zed")
        amy = await make_user("amy", first_name="Amy")
        for other in (zed, amy):
            request = await connection_service.send(db_session, other.id, hub.id)
            await connection_service.accept(db_session, request.id, hub.id)

        connections = await connection_service.list_connections(db_session, hub.id)

        assert [u.first_name for u in connections] == ["Amy", "Zed"]
        assert all("email" not in u.model_dump() for u in connections)
