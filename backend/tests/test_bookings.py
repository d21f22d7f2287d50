"""
Tests for booking endpoints including capacity races and the hold lifecycle.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from adventure_booking.api.routes import bookings as bookings_routes
from adventure_booking.db import session as session_module
from adventure_booking.main import app
from adventure_booking.models import AdventureAvailability, Booking
from adventure_booking.schemas.availability import DateAvailability
from adventure_booking.services import booking_service
from conftest import add_booking, add_override, booking_payload, make_session_factory


async def booked_spots(db_session, adventure_id, day) -> int:
    result = await db_session.execute(
        select(AdventureAvailability.booked_spots).where(
            AdventureAvailability.adventure_id == adventure_id,
            AdventureAvailability.date == day,
        )
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_pending_hold(client: AsyncClient, adventure, trip_date, guest_headers):
    """Without a payment reference the booking is a 24 hour hold."""
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(adventure.id, trip_date, 2),
        headers=guest_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["adventure_id"] == adventure.id
    assert data["user_id"] == "guest-1"
    assert data["participants"] == 2
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["total_amount"] == "330.00"

    expires_at = datetime.fromisoformat(data["expires_at"])
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    assert expires_at > datetime.now(timezone.utc) + timedelta(hours=23)


@pytest.mark.asyncio
async def test_create_confirmed_with_payment(client: AsyncClient, adventure, trip_date, guest_headers):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(
            adventure.id,
            trip_date,
            4,
            payment_ref="pay_123",
            add_ons=[{"id": "lunch", "quantity": 4}],
        ),
        headers=guest_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["payment_status"] == "paid"
    assert data["confirmed_at"] is not None
    assert data["discount_amount"] == "60.00"
    assert data["add_ons_amount"] == "100.00"
    assert data["add_ons"][0]["id"] == "lunch"


@pytest.mark.asyncio
async def test_anonymous_booking_allowed(client: AsyncClient, adventure, trip_date):
    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 1))

    assert response.status_code == 201
    assert response.json()["user_id"] is None


@pytest.mark.asyncio
async def test_party_larger_than_remaining_rejected(client: AsyncClient, db_session, adventure, trip_date):
    """8 spots, 5 already taken: a party of 4 is turned away before the write."""
    for participants in (2, 2, 1):
        await add_booking(db_session, adventure.id, trip_date, participants)

    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 4))

    assert response.status_code == 409
    assert response.json()["detail"] == "Only 3 spots available for this date"

    fits = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 3))
    assert fits.status_code == 201


@pytest.mark.asyncio
async def test_fully_booked_date(client: AsyncClient, db_session, adventure, trip_date):
    await add_booking(db_session, adventure.id, trip_date, 8)

    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 1))

    assert response.status_code == 409
    assert response.json()["detail"] == "Fully booked"


@pytest.mark.asyncio
async def test_blocked_date(client: AsyncClient, db_session, adventure, trip_date):
    await add_override(db_session, adventure.id, trip_date, available_spots=8, is_blocked=True)

    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 1))

    assert response.status_code == 409
    assert response.json()["detail"] == "This date has been closed by the operator"


@pytest.mark.asyncio
async def test_holds_count_against_capacity(client: AsyncClient, adventure, trip_date):
    first = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 6))
    second = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 3))

    assert first.status_code == 201
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, adventure, trip_date, guest_headers):
    """Same guest booking the same adventure date twice returns 409."""
    payload = booking_payload(adventure.id, trip_date, 1, payment_ref="pay_1")

    response1 = await client.post("/api/v1/bookings/", json=payload, headers=guest_headers)
    assert response1.status_code == 201

    response2 = await client.post("/api/v1/bookings/", json=payload, headers=guest_headers)
    assert response2.status_code == 409


@pytest.mark.asyncio
async def test_booking_validation(client: AsyncClient, adventure, trip_date):
    bad_email = booking_payload(adventure.id, trip_date, 1)
    bad_email["lead_guest"]["email"] = "not-an-email"
    zero_guests = booking_payload(adventure.id, trip_date, 0)

    assert (await client.post("/api/v1/bookings/", json=bad_email)).status_code == 422
    assert (await client.post("/api/v1/bookings/", json=zero_guests)).status_code == 422


@pytest.mark.asyncio
async def test_booking_unknown_adventure(client: AsyncClient, trip_date):
    response = await client.post("/api/v1/bookings/", json=booking_payload(9999, trip_date, 1))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_booking_outside_window(client: AsyncClient, adventure):
    far = datetime.now(timezone.utc).date() + timedelta(days=500)
    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, far, 1))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_writer_rechecks_when_precheck_degraded(
    client: AsyncClient, db_session, adventure, trip_date, monkeypatch
):
    """A degraded pre-check lets the request through; the writer still refuses to overbook."""
    for participants in (2, 2, 1):
        await add_booking(db_session, adventure.id, trip_date, participants)

    async def degraded_check(db, adventure, day, now=None):
        return DateAvailability(
            date=day,
            is_available=True,
            remaining_spots=8,
            is_blocked=False,
            status="available",
            message="8 spots available",
            warning="Live availability could not be confirmed.",
        )

    monkeypatch.setattr(bookings_routes, "check_date_availability", degraded_check)

    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 4))

    assert response.status_code == 409
    assert response.json()["detail"] == "Not enough spots. Requested: 4, Available: 3"


@pytest.mark.asyncio
async def test_version_conflict_is_retried(client: AsyncClient, adventure, trip_date, monkeypatch):
    adventure_id = adventure.id
    real_bump = booking_service._bump_adventure_version
    calls = []

    async def flaky_bump(db, adventure_id, current_version):
        calls.append(current_version)
        if len(calls) == 1:
            return False
        return await real_bump(db, adventure_id, current_version)

    monkeypatch.setattr(booking_service, "_bump_adventure_version", flaky_bump)

    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure_id, trip_date, 2))

    assert response.status_code == 201
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_persistent_conflict_gives_up(client: AsyncClient, adventure, trip_date, monkeypatch):
    adventure_id = adventure.id
    calls = []

    async def always_stale(db, adventure_id, current_version):
        calls.append(current_version)
        return False

    monkeypatch.setattr(booking_service, "_bump_adventure_version", always_stale)

    response = await client.post("/api/v1/bookings/", json=booking_payload(adventure_id, trip_date, 2))

    assert response.status_code == 409
    assert response.json()["detail"] == "Booking failed due to high demand. Please try again."
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_confirm_pending_hold(client: AsyncClient, db_session, adventure, trip_date):
    await add_override(db_session, adventure.id, trip_date, available_spots=6)
    created = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 2))
    booking_id = created.json()["id"]
    assert await booked_spots(db_session, adventure.id, trip_date) == 0

    response = await client.post(f"/api/v1/bookings/{booking_id}/confirm", json={"payment_ref": "pay_9"})

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["payment_status"] == "paid"
    assert await booked_spots(db_session, adventure.id, trip_date) == 2

    again = await client.post(f"/api/v1/bookings/{booking_id}/confirm", json={"payment_ref": "pay_9"})
    assert again.status_code == 200
    assert await booked_spots(db_session, adventure.id, trip_date) == 2


@pytest.mark.asyncio
async def test_confirm_expired_hold_rejected(client: AsyncClient, db_session, adventure, trip_date):
    hold = await add_booking(
        db_session,
        adventure.id,
        trip_date,
        2,
        status="pending",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )

    response = await client.post(f"/api/v1/bookings/{hold.id}/confirm", json={"payment_ref": "pay_late"})

    assert response.status_code == 409
    assert "expired" in response.json()["detail"]


@pytest.mark.asyncio
async def test_confirm_missing_booking(client: AsyncClient):
    response = await client.post("/api/v1/bookings/4242/confirm", json={"payment_ref": "pay_x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_payment_failure_releases_hold(client: AsyncClient, adventure, trip_date):
    created = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 8))
    booking_id = created.json()["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/payment-failed", json={"payment_ref": "pay_declined"})

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["payment_status"] == "failed"

    retry = await client.post(f"/api/v1/bookings/{booking_id}/payment-failed", json={"payment_ref": "pay_declined"})
    assert retry.status_code == 409

    rebook = await client.post("/api/v1/bookings/", json=booking_payload(adventure.id, trip_date, 8))
    assert rebook.status_code == 201


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, db_session, adventure, trip_date, guest_headers):
    """Cancelling a confirmed override-date booking hands its spots back."""
    await add_override(db_session, adventure.id, trip_date, available_spots=6)
    created = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(adventure.id, trip_date, 2, payment_ref="pay_2"),
        headers=guest_headers,
    )
    booking_id = created.json()["id"]
    assert await booked_spots(db_session, adventure.id, trip_date) == 2

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=guest_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert await booked_spots(db_session, adventure.id, trip_date) == 0

    again = await client.delete(f"/api/v1/bookings/{booking_id}", headers=guest_headers)
    assert again.status_code == 400


@pytest.mark.asyncio
async def test_cancel_requires_owner(client: AsyncClient, adventure, trip_date, guest_headers):
    created = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(adventure.id, trip_date, 1),
        headers=guest_headers,
    )
    booking_id = created.json()["id"]

    anonymous = await client.delete(f"/api/v1/bookings/{booking_id}")
    stranger = await client.delete(f"/api/v1/bookings/{booking_id}", headers={"X-User-Id": "guest-2"})

    assert anonymous.status_code == 401
    assert stranger.status_code == 404


@pytest.mark.asyncio
async def test_list_user_bookings(client: AsyncClient, db_session, adventure, trip_date, guest_headers):
    await add_booking(db_session, adventure.id, trip_date, 1, user_id="guest-1")
    await add_booking(db_session, adventure.id, trip_date + timedelta(days=1), 2, user_id="guest-1")
    await add_booking(db_session, adventure.id, trip_date, 1, user_id="guest-2")

    response = await client.get("/api/v1/bookings/", headers=guest_headers)

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 2
    assert {b["user_id"] for b in data} == {"guest-1"}
    assert data[0]["participants"] == 2


@pytest.mark.asyncio
async def test_list_requires_user(client: AsyncClient):
    response = await client.get("/api/v1/bookings/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_second_confirmation_for_same_date_rejected(client: AsyncClient, db_session, adventure, trip_date):
    """A guest holding two seats on one date can only turn one of them into a booking."""
    first = await add_booking(db_session, adventure.id, trip_date, 2, status="pending", user_id="guest-1")
    second = await add_booking(db_session, adventure.id, trip_date, 1, status="pending", user_id="guest-1")

    confirmed = await client.post(f"/api/v1/bookings/{first.id}/confirm", json={"payment_ref": "pay_a"})
    assert confirmed.status_code == 200

    response = await client.post(f"/api/v1/bookings/{second.id}/confirm", json={"payment_ref": "pay_b"})

    assert response.status_code == 409
    assert response.json()["detail"] == "You already have a booking for this adventure on this date"
    status_row = await db_session.execute(select(Booking.status).where(Booking.id == second.id))
    assert status_row.scalar_one() == "pending"


@pytest.mark.asyncio
async def test_calendar_cache_cleared_after_commit(
    client: AsyncClient, adventure, trip_date, guest_headers, monkeypatch
):
    events = []
    real_commit = AsyncSession.commit

    async def recording_commit(self):
        await real_commit(self)
        events.append("commit")

    async def recording_invalidate(adventure_id):
        events.append("invalidate")

    monkeypatch.setattr(AsyncSession, "commit", recording_commit)
    monkeypatch.setattr(bookings_routes, "invalidate_calendar_cache", recording_invalidate)

    created = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(adventure.id, trip_date, 2),
        headers=guest_headers,
    )
    assert created.status_code == 201
    booking_id = created.json()["id"]

    confirmed = await client.post(f"/api/v1/bookings/{booking_id}/confirm", json={"payment_ref": "pay_7"})
    assert confirmed.status_code == 200

    cancelled = await client.delete(f"/api/v1/bookings/{booking_id}", headers=guest_headers)
    assert cancelled.status_code == 200

    assert events == ["commit", "invalidate"] * 3


@pytest.fixture
def unpatched_client(test_engine, monkeypatch):
    """Client going through the real session dependency on the test database."""
    monkeypatch.setattr(session_module, "SessionLocal", make_session_factory(test_engine))
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def break_commits(monkeypatch):
    async def broken_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AsyncSession, "commit", broken_commit)


@pytest.mark.asyncio
async def test_failed_commit_on_create_is_reported(unpatched_client, db_session, adventure, trip_date, monkeypatch):
    adventure_id = adventure.id
    break_commits(monkeypatch)

    async with unpatched_client as ac:
        response = await ac.post("/api/v1/bookings/", json=booking_payload(adventure_id, trip_date, 2))

    assert response.status_code == 503
    assert response.json()["detail"] == "Booking could not be created. Please try again."
    count = await db_session.execute(select(func.count(Booking.id)))
    assert count.scalar_one() == 0


@pytest.mark.asyncio
async def test_failed_commit_on_confirm_is_reported(unpatched_client, db_session, adventure, trip_date, monkeypatch):
    hold = await add_booking(db_session, adventure.id, trip_date, 2, status="pending", user_id="guest-1")
    hold_id = hold.id
    break_commits(monkeypatch)

    async with unpatched_client as ac:
        response = await ac.post(f"/api/v1/bookings/{hold_id}/confirm", json={"payment_ref": "pay_lost"})

    assert response.status_code == 503
    status_row = await db_session.execute(select(Booking.status).where(Booking.id == hold_id))
    assert status_row.scalar_one() == "pending"
