"""
Locust Load Test Suite

Targets an existing adventure (seed one first; the API has no create route).

  ADVENTURE_ID=1 locust -f locustfile.py --tags concurrency  # Last spots race
  ADVENTURE_ID=1 locust -f locustfile.py --tags throughput   # Calendar cache
  ADVENTURE_ID=1 locust -f locustfile.py --tags edge         # Bad input
  ADVENTURE_ID=1 locust -f locustfile.py                     # All tests
"""

import os
import random
import uuid
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, tag, task

ADVENTURE_ID = int(os.environ.get("ADVENTURE_ID", "1"))

# Every concurrency user fights over the same date
RACE_DATE = (datetime.now(timezone.utc) + timedelta(days=45)).date().isoformat()


def guest_headers() -> dict:
    return {"X-User-Id": f"load-{uuid.uuid4().hex[:10]}", "X-Session-Id": uuid.uuid4().hex[:12]}


def booking_payload(selected_date: str, participants: int, **extra) -> dict:
    payload = {
        "adventure_id": ADVENTURE_ID,
        "selected_date": selected_date,
        "selected_time": "09:00",
        "participants": participants,
        "lead_guest": {"name": "Load Tester", "email": "load@example.com"},
    }
    payload.update(extra)
    return payload


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 guests -> one date's capacity

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(participants) FROM bookings
      WHERE adventure_id = X AND booking_date = RACE_DATE AND status = 'confirmed';
    Should be <= the adventure's capacity for that date
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = guest_headers()

    @tag("concurrency")
    @task
    def book_last_spots(self):
        """Confirmed bookings of 1-3 guests racing for the same date."""
        payload = booking_payload(
            RACE_DATE,
            random.randint(1, 3),
            payment_ref=f"pay_{uuid.uuid4().hex[:12]}",
        )
        with self.client.post(
            "/api/v1/bookings/",
            json=payload,
            headers=self.headers,
            name="/api/v1/bookings/ [race]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: sold out, duplicate, or lost the race
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Calendar cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the API, run again

    Compare avg response time and P95/P99 latency of the disabled-dates route.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = guest_headers()

    @tag("throughput", "read")
    @task(10)
    def disabled_dates(self):
        self.client.get(
            f"/api/v1/adventures/{ADVENTURE_ID}/disabled-dates",
            headers=self.headers,
            name="/api/v1/adventures/{id}/disabled-dates",
        )

    @tag("throughput", "read")
    @task(5)
    def date_availability(self):
        day = (datetime.now(timezone.utc) + timedelta(days=random.randint(2, 120))).date()
        self.client.get(
            f"/api/v1/adventures/{ADVENTURE_ID}/availability?date={day.isoformat()}",
            name="/api/v1/adventures/{id}/availability",
        )

    @tag("throughput", "read")
    @task(3)
    def quote(self):
        day = (datetime.now(timezone.utc) + timedelta(days=random.randint(2, 120))).date()
        self.client.post(
            f"/api/v1/adventures/{ADVENTURE_ID}/quote",
            json={
                "selected_date": day.isoformat(),
                "participants": random.randint(1, 6),
                "add_ons": [{"id": random.choice(["lunch", "gear", "full_day"])}],
            },
            name="/api/v1/adventures/{id}/quote",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_adventure(self):
        payload = booking_payload(RACE_DATE, 1)
        payload["adventure_id"] = 999999
        with self.client.post("/api/v1/bookings/", json=payload, catch_response=True) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def zero_participants(self):
        with self.client.post(
            "/api/v1/bookings/", json=booking_payload(RACE_DATE, 0), catch_response=True
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def date_in_the_past(self):
        past = (datetime.now(timezone.utc) - timedelta(days=3)).date().isoformat()
        with self.client.post(
            "/api/v1/bookings/", json=booking_payload(past, 1), catch_response=True
        ) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def unknown_add_on(self):
        with self.client.post(
            "/api/v1/bookings/",
            json=booking_payload(RACE_DATE, 1, add_ons=[{"id": "jetpack"}]),
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def list_without_user(self):
        with self.client.get("/api/v1/bookings/", catch_response=True) as resp:
            self._expect(resp, (401,))
