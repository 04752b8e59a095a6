"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test availability cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta
from locust import HttpUser, task, between, tag

# Shared state
EVENT_DATES = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_CAPACITY = 10
EVENT_DAY = date.today() + timedelta(days=30)


def random_suffix(k: int = 8) -> str:
    return "".join(random.choices(string.ascii_uppercase + string.digits, k=k))


def create_reservation(client, guest_count: int = 2):
    """Each simulated guest gets its own unit and name so only capacity can reject it."""
    suffix = random_suffix()
    resp = client.post("/api/v1/reservations/", json={
        "reservation_number": f"LOAD-{suffix}",
        "unit_code": f"U{suffix}",
        "guest_name": f"Load Guest {suffix}",
        "checkin": (EVENT_DAY - timedelta(days=2)).isoformat(),
        "checkout": (EVENT_DAY + timedelta(days=2)).isoformat(),
        "guest_count": guest_count,
    }, name="/api/v1/reservations/")
    if resp.status_code == 201:
        return resp.json()["id"]
    return None


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 guests -> 10 places

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(quantity) FROM bookings WHERE event_id = X AND status <> 'Cancelled';
    Should be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        global CONCURRENCY_EVENT_ID
        if not CONCURRENCY_EVENT_ID:
            venue = self.client.post("/api/v1/venues/", json={
                "name": f"Load Venue {random_suffix(4)}",
                "capacity": CONCURRENCY_CAPACITY,
            })
            if venue.status_code == 201:
                event = self.client.post("/api/v1/events/", json={
                    "name": "Concurrency Test Dinner",
                    "date": EVENT_DAY.isoformat(),
                    "time": f"{random.randint(0, 23):02d}:{random.randint(0, 59):02d}",
                    "venue_id": venue.json()["id"],
                })
                if event.status_code == 201 and not CONCURRENCY_EVENT_ID:
                    CONCURRENCY_EVENT_ID = event.json()["id"]
                    print(f"\n✓ Created event {CONCURRENCY_EVENT_ID} with {CONCURRENCY_CAPACITY} places\n")

        self.reservation_id = create_reservation(self.client, guest_count=1)

    @tag("concurrency")
    @task
    def book_last_places(self):
        """All guests fight for the same 10 places."""
        if not CONCURRENCY_EVENT_ID or not self.reservation_id:
            return

        with self.client.post("/api/v1/bookings/",
            json={"event_id": CONCURRENCY_EVENT_ID, "reservation_id": self.reservation_id, "quantity": 1},
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                # Expected: full, or this guest already holds a place
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Availability cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_available_cached(self):
        day = EVENT_DAY + timedelta(days=random.randint(-3, 3))
        self.client.get(f"/api/v1/events/available?date={day.isoformat()}",
            name="/api/v1/events/available [cached]")

    @tag("throughput", "read")
    @task(3)
    def event_availability(self):
        """Live occupancy, never cached."""
        if CONCURRENCY_EVENT_ID:
            self.client.get(f"/api/v1/events/{CONCURRENCY_EVENT_ID}/availability",
                name="/api/v1/events/{id}/availability")

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

    def _expect(self, payload, allowed, **kwargs):
        with self.client.post("/api/v1/bookings/", catch_response=True, **payload, **kwargs) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        self._expect({"json": {"event_id": 999999, "reservation_id": 1, "quantity": 1}}, [404])

    @tag("edge")
    @task
    def negative_quantity(self):
        self._expect({"json": {"event_id": 1, "reservation_id": 1, "quantity": -5}}, [422])

    @tag("edge")
    @task
    def zero_quantity(self):
        self._expect({"json": {"event_id": 1, "reservation_id": 1, "quantity": 0}}, [422])

    @tag("edge")
    @task
    def huge_quantity(self):
        self._expect({"json": {"event_id": 1, "reservation_id": 1, "quantity": 999999}}, [404, 409])

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect({"data": "not json at all"}, [422],
                     headers={"Content-Type": "application/json"})

    @tag("edge")
    @task
    def inverted_bulk_range(self):
        with self.client.post("/api/v1/events/bulk", json={
            "name": "Backwards",
            "time": "19:00",
            "venue_id": 1,
            "start_date": "2024-06-03",
            "end_date": "2024-06-01",
        }, catch_response=True) as resp:
            if resp.status_code in [404, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 404/422, got {resp.status_code}")


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Front desk traffic: mostly availability checks, some bookings,
    occasional cancellations and voucher lookups.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.reservation_id = create_reservation(self.client, guest_count=random.randint(1, 4))
        self.vouchers = []

    @task(50)
    def browse_available(self):
        resp = self.client.get(f"/api/v1/events/available?date={EVENT_DAY.isoformat()}",
            name="/api/v1/events/available")
        if resp.status_code == 200:
            self.available = [e["id"] for e in resp.json().get("events", [])]

    @task(10)
    def book_event(self):
        available = getattr(self, "available", [])
        if available and self.reservation_id:
            with self.client.post("/api/v1/bookings/", json={
                "event_id": random.choice(available),
                "reservation_id": self.reservation_id,
                "quantity": 1,
            }, catch_response=True) as resp:
                if resp.status_code == 201:
                    self.vouchers.append(resp.json()["voucher"])
                    resp.success()
                elif resp.status_code == 409:
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")

    @task(5)
    def lookup_voucher(self):
        if self.vouchers:
            self.client.get(f"/api/v1/bookings/voucher/{random.choice(self.vouchers)}",
                name="/api/v1/bookings/voucher/{code}")

    @task(2)
    def cancel_booking(self):
        available = getattr(self, "available", [])
        if available and self.reservation_id:
            event_id = random.choice(available)
            with self.client.patch(f"/api/v1/bookings/{event_id}/{self.reservation_id}/status",
                json={"status": "Cancelled"},
                name="/api/v1/bookings/{event_id}/{reservation_id}/status",
                catch_response=True
            ) as resp:
                if resp.status_code in [200, 404]:
                    resp.success()
                else:
                    resp.failure(f"Unexpected: {resp.status_code}")
