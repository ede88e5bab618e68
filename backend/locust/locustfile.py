"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overfilling a pregame
  locust -f locustfile.py --tags throughput   # Test read paths
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

# Shared state
EVENT_IDS = []
PREGAME_IDS = []
CONCURRENCY_PREGAME_ID = None
CONCURRENCY_CAPACITY = 10

YEARS = ["Freshman", "Sophomore", "Junior", "Senior"]
MAJORS = ["Computer Science", "Economics", "Biology", "History"]
DORMS = ["Witte", "Sellery", "Chadbourne", "Ogg"]

JOIN_INFO = {
    "bringing": ["snacks"],
    "group_size": 1,
    "message": "See you there",
    "phone_number": "(608) 555-0123",
}


def random_email():
    return "load_" + "".join(random.choices(string.ascii_lowercase + string.digits, k=12)) + "@wisc.edu"


def signup(client) -> dict:
    """Create a throwaway account and return auth headers ({} on failure)."""
    resp = client.post("/api/users/signup", json={
        "name": "Load Tester",
        "email": random_email(),
        "password": "test1234",
        "year": random.choice(YEARS),
        "major": random.choice(MAJORS),
        "dorm": random.choice(DORMS),
    })
    if resp.status_code == 201:
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return {}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: Creating concurrency test pregame...")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 10 spots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT attendee_count, (SELECT COUNT(*) FROM pregame_attendees WHERE pregame_id = X)
      FROM pregames WHERE id = X;
    Both should be ≤ 10 and equal
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = signup(self.client)
        if not self.headers or CONCURRENCY_PREGAME_ID:
            return

        # First user in hosts the contested pregame
        future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        resp = self.client.post("/api/events", json={
            "title": "Concurrency Test Event",
            "date": future,
            "location": "Camp Randall",
            "category": "Game",
        }, headers=self.headers)
        if resp.status_code != 201:
            return
        resp = self.client.post("/api/pregames", json={
            "event_id": resp.json()["id"],
            "title": "Concurrency Test Pregame",
            "meeting_time": future,
            "meeting_location": "Regent St",
            "access_type": "OPEN",
            "capacity": CONCURRENCY_CAPACITY,
            "phone_number": "(608) 555-0100",
        }, headers=self.headers)
        if resp.status_code == 201:
            globals()["CONCURRENCY_PREGAME_ID"] = resp.json()["id"]
            print(f"\n✓ Created pregame {CONCURRENCY_PREGAME_ID} with {CONCURRENCY_CAPACITY} spots\n")

    @tag("concurrency")
    @task
    def join_limited_pregame(self):
        """All users fight for the same 10 spots."""
        if not CONCURRENCY_PREGAME_ID or not self.headers:
            return

        with self.client.post(f"/api/pregames/{CONCURRENCY_PREGAME_ID}/join",
            json=JOIN_INFO,
            headers=self.headers,
            name="/api/pregames/{id}/join",
            catch_response=True
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 400 and resp.json().get("code") in ("capacity_exceeded", "conflict"):
                resp.success()  # Expected: full, or already in
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - read paths

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s

    Watch:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = signup(self.client)

    @tag("throughput", "read")
    @task(10)
    def list_today(self):
        self.client.get("/api/events/today")

    @tag("throughput", "read")
    @task(5)
    def list_events(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/events?page={page}&page_size=20", name="/api/events")

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS and self.headers:
            self.client.get(f"/api/events/{random.choice(EVENT_IDS)}",
                headers=self.headers,
                name="/api/events/{id}")

    @tag("throughput", "read")
    @task(3)
    def event_mutuals(self):
        if EVENT_IDS and self.headers:
            self.client.get(f"/api/mutuals/event/{random.choice(EVENT_IDS)}",
                headers=self.headers,
                name="/api/mutuals/event/{id}")

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

    def on_start(self):
        self.headers = signup(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def join_nonexistent_pregame(self):
        with self.client.post("/api/pregames/999999/join",
            json=JOIN_INFO,
            headers=self.headers,
            name="/api/pregames/{id}/join [missing]",
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_group_size(self):
        with self.client.post("/api/pregames/1/join",
            json={**JOIN_INFO, "group_size": 0},
            headers=self.headers,
            name="/api/pregames/{id}/join [bad group]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def zero_capacity(self):
        future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        with self.client.post("/api/pregames",
            json={
                "event_id": 1,
                "title": "Nobody allowed",
                "meeting_time": future,
                "meeting_location": "Nowhere",
                "capacity": 0,
                "phone_number": "(608) 555-0100",
            },
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def approve_unknown_request(self):
        with self.client.post("/api/pregames/1/approve",
            json={"request_id": 999999},
            headers=self.headers,
            name="/api/pregames/{id}/approve [missing]",
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/pregames/1/request",
            data="not json at all",
            headers=self.headers,
            name="/api/pregames/{id}/request [garbage]",
            catch_response=True
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/pregames/1/join",
            json=JOIN_INFO,
            name="/api/pregames/{id}/join [no auth]",
            catch_response=True
        ) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some joins and requests
      - Rare creates
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = signup(self.client)

    @task(50)
    def browse_today(self):
        resp = self.client.get("/api/events/today")
        if resp.status_code == 200:
            for event in resp.json():
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS and self.headers:
            resp = self.client.get(f"/api/events/{random.choice(EVENT_IDS)}",
                headers=self.headers,
                name="/api/events/{id}")
            if resp.status_code == 200:
                for pregame in resp.json()["pregames"]:
                    if pregame["id"] not in PREGAME_IDS:
                        PREGAME_IDS.append(pregame["id"])

    @task(10)
    def join_pregame(self):
        if PREGAME_IDS and self.headers:
            pregame_id = random.choice(PREGAME_IDS)
            action = random.choice(["join", "request"])
            self.client.post(f"/api/pregames/{pregame_id}/{action}",
                json=JOIN_INFO,
                headers=self.headers,
                name=f"/api/pregames/{{id}}/{action}")

    @task(3)
    def create_pregame(self):
        if not self.headers:
            return
        future = (datetime.now(timezone.utc) + timedelta(hours=random.randint(1, 12))).isoformat()
        if random.random() < 0.3 or not EVENT_IDS:
            resp = self.client.post("/api/events", json={
                "title": f"Event {random.randint(1, 10000)}",
                "date": future,
                "location": "Memorial Union",
                "category": random.choice(["Party", "Bar/Club", "Game", "Concert", "House Event"]),
            }, headers=self.headers)
            if resp.status_code == 201:
                EVENT_IDS.append(resp.json()["id"])
        if EVENT_IDS:
            resp = self.client.post("/api/pregames", json={
                "event_id": random.choice(EVENT_IDS),
                "title": f"Pregame {random.randint(1, 10000)}",
                "meeting_time": future,
                "meeting_location": "Langdon St",
                "access_type": random.choice(["OPEN", "REQUEST_ONLY"]),
                "capacity": random.choice([None, 5, 10, 25]),
                "phone_number": "(608) 555-0100",
            }, headers=self.headers)
            if resp.status_code == 201:
                PREGAME_IDS.append(resp.json()["id"])
