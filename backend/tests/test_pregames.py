"""
Tests for pregame endpoints: hosting, open joins and the request/approve workflow.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from madsocial.models.pregame import AccessType


def pregame_payload(event_id: int, **overrides) -> dict:
    payload = {
        "event_id": event_id,
        "title": "Pregame at the Langdon house",
        "description": "Lawn games before kickoff",
        "meeting_time": (datetime.now(timezone.utc) + timedelta(hours=3)).isoformat(),
        "meeting_location": "Langdon St",
        "access_type": "OPEN",
        "capacity": 10,
        "phone_number": "(608) 555-0199",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_pregame(client: AsyncClient, host_headers, host_user, test_event):
    """Host creates a pregame with an empty attendee set."""
    response = await client.post(
        "/api/pregames",
        json=pregame_payload(test_event.id),
        headers=host_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["event_id"] == test_event.id
    assert data["host_id"] == host_user.id
    assert data["attendee_count"] == 0
    assert data["capacity"] == 10


@pytest.mark.asyncio
async def test_create_pregame_unlimited_capacity(client: AsyncClient, host_headers, test_event):
    response = await client.post(
        "/api/pregames",
        json=pregame_payload(test_event.id, capacity=None),
        headers=host_headers,
    )
    assert response.status_code == 201
    assert response.json()["capacity"] is None


@pytest.mark.asyncio
async def test_create_pregame_zero_capacity(client: AsyncClient, host_headers, test_event):
    response = await client.post(
        "/api/pregames",
        json=pregame_payload(test_event.id, capacity=0),
        headers=host_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_pregame_past_meeting_time(client: AsyncClient, host_headers, test_event):
    """Meeting time in the past returns 400."""
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    response = await client.post(
        "/api/pregames",
        json=pregame_payload(test_event.id, meeting_time=past),
        headers=host_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Meeting time must be in the future"


@pytest.mark.asyncio
async def test_create_pregame_meeting_time_normalized_to_utc(client: AsyncClient, host_headers, test_event):
    meeting_utc = (datetime.now(timezone.utc) + timedelta(days=1)).replace(microsecond=0)
    local = meeting_utc.astimezone(timezone(timedelta(hours=-5)))

    response = await client.post(
        "/api/pregames",
        json=pregame_payload(test_event.id, meeting_time=local.isoformat()),
        headers=host_headers,
    )
    assert response.status_code == 201
    stored = datetime.fromisoformat(response.json()["meeting_time"].replace("Z", "+00:00"))
    if stored.tzinfo is None:
        stored = stored.replace(tzinfo=timezone.utc)
    assert stored == meeting_utc


@pytest.mark.asyncio
async def test_create_pregame_nonexistent_event(client: AsyncClient, host_headers):
    """Pregame for a non-existent event returns 404."""
    response = await client.post(
        "/api/pregames",
        json=pregame_payload(99999),
        headers=host_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_pregame_unauthenticated(client: AsyncClient, test_event):
    response = await client.post("/api/pregames", json=pregame_payload(test_event.id))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_event_pregames(client: AsyncClient, auth_headers, test_event, make_pregame, host_user):
    pregame = await make_pregame(test_event, host_user, capacity=5)

    response = await client.get(f"/api/pregames/event/{test_event.id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["id"] == pregame.id
    assert data[0]["is_full"] is False
    assert data[0]["requests_pending"] is None


@pytest.mark.asyncio
async def test_list_pregames_nonexistent_event(client: AsyncClient, auth_headers):
    response = await client.get("/api/pregames/event/99999", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_join_open_pregame(
    client: AsyncClient, auth_headers, test_user, test_event, make_pregame, host_user, join_info,
    fetch_attendee_ids, fetch_join_requests,
):
    """Joining an OPEN pregame adds the user and records an approved request."""
    pregame = await make_pregame(test_event, host_user, capacity=3)

    response = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Successfully joined pregame"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == {test_user.id}
    assert count == 1

    requests = await fetch_join_requests(pregame.id)
    assert len(requests) == 1
    assert requests[0].status == "APPROVED"
    assert requests[0].bringing == ["chips", "speaker"]


@pytest.mark.asyncio
async def test_join_full_pregame(
    client: AsyncClient, test_event, make_pregame, make_user, host_user, headers_for, join_info,
    fetch_attendee_ids,
):
    """Second join on a capacity-1 pregame fails and leaves the attendee set alone."""
    pregame = await make_pregame(test_event, host_user, capacity=1)
    first = await make_user(name="First")
    second = await make_user(name="Second")

    response1 = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=headers_for(first))
    assert response1.status_code == 200

    response2 = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=headers_for(second))
    assert response2.status_code == 400
    assert response2.json()["code"] == "capacity_exceeded"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == {first.id}
    assert count == 1


@pytest.mark.asyncio
async def test_join_twice(client: AsyncClient, auth_headers, test_event, make_pregame, host_user, join_info):
    """Joining a pregame you already attend is a conflict."""
    pregame = await make_pregame(test_event, host_user)

    response1 = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=auth_headers)
    assert response1.status_code == 200

    response2 = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=auth_headers)
    assert response2.status_code == 400
    assert response2.json()["code"] == "conflict"


@pytest.mark.asyncio
async def test_join_request_only_pregame(
    client: AsyncClient, auth_headers, test_event, make_pregame, host_user, join_info,
    fetch_attendee_ids, fetch_join_requests,
):
    """Join on a REQUEST_ONLY pregame is rejected without side effects."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)

    response = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_state"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == set()
    assert count == 0
    assert await fetch_join_requests(pregame.id) == []


@pytest.mark.asyncio
async def test_host_cannot_join_own_pregame(client: AsyncClient, host_headers, test_event, make_pregame, host_user, join_info):
    pregame = await make_pregame(test_event, host_user)

    response = await client.post(f"/api/pregames/{pregame.id}/join", json=join_info, headers=host_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "conflict"


@pytest.mark.asyncio
async def test_join_nonexistent_pregame(client: AsyncClient, auth_headers, join_info):
    response = await client.post("/api/pregames/99999/join", json=join_info, headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_join_missing_phone_number(client: AsyncClient, auth_headers, test_event, make_pregame, host_user):
    pregame = await make_pregame(test_event, host_user)

    response = await client.post(
        f"/api/pregames/{pregame.id}/join",
        json={"bringing": [], "group_size": 1},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_request_to_join(
    client: AsyncClient, auth_headers, test_user, test_event, make_pregame, host_user, join_info,
    fetch_attendee_ids,
):
    """A request on a REQUEST_ONLY pregame is PENDING and does not add the user."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)

    response = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["user_id"] == test_user.id
    assert data["group_size"] == 2

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == set()
    assert count == 0


@pytest.mark.asyncio
async def test_request_on_open_pregame(client: AsyncClient, auth_headers, test_event, make_pregame, host_user, join_info):
    pregame = await make_pregame(test_event, host_user)

    response = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_state"


@pytest.mark.asyncio
async def test_duplicate_pending_request(client: AsyncClient, auth_headers, test_event, make_pregame, host_user, join_info):
    """A second request while one is pending is a conflict."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)

    response1 = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    assert response1.status_code == 201

    response2 = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    assert response2.status_code == 400
    assert response2.json()["detail"] == "You already have a pending request for this pregame"


@pytest.mark.asyncio
async def test_approve_request(
    client: AsyncClient, auth_headers, host_headers, test_user, test_event, make_pregame, host_user,
    join_info, fetch_attendee_ids,
):
    """Approval adds the requester; approving again is rejected."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY, capacity=2)
    request_id = (
        await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    ).json()["id"]

    response = await client.post(
        f"/api/pregames/{pregame.id}/approve",
        json={"request_id": request_id},
        headers=host_headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Join request approved"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == {test_user.id}
    assert count == 1

    again = await client.post(
        f"/api/pregames/{pregame.id}/approve",
        json={"request_id": request_id},
        headers=host_headers,
    )
    assert again.status_code == 400
    assert again.json()["code"] == "invalid_state"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert count == 1


@pytest.mark.asyncio
async def test_approve_when_full(
    client: AsyncClient, host_headers, test_event, make_pregame, make_user, host_user, headers_for,
    join_info, fetch_attendee_ids, fetch_join_requests,
):
    """Capacity is checked at approval time; the losing request stays pending."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY, capacity=1)
    first = await make_user(name="First")
    second = await make_user(name="Second")

    ids = []
    for user in (first, second):
        response = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=headers_for(user))
        ids.append(response.json()["id"])

    ok = await client.post(f"/api/pregames/{pregame.id}/approve", json={"request_id": ids[0]}, headers=host_headers)
    assert ok.status_code == 200

    full = await client.post(f"/api/pregames/{pregame.id}/approve", json={"request_id": ids[1]}, headers=host_headers)
    assert full.status_code == 400
    assert full.json()["code"] == "capacity_exceeded"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == {first.id}
    assert count == 1
    statuses = {r.id: r.status for r in await fetch_join_requests(pregame.id)}
    assert statuses == {ids[0]: "APPROVED", ids[1]: "PENDING"}


@pytest.mark.asyncio
async def test_approve_by_non_host(client: AsyncClient, auth_headers, test_event, make_pregame, host_user, make_user, headers_for, join_info):
    """Only the host can approve."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)
    requester = await make_user()
    request_id = (
        await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=headers_for(requester))
    ).json()["id"]

    response = await client.post(
        f"/api/pregames/{pregame.id}/approve",
        json={"request_id": request_id},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_approve_unknown_request(client: AsyncClient, host_headers, test_event, make_pregame, host_user):
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)

    response = await client.post(
        f"/api/pregames/{pregame.id}/approve",
        json={"request_id": 99999},
        headers=host_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_approve_request_from_other_pregame(
    client: AsyncClient, auth_headers, host_headers, test_event, make_pregame, host_user, join_info
):
    """A request id is only valid under the pregame it was filed for."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)
    other = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY, title="Other")
    request_id = (
        await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    ).json()["id"]

    response = await client.post(
        f"/api/pregames/{other.id}/approve",
        json={"request_id": request_id},
        headers=host_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_decline_request(
    client: AsyncClient, auth_headers, host_headers, test_event, make_pregame, host_user, join_info,
    fetch_attendee_ids,
):
    """Declining leaves the attendee set alone and lets the user ask again."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)
    request_id = (
        await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    ).json()["id"]

    response = await client.post(
        f"/api/pregames/{pregame.id}/decline",
        json={"request_id": request_id},
        headers=host_headers,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Join request declined"

    attendees, count = await fetch_attendee_ids(pregame.id)
    assert attendees == set()
    assert count == 0

    # Declined twice
    again = await client.post(
        f"/api/pregames/{pregame.id}/decline",
        json={"request_id": request_id},
        headers=host_headers,
    )
    assert again.status_code == 400

    retry = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    assert retry.status_code == 201
    assert retry.json()["id"] != request_id


@pytest.mark.asyncio
async def test_approve_after_decline(client: AsyncClient, auth_headers, host_headers, test_event, make_pregame, host_user, join_info):
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY)
    request_id = (
        await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=auth_headers)
    ).json()["id"]
    await client.post(f"/api/pregames/{pregame.id}/decline", json={"request_id": request_id}, headers=host_headers)

    response = await client.post(
        f"/api/pregames/{pregame.id}/approve",
        json={"request_id": request_id},
        headers=host_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_state"


@pytest.mark.asyncio
async def test_host_view(
    client: AsyncClient, host_headers, test_event, make_pregame, make_user, host_user, headers_for, join_info
):
    """Host sees attendees with contact info and pending requests in filing order."""
    pregame = await make_pregame(test_event, host_user, access_type=AccessType.REQUEST_ONLY, capacity=4)
    approved, waiting_1, waiting_2 = [await make_user(name=n) for n in ("Approved", "Waiting 1", "Waiting 2")]

    ids = {}
    for user in (approved, waiting_1, waiting_2):
        response = await client.post(f"/api/pregames/{pregame.id}/request", json=join_info, headers=headers_for(user))
        ids[user.id] = response.json()["id"]
    await client.post(f"/api/pregames/{pregame.id}/approve", json={"request_id": ids[approved.id]}, headers=host_headers)

    response = await client.get(f"/api/pregames/{pregame.id}/host", headers=host_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["attendee_count"] == 1
    assert [a["id"] for a in data["attendees"]] == [approved.id]
    assert data["attendees"][0]["email"] == approved.email
    assert [r["id"] for r in data["pending_requests"]] == [ids[waiting_1.id], ids[waiting_2.id]]
    assert data["pending_requests"][0]["user"]["name"] == "Waiting 1"
    assert data["pending_requests"][0]["phone_number"] == "(608) 555-1234"


@pytest.mark.asyncio
async def test_host_view_non_host(client: AsyncClient, auth_headers, test_event, make_pregame, host_user):
    pregame = await make_pregame(test_event, host_user)

    response = await client.get(f"/api/pregames/{pregame.id}/host", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_pregames(
    client: AsyncClient, auth_headers, test_user, test_event, make_pregame, host_user, join_info
):
    """A user sees pregames they host and pregames they attend."""
    joined = await make_pregame(test_event, host_user, title="Joined")
    await make_pregame(test_event, host_user, title="Not joined")
    mine = await make_pregame(test_event, test_user, title="Mine")
    await client.post(f"/api/pregames/{joined.id}/join", json=join_info, headers=auth_headers)

    response = await client.get("/api/users/me/pregames", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert [p["id"] for p in data["hosting"]] == [mine.id]
    assert [p["id"] for p in data["attending"]] == [joined.id]
    assert data["attending"][0]["attendees"][0]["id"] == test_user.id
