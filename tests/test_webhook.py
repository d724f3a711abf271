"""Tests for the Vapi webhook"""

import asyncio
import json
import time

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from restoagent.config import settings
from restoagent.models import Call, Reservation
from restoagent.schemas.tools import ToolSuccess
from restoagent.tools.handlers import ReservationTools


def tool_calls_message(*tool_calls, assistant_metadata=None, call=None, metadata=None):
    message = {
        "type": "tool-calls",
        "toolCalls": list(tool_calls),
        "call": call or {"id": "call-123", "customer": {"number": "+33698765432"}},
    }
    if assistant_metadata is not None:
        message["assistant"] = {"id": "asst-1", "metadata": assistant_metadata}
    if metadata is not None:
        message["metadata"] = metadata
    return {"message": message}


def tool_call(call_id, name, arguments):
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}


@pytest.mark.asyncio
async def test_tool_calls_string_and_object_arguments(client: AsyncClient, test_restaurant):
    """Test one result per tool call, whatever the argument encoding"""
    availability = {"date": "2025-01-20", "time": "19:00", "number_of_guests": 2}
    payload = tool_calls_message(
        tool_call("tc-1", "check_availability", json.dumps(availability)),
        tool_call("tc-2", "check_availability", availability),
        assistant_metadata={"restaurant_id": str(test_restaurant.id)},
    )

    response = await client.post("/webhooks/vapi", json=payload)

    assert response.status_code == 200
    results = response.json()["results"]
    assert [result["toolCallId"] for result in results] == ["tc-1", "tc-2"]
    assert all(result["result"].startswith("Oui, nous avons de la disponibilité") for result in results)


@pytest.mark.asyncio
async def test_get_current_date_returns_json(client: AsyncClient):
    """Test get_current_date works without a restaurant and answers JSON"""
    payload = tool_calls_message(tool_call("tc-1", "get_current_date", "{}"))

    response = await client.post("/webhooks/vapi", json=payload)

    result = json.loads(response.json()["results"][0]["result"])
    assert result["current_date"] == "2025-01-14"
    assert result["day_of_week"] == "mardi"
    assert result["tomorrow_date"] == "2025-01-15"


@pytest.mark.asyncio
async def test_restaurant_id_from_arguments_wins(client: AsyncClient, test_restaurant):
    """Test arguments take precedence over assistant metadata"""
    payload = tool_calls_message(
        tool_call(
            "tc-1",
            "get_restaurant_info",
            {"restaurant_id": "00000000-0000-0000-0000-000000000000"},
        ),
        assistant_metadata={"restaurant_id": str(test_restaurant.id)},
    )

    response = await client.post("/webhooks/vapi", json=payload)

    assert response.json()["results"][0]["result"] == "Restaurant non trouvé"


@pytest.mark.asyncio
async def test_restaurant_id_from_call_metadata(client: AsyncClient, test_restaurant):
    """Test call metadata is used when the assistant has none"""
    payload = tool_calls_message(
        tool_call("tc-1", "get_restaurant_info", {}),
        call={"id": "call-123", "metadata": {"restaurant_id": str(test_restaurant.id)}},
        metadata={"restaurant_id": "00000000-0000-0000-0000-000000000000"},
    )

    response = await client.post("/webhooks/vapi", json=payload)

    assert response.json()["results"][0]["result"].startswith("L'Épicurie")


@pytest.mark.asyncio
async def test_missing_restaurant_id(client: AsyncClient):
    """Test a tool call without any restaurant id"""
    payload = tool_calls_message(tool_call("tc-1", "check_availability", {"date": "2025-01-20"}))

    response = await client.post("/webhooks/vapi", json=payload)

    assert response.status_code == 200
    assert response.json()["results"][0] == {
        "toolCallId": "tc-1",
        "result": "Erreur: restaurant_id manquant",
    }


@pytest.mark.asyncio
async def test_unreadable_arguments(client: AsyncClient, test_restaurant):
    """Test malformed JSON arguments answer that tool call only"""
    payload = tool_calls_message(
        tool_call("tc-1", "check_availability", "{not json"),
        tool_call("tc-2", "get_current_date", "{}"),
        assistant_metadata={"restaurant_id": str(test_restaurant.id)},
    )

    response = await client.post("/webhooks/vapi", json=payload)

    results = response.json()["results"]
    assert results[0]["result"].startswith("Paramètres invalides")
    assert json.loads(results[1]["result"])["current_date"] == "2025-01-14"


@pytest.mark.asyncio
async def test_unknown_tool(client: AsyncClient, test_restaurant):
    """Test an unknown tool name"""
    payload = tool_calls_message(
        tool_call("tc-1", "order_pizza", {}),
        assistant_metadata={"restaurant_id": str(test_restaurant.id)},
    )

    response = await client.post("/webhooks/vapi", json=payload)

    assert response.json()["results"][0]["result"] == "Fonction inconnue: order_pizza"


@pytest.mark.asyncio
async def test_slow_tool_calls_share_one_deadline(client: AsyncClient, test_restaurant, monkeypatch):
    """Test several slow calls in one message cannot outlast the request deadline"""

    async def slow_info(self, arguments):
        await asyncio.sleep(0.25)
        return ToolSuccess(message="ok")

    monkeypatch.setattr(settings, "tool_timeout_seconds", 0.3)
    monkeypatch.setattr(ReservationTools, "get_restaurant_info", slow_info)
    payload = tool_calls_message(
        *[tool_call(f"tc-{i}", "get_restaurant_info", {}) for i in range(4)],
        assistant_metadata={"restaurant_id": str(test_restaurant.id)},
    )

    started = time.monotonic()
    response = await client.post("/webhooks/vapi", json=payload)
    elapsed = time.monotonic() - started

    results = response.json()["results"]
    assert elapsed < 0.6
    assert [result["toolCallId"] for result in results] == ["tc-0", "tc-1", "tc-2", "tc-3"]
    assert results[0]["result"] == "ok"
    assert all(result["result"].startswith("ERREUR_TECHNIQUE") for result in results[1:])


@pytest.mark.asyncio
async def test_legacy_function_call(client: AsyncClient, test_restaurant):
    """Test the legacy functionCall envelope with parameters"""
    payload = {
        "message": {
            "type": "function-call",
            "functionCall": {
                "name": "check_availability",
                "parameters": {"date": "2025-01-20", "time": "12:30", "number_of_guests": 3},
            },
            "assistant": {"metadata": {"restaurant_id": str(test_restaurant.id)}},
        }
    }

    response = await client.post("/webhooks/vapi", json=payload)

    assert response.status_code == 200
    assert "pour le déjeuner" in response.json()["results"][0]["result"]


@pytest.mark.asyncio
async def test_invalid_body(client: AsyncClient):
    """Test a body that is not a Vapi envelope"""
    not_json = await client.post(
        "/webhooks/vapi",
        content=b"not json",
        headers={"content-type": "application/json"},
    )
    no_message = await client.post("/webhooks/vapi", json={"hello": "world"})

    assert not_json.status_code == 500
    assert no_message.status_code == 500


@pytest.mark.asyncio
async def test_unhandled_event(client: AsyncClient):
    """Test events the backend does not act on are acknowledged"""
    response = await client.post("/webhooks/vapi", json={"message": {"type": "speech-update"}})

    assert response.status_code == 200
    assert response.json() == {"received": True}


@pytest.mark.asyncio
async def test_webhook_secret(client: AsyncClient, monkeypatch):
    """Test the x-vapi-secret header when a secret is configured"""
    monkeypatch.setattr(settings, "vapi_webhook_secret", "s3cret")
    payload = {"message": {"type": "speech-update"}}

    missing = await client.post("/webhooks/vapi", json=payload)
    wrong = await client.post("/webhooks/vapi", json=payload, headers={"x-vapi-secret": "nope"})
    right = await client.post("/webhooks/vapi", json=payload, headers={"x-vapi-secret": "s3cret"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert right.status_code == 200


@pytest.mark.asyncio
async def test_call_lifecycle(client: AsyncClient, test_db, test_restaurant):
    """Test a call is recorded, linked to its reservation, then completed"""
    call = {
        "id": "call-456",
        "customer": {"number": "+33698765432"},
        "metadata": {"restaurant_id": str(test_restaurant.id)},
        "startedAt": "2025-01-14T09:00:00Z",
    }

    started = await client.post(
        "/webhooks/vapi",
        json={"message": {"type": "status-update", "status": "in-progress", "call": call}},
    )
    # A repeated event does not create a second record
    await client.post(
        "/webhooks/vapi",
        json={"message": {"type": "status-update", "status": "in-progress", "call": call}},
    )
    assert started.json() == {"received": True}

    booked = await client.post(
        "/webhooks/vapi",
        json=tool_calls_message(
            tool_call(
                "tc-1",
                "create_reservation",
                {
                    "customer_name": "Marie Martin",
                    "date": "2025-01-20",
                    "time": "20:00",
                    "number_of_guests": 2,
                },
            ),
            call=call,
        ),
    )
    assert "Parfait" in booked.json()["results"][0]["result"]

    ended = await client.post(
        "/webhooks/vapi",
        json={
            "message": {
                "type": "end-of-call-report",
                "call": {**call, "endedAt": "2025-01-14T09:03:30Z"},
                "transcript": "Bonjour, je voudrais réserver...",
                "summary": "Réservation pour 2 personnes",
            }
        },
    )
    assert ended.json() == {"received": True}

    calls = (await test_db.execute(select(Call))).scalars().all()
    assert len(calls) == 1
    recorded = calls[0]
    assert recorded.status == "completed"
    assert recorded.duration_seconds == 210
    assert recorded.summary == "Réservation pour 2 personnes"

    reservation = (await test_db.execute(select(Reservation))).scalar_one()
    assert reservation.call_id == recorded.id
    # The caller's number fills in a phone the agent did not ask for
    assert reservation.customer_phone == "+33698765432"


@pytest.mark.asyncio
async def test_call_started_without_restaurant(client: AsyncClient, test_db):
    """Test a call without a restaurant id is acknowledged but not recorded"""
    response = await client.post(
        "/webhooks/vapi",
        json={"message": {"type": "call-started", "call": {"id": "call-789"}}},
    )

    assert response.json() == {"received": True, "warning": "restaurant_id missing"}
    assert (await test_db.execute(select(Call))).scalars().all() == []
