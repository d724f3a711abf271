"""Tests for self-service cancellation links"""

from datetime import date

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_get_cancellation(client: AsyncClient, make_reservation):
    """Test the cancellation page summary"""
    reservation = await make_reservation()

    response = await client.get(f"/cancel/{reservation.cancellation_token}")

    assert response.status_code == 200
    data = response.json()
    assert data["restaurant_name"] == "L'Épicurie"
    assert data["can_cancel"] is True
    assert data["reservation"]["id"] == str(reservation.id)
    assert data["reservation"]["reservation_time"] == "19:00"


@pytest.mark.asyncio
async def test_get_cancellation_unknown_token(client: AsyncClient):
    """Test an unknown token"""
    response = await client.get("/cancel/unknown-token")

    assert response.status_code == 404
    assert response.json()["detail"] == "Réservation non trouvée"


@pytest.mark.asyncio
async def test_cancel_by_token(client: AsyncClient, notifier, make_reservation):
    """Test cancelling from the link sends a confirmation SMS"""
    reservation = await make_reservation(customer_phone="+33698765432")

    response = await client.post(f"/cancel/{reservation.cancellation_token}")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Votre réservation a bien été annulée"
    assert data["reservation"]["status"] == "cancelled"
    assert reservation.status == "cancelled"

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["to"] == "+33698765432"
    assert "a été annulée" in notifier.sent[0]["body"]


@pytest.mark.asyncio
async def test_cancel_by_token_twice(client: AsyncClient, make_reservation):
    """Test a cancelled reservation cannot be cancelled again"""
    reservation = await make_reservation()

    await client.post(f"/cancel/{reservation.cancellation_token}")
    response = await client.post(f"/cancel/{reservation.cancellation_token}")

    assert response.status_code == 400
    assert response.json()["detail"] == "Cette réservation a déjà été annulée"


@pytest.mark.asyncio
async def test_cancel_past_reservation(client: AsyncClient, make_reservation):
    """Test reservations before today cannot be cancelled"""
    reservation = await make_reservation(reservation_date=date(2025, 1, 10))

    page = await client.get(f"/cancel/{reservation.cancellation_token}")
    response = await client.post(f"/cancel/{reservation.cancellation_token}")

    assert page.json()["can_cancel"] is False
    assert response.status_code == 400
    assert response.json()["detail"] == "Impossible d'annuler une réservation passée"
    assert reservation.status == "confirmed"


@pytest.mark.asyncio
async def test_cancel_today(client: AsyncClient, make_reservation):
    """Test a reservation for today can still be cancelled"""
    reservation = await make_reservation(reservation_date=date(2025, 1, 14))

    response = await client.post(f"/cancel/{reservation.cancellation_token}")

    assert response.status_code == 200
