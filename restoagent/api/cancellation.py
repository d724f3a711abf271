"""Self-service cancellation through the SMS link"""

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException
import structlog

from restoagent.booking import ReservationStore
from restoagent.dependencies import get_clock, get_store
from restoagent.models import Reservation, ReservationStatus
from restoagent.notifications.sms import SMSNotifier, get_notifier
from restoagent.schemas.reservation import (
    CancellationResponse,
    CancellationView,
    ReservationResponse,
)

router = APIRouter()
logger = structlog.get_logger()


async def _get_by_token(store: ReservationStore, token: str) -> Reservation:
    reservation = await store.get_reservation_by_token(token)
    if not reservation:
        raise HTTPException(status_code=404, detail="Réservation non trouvée")
    return reservation


@router.get("/{token}", response_model=CancellationView)
async def get_cancellation(
    token: str,
    store: ReservationStore = Depends(get_store),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Reservation summary for the cancellation page"""
    reservation = await _get_by_token(store, token)
    restaurant = await store.get_restaurant(reservation.restaurant_id)

    return CancellationView(
        reservation=ReservationResponse.model_validate(reservation),
        restaurant_name=restaurant.name if restaurant else "",
        can_cancel=(
            reservation.status != ReservationStatus.CANCELLED.value
            and reservation.reservation_date >= clock().date()
        ),
    )


@router.post("/{token}", response_model=CancellationResponse)
async def cancel_by_token(
    token: str,
    store: ReservationStore = Depends(get_store),
    notifier: SMSNotifier = Depends(get_notifier),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Cancel a reservation from its link; past or already cancelled ones are refused"""
    reservation = await _get_by_token(store, token)

    if reservation.status == ReservationStatus.CANCELLED.value:
        raise HTTPException(status_code=400, detail="Cette réservation a déjà été annulée")

    if reservation.reservation_date < clock().date():
        raise HTTPException(status_code=400, detail="Impossible d'annuler une réservation passée")

    reservation.status = ReservationStatus.CANCELLED.value
    await store.commit()

    logger.info("Reservation cancelled by customer", reservation_id=str(reservation.id))

    restaurant = await store.get_restaurant(reservation.restaurant_id)
    if restaurant and restaurant.sms_enabled:
        try:
            result = await notifier.send_cancellation_confirmation(
                phone=reservation.customer_phone,
                restaurant_name=restaurant.name,
                reservation_date=reservation.reservation_date,
                reservation_time=reservation.reservation_time,
            )
            if not result.success:
                logger.warning(
                    "Cancellation SMS not sent",
                    reservation_id=str(reservation.id),
                    error=result.error,
                )
        except Exception as e:
            logger.error(
                "Failed to send cancellation SMS",
                reservation_id=str(reservation.id),
                error=str(e),
            )

    return CancellationResponse(
        success=True,
        message="Votre réservation a bien été annulée",
        reservation=ReservationResponse.model_validate(reservation),
    )
