"""
Reservation tools called by the voice agent.

Every handler takes the raw argument dict sent by the agent and returns a
ToolSuccess or a ToolFailure; nothing raises past the handler boundary.
Agent-facing messages are French and templated.
"""

import functools
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Type, Union

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from restoagent.booking import (
    AvailabilityReason,
    ReservationStore,
    TransferReason,
    add_to_waitlist,
    check_availability,
    check_duplicate,
    convert_waitlist_entry,
    detect_privatization_request,
    detect_transfer_request,
    evaluate_transfer,
    find_alternatives,
    format_alternatives_message,
    parse_uuid,
)
from restoagent.booking.availability import AvailabilityResult, RESTAURANT_NOT_FOUND
from restoagent.config import settings
from restoagent.errors import graceful_error_message, log_technical_error
from restoagent.models import (
    Reservation,
    ReservationSource,
    ReservationStatus,
    Restaurant,
    WaitlistStatus,
)
from restoagent.notifications.sms import SMSNotifier
from restoagent.schemas.reservation import ReservationResponse
from restoagent.schemas.restaurant import SERVICE_LABELS_FR, RestaurantSchedule, ServiceType, Weekday
from restoagent.schemas.tools import (
    AddToWaitlistArgs,
    CancelReservationArgs,
    CheckAvailabilityArgs,
    CreateReservationArgs,
    FailureKind,
    FindAndUpdateReservationArgs,
    FindReservationArgs,
    ToolArgs,
    ToolFailure,
    ToolResult,
    ToolSuccess,
    TransferCallArgs,
)
from restoagent.utils.dates import (
    JOURS_FR_FULL,
    format_date_fr,
    format_date_long_fr,
    format_time,
    format_time_fr,
    guests_label,
    local_now,
    parse_date,
    parse_time,
)
from restoagent.utils.phone import format_phone_e164, is_valid_phone, mask_phone

logger = structlog.get_logger()

MISSING_RESTAURANT_MESSAGE = "Erreur: restaurant_id manquant"

FIELD_LABELS_FR = {
    "customer_name": "nom du client",
    "customer_phone": "numéro de téléphone",
    "date": "date",
    "time": "heure",
    "number_of_guests": "nombre de personnes",
}

WAITLIST_OFFER = " Je peux également vous inscrire sur notre liste d'attente si vous préférez cette date."


class InvalidToolArguments(Exception):
    """Arguments are present but unusable (bad date, negative party size...)"""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}


def _validation_failure(error: ValidationError) -> ToolFailure:
    fields = [".".join(str(part) for part in err["loc"]) for err in error.errors()]
    return ToolFailure(
        kind=FailureKind.VALIDATION,
        message=f"Paramètres invalides: {', '.join(fields)}",
        data={"invalid_fields": fields},
    )


def tool_handler(args_model: Type[ToolArgs], requires_restaurant: bool = True):
    """
    Validate raw arguments into `args_model` and convert failures into results.

    Validation problems become VALIDATION failures. Any other exception is a
    downstream failure: logged with full context, session rolled back, and a
    graceful apology returned instead.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, raw_args: Optional[Dict[str, Any]] = None) -> ToolResult:
            raw_args = raw_args or {}
            try:
                args = args_model.model_validate(raw_args)
            except ValidationError as e:
                logger.info("Invalid tool arguments", tool=func.__name__, errors=e.error_count())
                return _validation_failure(e)

            if requires_restaurant and not args.restaurant_id:
                return ToolFailure(kind=FailureKind.VALIDATION, message=MISSING_RESTAURANT_MESSAGE)

            logger.info(
                "Tool called",
                tool=func.__name__,
                restaurant_id=args.restaurant_id,
                call_id=args.call_id,
            )

            try:
                return await func(self, args)
            except InvalidToolArguments as e:
                return ToolFailure(kind=FailureKind.VALIDATION, message=e.message, data=e.data)
            except Exception as e:
                log_technical_error(
                    e,
                    function_name=func.__name__,
                    parameters=raw_args,
                    restaurant_id=args.restaurant_id,
                    call_id=args.call_id,
                )
                await self.rollback_quietly()
                return ToolFailure(
                    kind=FailureKind.DOWNSTREAM,
                    message=graceful_error_message(func.__name__),
                )

        return wrapper

    return decorator


def _missing_fields(args: BaseModel, fields: List[str]) -> List[str]:
    missing = []
    for field in fields:
        value = getattr(args, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(FIELD_LABELS_FR[field])
    return missing


def _require(args: BaseModel, fields: List[str], purpose: str) -> None:
    missing = _missing_fields(args, fields)
    if missing:
        raise InvalidToolArguments(
            f"Il me manque des informations pour {purpose} : {', '.join(missing)}. "
            "Pouvez-vous me les donner ?",
            data={"missing_fields": missing},
        )


def _parse_date_arg(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError:
        raise InvalidToolArguments(
            f"La date « {value} » n'est pas valide. Pouvez-vous me la redonner ?",
            data={"invalid_fields": ["date"]},
        )


def _parse_time_arg(value: str) -> time:
    try:
        return parse_time(value)
    except ValueError:
        raise InvalidToolArguments(
            f"L'heure « {value} » n'est pas valide. Pouvez-vous me la redonner ?",
            data={"invalid_fields": ["time"]},
        )


def _check_guests(guests: int) -> int:
    if guests < 1:
        raise InvalidToolArguments(
            "Le nombre de personnes doit être d'au moins une personne.",
            data={"invalid_fields": ["number_of_guests"]},
        )
    return guests


def _sorry(reason: str) -> str:
    return f"Désolé, {reason[:1].lower()}{reason[1:]}."


def reservation_payload(reservation: Reservation) -> Dict[str, Any]:
    return ReservationResponse.model_validate(reservation).model_dump(mode="json")


def confidence_score(args: CreateReservationArgs, today: date) -> float:
    """
    How trustworthy the extracted fields look, between 0 and 1.

    0.3 for required fields present (pro rata), 0.2 for a plausible phone,
    0.15 for a name of 2+ characters, 0.15 for a date not in the past and 0.2
    for a party of 1 to 20.
    """
    required = [
        args.customer_name,
        args.customer_phone,
        args.date,
        args.time,
        args.number_of_guests,
    ]
    filled = [value for value in required if value is not None and value != ""]
    score = len(filled) / len(required) * 0.3

    if is_valid_phone(args.customer_phone):
        score += 0.2

    if args.customer_name and len(args.customer_name.strip()) >= 2:
        score += 0.15

    if args.date:
        try:
            if parse_date(args.date) >= today:
                score += 0.15
        except ValueError:
            pass

    if args.number_of_guests is not None and 1 <= args.number_of_guests <= 20:
        score += 0.2

    return round(min(score, 1.0), 4)


def _date_reference(on_date: date, today: date) -> str:
    if on_date == today:
        return "aujourd'hui"
    if on_date == today + timedelta(days=1):
        return "demain"
    return f"le {format_date_fr(on_date)}"


def describe_opening_hours(schedule: RestaurantSchedule) -> str:
    """lundi: midi 12h-14h30, soir 19h-22h30; mardi: ..."""
    days = []
    for weekday in Weekday:
        day = schedule.opening_hours.get(weekday)
        label = JOURS_FR_FULL[list(Weekday).index(weekday)]
        if day is None or day.is_closed:
            days.append(f"{label}: fermé")
            continue
        services = [
            f"{SERVICE_LABELS_FR[service_type]} {format_time_fr(window.start)}-{format_time_fr(window.end)}"
            for service_type, window in day.windows()
        ]
        days.append(f"{label}: {', '.join(services)}")
    return "; ".join(days)


class ReservationTools:
    """Tool handlers bound to one request's store and notifier"""

    def __init__(
        self,
        store: ReservationStore,
        notifier: SMSNotifier,
        now: Callable[[], datetime] = local_now,
    ):
        self.store = store
        self.notifier = notifier
        self.now = now

    def today(self) -> date:
        return self.now().date()

    async def rollback_quietly(self) -> None:
        try:
            await self.store.rollback()
        except SQLAlchemyError as e:
            logger.error("Rollback failed", error=str(e))

    async def _unavailable(
        self,
        availability: AvailabilityResult,
        on_date: date,
        guests: int,
    ) -> ToolFailure:
        if availability.reason_code == AvailabilityReason.RESTAURANT_NOT_FOUND:
            return ToolFailure(kind=FailureKind.NOT_FOUND, message=RESTAURANT_NOT_FOUND)

        alternatives = await find_alternatives(
            self.store,
            availability.restaurant,
            on_date,
            guests,
            requested_service=availability.service_type,
        )
        message = _sorry(availability.reason)
        alternatives_message = format_alternatives_message(alternatives)
        if alternatives_message:
            message += f" {alternatives_message}"
        message += WAITLIST_OFFER

        return ToolFailure(
            kind=FailureKind.UNAVAILABLE,
            message=message,
            data={
                "reason_code": availability.reason_code.value,
                "reason": availability.reason,
                "available_capacity": availability.available_capacity,
                "offer_waitlist": True,
                "alternatives": [
                    {
                        "date": slot.date.isoformat(),
                        "service_type": slot.service_type.value,
                        "available_capacity": slot.available_capacity,
                    }
                    for slot in alternatives
                ],
            },
        )

    async def _link_call(self, vapi_call_id: Optional[str]):
        """Internal id of the call, None when unknown; never fails the caller"""
        if not vapi_call_id:
            return None
        try:
            call = await self.store.find_call_by_external_id(vapi_call_id)
        except SQLAlchemyError as e:
            logger.warning("Call lookup failed", call_id=vapi_call_id, error=str(e))
            return None
        if call is None:
            logger.info("Call not found, reservation not linked", call_id=vapi_call_id)
            return None
        return call.id

    async def _find_reservation(self, args: FindReservationArgs) -> Union[Reservation, ToolFailure, None]:
        """
        The customer's next active reservation matching the name.

        Without a phone, matches belonging to different phone numbers are
        ambiguous: the agent gets a CONFLICT asking for the number instead.
        """
        _require(args, ["customer_name"], "retrouver la réservation")
        restaurant_id = parse_uuid(args.restaurant_id)
        if restaurant_id is None:
            return None
        phone = format_phone_e164(args.customer_phone) if args.customer_phone else None
        matches = await self.store.search_active_by_name(restaurant_id, args.customer_name, phone)
        if not matches:
            return None

        if phone is None and len({m.customer_phone for m in matches}) > 1:
            logger.info("Ambiguous reservation search", restaurant_id=str(restaurant_id), matches=len(matches))
            described = ", ".join(
                f"{m.customer_name} ({format_date_fr(m.reservation_date)} à {format_time_fr(m.reservation_time)})"
                for m in matches
            )
            return ToolFailure(
                kind=FailureKind.CONFLICT,
                message=(
                    f"J'ai trouvé plusieurs réservations similaires : {described}. Pouvez-vous me "
                    "confirmer le numéro de téléphone pour identifier la bonne réservation ?"
                ),
                data={
                    "needs_clarification": True,
                    "matches": [
                        {
                            "id": str(m.id),
                            "customer_name": m.customer_name,
                            "reservation_date": m.reservation_date.isoformat(),
                            "reservation_time": m.reservation_time,
                        }
                        for m in matches
                    ],
                },
            )
        return matches[0]

    @tool_handler(ToolArgs, requires_restaurant=False)
    async def get_current_date(self, args: ToolArgs) -> ToolResult:
        """Calendar facts so the agent can ground "demain", "jeudi prochain"..."""
        now = self.now()
        today = now.date()
        tomorrow = today + timedelta(days=1)
        summary = f"Nous sommes le {format_date_long_fr(today)}"

        return ToolSuccess(
            message=summary,
            data={
                "current_date": today.isoformat(),
                "current_time": now.strftime("%H:%M"),
                "day_of_week": JOURS_FR_FULL[today.weekday()],
                "tomorrow_date": tomorrow.isoformat(),
                "tomorrow_day": JOURS_FR_FULL[tomorrow.weekday()],
                "next_week_date": (today + timedelta(days=7)).isoformat(),
                "year": today.year,
                "full_datetime": f"{format_date_long_fr(today)} à {format_time_fr(now.time())}",
            },
        )

    @tool_handler(ToolArgs)
    async def get_restaurant_info(self, args: ToolArgs) -> ToolResult:
        restaurant = await self.store.get_restaurant(args.restaurant_id)
        if restaurant is None:
            return ToolFailure(kind=FailureKind.NOT_FOUND, message=RESTAURANT_NOT_FOUND)

        schedule = RestaurantSchedule.from_restaurant(restaurant)
        upcoming_closures = sorted(d for d in schedule.closed_dates if d >= self.today())

        parts = [restaurant.name]
        if restaurant.address:
            parts.append(f"Adresse: {restaurant.address}")
        parts.append(f"Téléphone: {restaurant.phone}")
        parts.append(f"Horaires: {describe_opening_hours(schedule)}")
        if upcoming_closures:
            closures = ", ".join(format_date_fr(d) for d in upcoming_closures)
            parts.append(f"Fermetures exceptionnelles: {closures}")

        return ToolSuccess(
            message=". ".join(parts) + ".",
            data={
                "name": restaurant.name,
                "phone": restaurant.phone,
                "address": restaurant.address,
                "opening_hours": restaurant.opening_hours or {},
                "closed_dates": [d.isoformat() for d in upcoming_closures],
            },
        )

    @tool_handler(CheckAvailabilityArgs)
    async def check_availability(self, args: CheckAvailabilityArgs) -> ToolResult:
        _require(args, ["date", "time", "number_of_guests"], "vérifier la disponibilité")
        on_date = _parse_date_arg(args.date)
        at = _parse_time_arg(args.time)
        guests = _check_guests(args.number_of_guests)

        availability = await check_availability(self.store, args.restaurant_id, on_date, at, guests)
        if not availability.available:
            return await self._unavailable(availability, on_date, guests)

        service = "pour le déjeuner" if availability.service_type == ServiceType.LUNCH else "pour le dîner"
        return ToolSuccess(
            message=(
                f"Oui, nous avons de la disponibilité pour {guests_label(guests)} "
                f"le {format_date_fr(on_date)} à {format_time_fr(at)} {service}."
            ),
            data={
                "available": True,
                "service_type": availability.service_type.value,
                "available_capacity": availability.available_capacity,
            },
        )

    @tool_handler(CreateReservationArgs)
    async def create_reservation(self, args: CreateReservationArgs) -> ToolResult:
        _require(
            args,
            ["customer_name", "customer_phone", "date", "time", "number_of_guests"],
            "finaliser la réservation",
        )
        on_date = _parse_date_arg(args.date)
        at = _parse_time_arg(args.time)
        guests = _check_guests(args.number_of_guests)

        restaurant_id = parse_uuid(args.restaurant_id)
        if restaurant_id is None:
            return ToolFailure(kind=FailureKind.NOT_FOUND, message=RESTAURANT_NOT_FOUND)

        if guests > settings.large_party_threshold:
            return await self._large_party(args, restaurant_id, on_date, at, guests)

        phone = format_phone_e164(args.customer_phone)

        if args.force_create:
            logger.info("force_create set, skipping duplicate check", restaurant_id=str(restaurant_id))
        else:
            duplicate = await check_duplicate(self.store, restaurant_id, phone, on_date)
            if duplicate.has_duplicate:
                existing = duplicate.existing_reservation
                logger.info(
                    "Duplicate reservation",
                    restaurant_id=str(restaurant_id),
                    existing_reservation_id=str(existing.id),
                    phone=mask_phone(phone),
                )
                return ToolFailure(
                    kind=FailureKind.CONFLICT,
                    message=(
                        f"Vous avez déjà une table pour {_date_reference(on_date, self.today())} "
                        f"à {format_time_fr(existing.reservation_time)} pour "
                        f"{guests_label(existing.number_of_guests)}. "
                        "Souhaitez-vous la modifier ou en ajouter une autre ?"
                    ),
                    data={
                        "has_existing_reservation": True,
                        "existing_reservation": reservation_payload(existing),
                    },
                )

        # Locks the restaurant row until commit so concurrent bookings re-read capacity
        availability = await check_availability(
            self.store, restaurant_id, on_date, at, guests, lock=True
        )
        if not availability.available:
            return await self._unavailable(availability, on_date, guests)
        restaurant = availability.restaurant

        score = confidence_score(args, self.today())
        needs_confirmation = score < settings.confidence_threshold

        reservation = Reservation(
            restaurant_id=restaurant.id,
            call_id=await self._link_call(args.call_id),
            customer_name=args.customer_name.strip(),
            customer_phone=phone,
            customer_email=args.customer_email,
            reservation_date=on_date,
            reservation_time=format_time(at),
            number_of_guests=guests,
            status=ReservationStatus.PENDING.value,
            source=ReservationSource.PHONE.value,
            special_requests=args.special_requests,
            confidence_score=score,
            needs_confirmation=needs_confirmation,
        )
        self.store.add(reservation)
        await self.store.flush()

        if args.waitlist_id:
            await convert_waitlist_entry(self.store, args.waitlist_id, reservation.id)

        await self.store.commit()

        logger.info(
            "Reservation created",
            restaurant_id=str(restaurant.id),
            reservation_id=str(reservation.id),
            guests=guests,
            confidence_score=score,
            needs_confirmation=needs_confirmation,
        )

        sms_sent = False
        if restaurant.sms_enabled:
            sms_sent = await self._send_confirmation(restaurant, reservation)

        message = (
            f"Parfait ! Votre réservation est confirmée pour {guests_label(guests)} "
            f"le {format_date_fr(on_date)} à {format_time_fr(at)}."
        )
        if restaurant.sms_enabled:
            message += " Vous allez recevoir un SMS de confirmation avec un lien pour annuler si besoin."
        message += f" Numéro de réservation : {reservation.id}. À bientôt !"

        return ToolSuccess(
            message=message,
            data={
                "reservation_id": str(reservation.id),
                "confidence_score": score,
                "needs_confirmation": needs_confirmation,
                "sms_sent": sms_sent,
                "reservation": reservation_payload(reservation),
            },
        )

    async def _large_party(
        self,
        args: CreateReservationArgs,
        restaurant_id,
        on_date: date,
        at: time,
        guests: int,
    ) -> ToolResult:
        """Large parties are never booked automatically; the manager calls back"""
        logger.info("Large party, manager callback", restaurant_id=str(restaurant_id), guests=guests)

        waitlist_id = None
        try:
            result = await add_to_waitlist(
                self.store,
                restaurant_id,
                customer_name=args.customer_name.strip(),
                customer_phone=args.customer_phone,
                customer_email=args.customer_email,
                desired_date=on_date,
                desired_time=at,
                party_size=guests,
                notes=f"Grand groupe - {args.special_requests or ''}".strip(" -"),
                call_id=args.call_id,
                status=WaitlistStatus.NEEDS_MANAGER_CALL,
            )
            if result.entry is not None:
                waitlist_id = str(result.entry.id)
        except SQLAlchemyError as e:
            logger.error("Failed to record large party callback", restaurant_id=str(restaurant_id), error=str(e))
            await self.rollback_quietly()

        return ToolSuccess(
            message=(
                f"Pour les groupes de {guests} personnes, je dois prendre vos coordonnées et le "
                "gérant vous rappellera dans les 24 heures pour finaliser votre réservation et "
                "discuter des conditions. Vos coordonnées ont bien été enregistrées."
            ),
            data={
                "requires_callback": True,
                "action": "transfer_to_manager",
                "waitlist_id": waitlist_id,
            },
        )

    async def _send_confirmation(self, restaurant: Restaurant, reservation: Reservation) -> bool:
        """Best effort; a failed SMS never fails the reservation"""
        try:
            result = await self.notifier.send_confirmation(
                phone=reservation.customer_phone,
                restaurant_name=restaurant.name,
                reservation_date=reservation.reservation_date,
                reservation_time=reservation.reservation_time,
                guests=reservation.number_of_guests,
                cancellation_token=reservation.cancellation_token,
            )
            if not result.success:
                logger.warning(
                    "Confirmation SMS not sent",
                    reservation_id=str(reservation.id),
                    error=result.error,
                )
                return False

            reservation.confirmation_sent_at = datetime.now(timezone.utc).replace(tzinfo=None)
            await self.store.commit()
            return True
        except Exception as e:
            logger.error(
                "Failed to send reservation confirmation SMS",
                reservation_id=str(reservation.id),
                error=str(e),
            )
            await self.rollback_quietly()
            return False

    @tool_handler(CancelReservationArgs)
    async def cancel_reservation(self, args: CancelReservationArgs) -> ToolResult:
        """Cancel by id; cancelling twice is a success without a second write"""
        _require_reservation_id(args)

        reservation = await self.store.get_reservation(args.reservation_id)
        if reservation is None or str(reservation.restaurant_id) != str(parse_uuid(args.restaurant_id)):
            return ToolFailure(
                kind=FailureKind.NOT_FOUND,
                message="Je ne trouve pas cette réservation.",
            )

        if reservation.status == ReservationStatus.CANCELLED.value:
            return ToolSuccess(
                message="Cette réservation est déjà annulée.",
                data={"reservation_id": str(reservation.id), "already_cancelled": True},
            )

        reservation.status = ReservationStatus.CANCELLED.value
        await self.store.commit()

        logger.info("Reservation cancelled", reservation_id=str(reservation.id))

        return ToolSuccess(
            message="Réservation annulée avec succès.",
            data={"reservation_id": str(reservation.id), "already_cancelled": False},
        )

    @tool_handler(FindReservationArgs)
    async def find_and_cancel_reservation(self, args: FindReservationArgs) -> ToolResult:
        reservation = await self._find_reservation(args)
        if isinstance(reservation, ToolFailure):
            return reservation
        if reservation is None:
            return ToolFailure(
                kind=FailureKind.NOT_FOUND,
                message=(
                    f"Aucune réservation trouvée au nom de {args.customer_name}. La réservation a "
                    "peut-être déjà été annulée ou le nom ne correspond pas exactement."
                ),
            )

        reservation.status = ReservationStatus.CANCELLED.value
        await self.store.commit()

        logger.info("Reservation found and cancelled", reservation_id=str(reservation.id))

        return ToolSuccess(
            message=(
                "Réservation annulée avec succès. Il s'agissait de la réservation pour "
                f"{guests_label(reservation.number_of_guests)} le "
                f"{format_date_long_fr(reservation.reservation_date)} à "
                f"{format_time_fr(reservation.reservation_time)}."
            ),
            data={"reservation_id": str(reservation.id)},
        )

    @tool_handler(FindAndUpdateReservationArgs)
    async def find_and_update_reservation(self, args: FindAndUpdateReservationArgs) -> ToolResult:
        """
        Merge the new values over the customer's next reservation.

        Changed slots are re-checked (without the reservation's own guests)
        before anything is written; a rejected update leaves the row as it was.
        """
        reservation = await self._find_reservation(args)
        if isinstance(reservation, ToolFailure):
            return reservation
        if reservation is None:
            return ToolFailure(
                kind=FailureKind.NOT_FOUND,
                message=f"Aucune réservation trouvée au nom de {args.customer_name}.",
            )

        new_date = _parse_date_arg(args.new_date) if args.new_date else reservation.reservation_date
        new_time = (
            _parse_time_arg(args.new_time)
            if args.new_time
            else parse_time(reservation.reservation_time)
        )
        new_guests = (
            _check_guests(args.new_number_of_guests)
            if args.new_number_of_guests is not None
            else reservation.number_of_guests
        )

        changed = (
            new_date != reservation.reservation_date
            or format_time(new_time) != reservation.reservation_time
            or new_guests != reservation.number_of_guests
        )

        if changed:
            if new_guests > settings.large_party_threshold:
                return ToolFailure(
                    kind=FailureKind.UNAVAILABLE,
                    message=(
                        f"Pour les groupes de {new_guests} personnes, je ne peux pas modifier la "
                        "réservation moi-même. Le gérant doit vous rappeler pour finaliser."
                    ),
                    data={"requires_callback": True, "action": "transfer_to_manager"},
                )

            availability = await check_availability(
                self.store,
                reservation.restaurant_id,
                new_date,
                new_time,
                new_guests,
                lock=True,
                exclude_reservation_id=reservation.id,
            )
            if not availability.available:
                return await self._unavailable(availability, new_date, new_guests)

            reservation.reservation_date = new_date
            reservation.reservation_time = format_time(new_time)
            reservation.number_of_guests = new_guests

        await self.store.commit()

        logger.info("Reservation updated", reservation_id=str(reservation.id), changed=changed)

        return ToolSuccess(
            message=(
                f"Réservation modifiée avec succès. Vous êtes maintenant {guests_label(new_guests)} "
                f"le {format_date_long_fr(new_date)} à {format_time_fr(new_time)}."
            ),
            data={
                "reservation_id": str(reservation.id),
                "changed": changed,
                "reservation": reservation_payload(reservation),
            },
        )

    @tool_handler(AddToWaitlistArgs)
    async def add_to_waitlist(self, args: AddToWaitlistArgs) -> ToolResult:
        _require(
            args,
            ["customer_name", "customer_phone", "date", "number_of_guests"],
            "vous inscrire sur la liste d'attente",
        )
        on_date = _parse_date_arg(args.date)
        at = _parse_time_arg(args.time) if args.time else None
        guests = _check_guests(args.number_of_guests)

        restaurant = await self.store.get_restaurant(args.restaurant_id)
        if restaurant is None:
            return ToolFailure(kind=FailureKind.NOT_FOUND, message=RESTAURANT_NOT_FOUND)

        result = await add_to_waitlist(
            self.store,
            restaurant.id,
            customer_name=args.customer_name.strip(),
            customer_phone=args.customer_phone,
            customer_email=args.customer_email,
            desired_date=on_date,
            desired_time=at,
            party_size=guests,
            notes=args.notes,
            call_id=args.call_id,
        )
        if result.already_registered:
            return ToolFailure(
                kind=FailureKind.CONFLICT,
                message=result.message,
                data={"waitlist_id": str(result.entry.id)},
            )

        return ToolSuccess(message=result.message, data={"waitlist_id": str(result.entry.id)})

    @tool_handler(TransferCallArgs)
    async def transfer_call(self, args: TransferCallArgs) -> ToolResult:
        restaurant = await self.store.get_restaurant(args.restaurant_id)
        if restaurant is None:
            return ToolFailure(kind=FailureKind.NOT_FOUND, message=RESTAURANT_NOT_FOUND)

        reason = args.reason or _infer_transfer_reason(args)
        if reason is None:
            raise InvalidToolArguments(
                "Raison du transfert manquante.",
                data={"invalid_fields": ["reason"]},
            )

        decision = evaluate_transfer(
            restaurant,
            reason,
            guest_count=args.guest_count,
            failed_attempts=args.failed_attempts,
        )
        if not decision.should_transfer:
            return ToolFailure(
                kind=FailureKind.UNAVAILABLE,
                message="Conditions de transfert non remplies",
                data={"reason": reason.value},
            )

        logger.info(
            "Initiating transfer",
            restaurant_id=str(restaurant.id),
            call_id=args.call_id,
            reason=reason.value,
            transfer_number=mask_phone(decision.transfer_number),
        )
        await self._mark_transfer(args.call_id, reason)

        return ToolSuccess(
            message=decision.message,
            data={
                "action": "transfer",
                "reason": reason.value,
                "transfer_number": decision.transfer_number,
                "destination": {"type": "phone", "number": decision.transfer_number},
            },
        )

    async def _mark_transfer(self, vapi_call_id: Optional[str], reason: TransferReason) -> None:
        if not vapi_call_id:
            return
        try:
            call = await self.store.find_call_by_external_id(vapi_call_id)
            if call is None:
                return
            call.metadata_json = {
                **(call.metadata_json or {}),
                "transfer_initiated": True,
                "transfer_reason": reason.value,
                "transfer_time": datetime.now(timezone.utc).isoformat(),
            }
            await self.store.commit()
        except SQLAlchemyError as e:
            logger.error("Error updating call metadata", call_id=vapi_call_id, error=str(e))
            await self.rollback_quietly()


def _require_reservation_id(args: CancelReservationArgs) -> None:
    if not args.reservation_id or not args.reservation_id.strip():
        raise InvalidToolArguments(
            "Il me manque le numéro de réservation.",
            data={"missing_fields": ["reservation_id"]},
        )


def _infer_transfer_reason(args: TransferCallArgs) -> Optional[TransferReason]:
    if detect_privatization_request(args.customer_message):
        return TransferReason.PRIVATIZATION
    if detect_transfer_request(args.customer_message):
        return TransferReason.EXPLICIT_REQUEST
    if args.guest_count and args.guest_count > settings.large_party_threshold:
        return TransferReason.LARGE_GROUP
    if args.failed_attempts and args.failed_attempts >= settings.max_failed_attempts:
        return TransferReason.REPEATED_FAILURE
    return None
