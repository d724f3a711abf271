"""
Escalation policy.

Decides whether a call goes to a human, where it goes, and what the agent
says while transferring. The phrase detectors are plain substring scans.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from restoagent.config import settings
from restoagent.models import Restaurant


class TransferReason(str, enum.Enum):
    LARGE_GROUP = "large_group"
    REPEATED_FAILURE = "repeated_failure"
    EXPLICIT_REQUEST = "explicit_request"
    NEGATIVE_SENTIMENT = "negative_sentiment"
    PRIVATIZATION = "privatization"
    COMPLEX_REQUEST = "complex_request"


@dataclass(frozen=True)
class TransferThresholds:
    large_group_size: int = 8
    max_failed_attempts: int = 3

    @classmethod
    def from_settings(cls) -> "TransferThresholds":
        return cls(
            large_group_size=settings.large_party_threshold,
            max_failed_attempts=settings.max_failed_attempts,
        )


@dataclass
class TransferDecision:
    should_transfer: bool
    transfer_number: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[TransferReason] = None


TRANSFER_PHRASES = (
    "parler à quelqu'un",
    "parler a quelqu un",
    "parler à un humain",
    "parler a un humain",
    "une vraie personne",
    "quelqu'un de réel",
    "un responsable",
    "le gérant",
    "le manager",
    "un conseiller",
    "être transféré",
    "etre transfere",
    "transfert",
    "pas un robot",
    "pas une machine",
)

PRIVATIZATION_PHRASES = (
    "privatiser",
    "privatisation",
    "événement privé",
    "evenement prive",
    "location de salle",
    "louer la salle",
    "réception privée",
    "reception privee",
    "mariage",
    "anniversaire d'entreprise",
    "séminaire",
    "seminaire",
    "groupe entreprise",
)


def evaluate_transfer(
    restaurant: Restaurant,
    reason: TransferReason,
    guest_count: Optional[int] = None,
    failed_attempts: Optional[int] = None,
    thresholds: Optional[TransferThresholds] = None,
) -> TransferDecision:
    thresholds = thresholds or TransferThresholds.from_settings()
    transfer_number = restaurant.fallback_phone or restaurant.phone

    message = None
    if reason == TransferReason.LARGE_GROUP:
        if guest_count and guest_count > thresholds.large_group_size:
            message = (
                f"Pour les groupes de {guest_count} personnes, je vais vous transférer vers "
                "notre responsable qui pourra finaliser votre demande. Un instant s'il vous plaît."
            )
    elif reason == TransferReason.REPEATED_FAILURE:
        if failed_attempts and failed_attempts >= thresholds.max_failed_attempts:
            message = (
                "Je m'excuse, j'ai du mal à comprendre. Je vais vous transférer vers un membre "
                "de notre équipe qui pourra vous aider. Un instant."
            )
    elif reason == TransferReason.EXPLICIT_REQUEST:
        message = (
            "Bien sûr, je vous transfère immédiatement vers un responsable. "
            "Un instant s'il vous plaît."
        )
    elif reason == TransferReason.NEGATIVE_SENTIMENT:
        message = (
            "Je comprends votre frustration. Je vais vous mettre en relation avec un membre "
            "de notre équipe qui pourra mieux vous aider."
        )
    elif reason == TransferReason.PRIVATIZATION:
        message = (
            "Pour une privatisation, je vais vous transférer vers notre responsable "
            "événementiel qui pourra discuter des détails avec vous."
        )
    elif reason == TransferReason.COMPLEX_REQUEST:
        message = (
            "Cette demande nécessite une attention particulière. "
            "Je vais vous transférer vers un responsable."
        )

    if message is None:
        return TransferDecision(should_transfer=False, reason=reason)

    return TransferDecision(
        should_transfer=True,
        transfer_number=transfer_number,
        message=message,
        reason=reason,
    )


def _contains_any(text: Optional[str], phrases) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(phrase in lowered for phrase in phrases)


def detect_transfer_request(text: Optional[str]) -> bool:
    """True when the caller asks for a human"""
    return _contains_any(text, TRANSFER_PHRASES)


def detect_privatization_request(text: Optional[str]) -> bool:
    return _contains_any(text, PRIVATIZATION_PHRASES)
