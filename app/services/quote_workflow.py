"""
════════════════════════════════════════════════════════════
SERVICE - Cycle de vie des cotations
════════════════════════════════════════════════════════════
Transitions de statut, recalcul des totaux, expiration,
numérotation, décisions et clarifications.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from app.config import settings
from app.exceptions import ClarificationNotFound, InvalidStatusTransition
from app.schemas.quote import (
    ActivityAction,
    BuyerStats,
    ClarificationStatus,
    DecisionStatus,
    DeliveryTime,
    Quote,
    QuoteClarification,
    QuoteCreate,
    QuoteDecision,
    QuoteItem,
    QuoteStatus,
)


logger = logging.getLogger(__name__)

# Écart toléré avant correction d'un total
TOTAL_TOLERANCE = 0.01


# ──────────────────────────────────────────────────────────
# Table des transitions
# ──────────────────────────────────────────────────────────

ALLOWED_TRANSITIONS = {
    QuoteStatus.RECEIVED: {
        QuoteStatus.UNDER_REVIEW,
        QuoteStatus.EVALUATED,
        QuoteStatus.CLARIFICATION_REQUESTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    },
    QuoteStatus.UNDER_REVIEW: {
        QuoteStatus.EVALUATED,
        QuoteStatus.CLARIFICATION_REQUESTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    },
    QuoteStatus.CLARIFICATION_REQUESTED: {
        QuoteStatus.CLARIFICATION_RECEIVED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    },
    QuoteStatus.CLARIFICATION_RECEIVED: {
        QuoteStatus.UNDER_REVIEW,
        QuoteStatus.EVALUATED,
        QuoteStatus.CLARIFICATION_REQUESTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    },
    # Une cotation évaluée peut être réévaluée
    QuoteStatus.EVALUATED: {
        QuoteStatus.EVALUATED,
        QuoteStatus.SELECTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    },
    QuoteStatus.SELECTED: set(),
    QuoteStatus.REJECTED: set(),
    QuoteStatus.EXPIRED: set(),
}

TERMINAL_STATUSES = {status for status, targets in ALLOWED_TRANSITIONS.items() if not targets}


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return QuoteStatus(target) in ALLOWED_TRANSITIONS[QuoteStatus(current)]


def ensure_transition(quote: Quote, target: QuoteStatus):
    """Lever InvalidStatusTransition si la transition n'est pas permise"""
    if not can_transition(quote.status, target):
        raise InvalidStatusTransition(QuoteStatus(quote.status).value, QuoteStatus(target).value)


# ──────────────────────────────────────────────────────────
# Champs dérivés
# ──────────────────────────────────────────────────────────

def recompute_derived_totals(quote: Quote) -> Quote:
    """
    Réconcilier les totaux de ligne et le montant total

    Un écart supérieur à 0.01 est corrigé silencieusement:
    total ligne = prix unitaire x quantité, montant total = somme des lignes.
    Sans lignes, le montant total saisi est conservé.
    """
    if not quote.items:
        return quote

    for item in quote.items:
        if item.unit_price and item.quantity:
            expected = item.unit_price * item.quantity
            if abs(item.total_price - expected) > TOTAL_TOLERANCE:
                item.total_price = expected

    expected_total = sum(item.total_price for item in quote.items)
    if abs(quote.total_amount - expected_total) > TOTAL_TOLERANCE:
        quote.total_amount = expected_total

    return quote


def refresh_expiry(quote: Quote, now: Optional[datetime] = None) -> Quote:
    """Passer en 'expired' une cotation encore 'received' dont la validité est dépassée"""
    now = now or datetime.now()
    if now > quote.valid_until and quote.status == QuoteStatus.RECEIVED:
        quote.status = QuoteStatus.EXPIRED
        logger.info("Cotation %s expirée (validité %s)", quote.display_id, quote.valid_until)
    return quote


def prepare_for_save(quote: Quote, now: Optional[datetime] = None) -> Quote:
    """Recalculs à appliquer avant chaque enregistrement"""
    recompute_derived_totals(quote)
    refresh_expiry(quote, now)
    quote.updated_at = now or datetime.now()
    return quote


# ──────────────────────────────────────────────────────────
# Numérotation
# ──────────────────────────────────────────────────────────

def generate_quote_number(repository, now: Optional[datetime] = None) -> str:
    """
    Générer un numéro de cotation QUO-AAAAMMJJ-NNN

    La séquence part du nombre de cotations créées dans la journée
    et avance jusqu'à trouver un numéro libre.
    """
    now = now or datetime.now()
    start_of_day = datetime(now.year, now.month, now.day)
    end_of_day = start_of_day + timedelta(days=1)

    daily_count = repository.count_created_between(start_of_day, end_of_day)
    prefix = f"{settings.QUOTE_NUMBER_PREFIX}-{now:%Y%m%d}"

    sequence = daily_count + 1
    quote_number = f"{prefix}-{sequence:03d}"
    while repository.quote_number_exists(quote_number):
        sequence += 1
        quote_number = f"{prefix}-{sequence:03d}"

    return quote_number


# ──────────────────────────────────────────────────────────
# Création
# ──────────────────────────────────────────────────────────

def parse_delivery_time(raw) -> DeliveryTime:
    """Interpréter un délai saisi librement ('2 weeks', '10 days', 5...)"""
    if raw is None or raw == "":
        return DeliveryTime()
    if isinstance(raw, DeliveryTime):
        return raw
    if isinstance(raw, (int, float)):
        return DeliveryTime(value=raw)

    text = str(raw).strip().lower()
    try:
        value = int(text.split(" ")[0])
    except ValueError:
        value = 7
    unit = "weeks" if "week" in text else "months" if "month" in text else "days"
    return DeliveryTime(value=value or 7, unit=unit)


def build_quote(data: QuoteCreate, now: Optional[datetime] = None) -> Quote:
    """Construire une cotation 'received' à partir d'une soumission fournisseur"""
    now = now or datetime.now()

    response_time = None
    if data.invited_date:
        response_time = round((now - data.invited_date).total_seconds() / 3600)

    items = [
        QuoteItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=(
                item.total_price if item.total_price is not None
                else item.unit_price * item.quantity
            ),
            specifications=item.specifications,
            part_number=item.part_number,
            warranty=item.warranty,
            lead_time=item.lead_time,
            availability=item.availability
        )
        for item in data.items
    ]

    quote = Quote(
        requisition_id=data.requisition_id,
        rfq_id=data.rfq_id,
        supplier_id=data.supplier_id,
        buyer_id=data.buyer_id,
        total_amount=data.total_amount,
        currency=data.currency or settings.DEFAULT_CURRENCY,
        submission_date=now,
        valid_until=now + timedelta(days=data.validity_days),
        response_time=response_time,
        supplier_details=data.supplier_details,
        items=items,
        payment_terms=data.payment_terms or "30 days",
        delivery_terms=data.delivery_terms or "Standard delivery",
        delivery_time=parse_delivery_time(data.delivery_time),
        warranty=data.warranty,
        attachments=data.attachments,
        supplier_notes=data.supplier_notes,
        created_at=now
    )
    quote.add_activity(ActivityAction.RECEIVED, performed_by=data.supplier_id, details="Quote received")
    return quote


# ──────────────────────────────────────────────────────────
# Revue & décisions
# ──────────────────────────────────────────────────────────

def start_review(quote: Quote, reviewer: Optional[int]) -> Quote:
    ensure_transition(quote, QuoteStatus.UNDER_REVIEW)
    quote.status = QuoteStatus.UNDER_REVIEW
    quote.add_activity(ActivityAction.UNDER_REVIEW, performed_by=reviewer, details="Quote under review")
    return quote


def _decide(quote: Quote, status: QuoteStatus, reason, decided_by, details) -> Quote:
    ensure_transition(quote, status)
    quote.decision = QuoteDecision(
        status=DecisionStatus(status.value),
        reason=reason,
        decision_date=datetime.now(),
        decided_by=decided_by
    )
    quote.status = status
    quote.add_activity(ActivityAction(status.value), performed_by=decided_by, details=details, comments=reason)
    return quote


def select_quote(quote: Quote, reason: Optional[str], decided_by: Optional[int]) -> Quote:
    """Retenir la cotation pour le bon de commande"""
    return _decide(quote, QuoteStatus.SELECTED, reason, decided_by, "Quote selected for purchase order")


def reject_quote(quote: Quote, reason: Optional[str], decided_by: Optional[int]) -> Quote:
    return _decide(quote, QuoteStatus.REJECTED, reason, decided_by, "Quote rejected")


# ──────────────────────────────────────────────────────────
# Clarifications
# ──────────────────────────────────────────────────────────

def request_clarification(quote: Quote, question: str, requested_by: Optional[int]) -> QuoteClarification:
    ensure_transition(quote, QuoteStatus.CLARIFICATION_REQUESTED)
    clarification = QuoteClarification(question=question, requested_by=requested_by)
    quote.clarifications.append(clarification)
    quote.status = QuoteStatus.CLARIFICATION_REQUESTED
    quote.add_activity(
        ActivityAction.CLARIFICATION_REQUESTED,
        performed_by=requested_by,
        details="Clarification requested",
        comments=question
    )
    return clarification


def record_clarification_response(
    quote: Quote, index: int, response: str, responded_by: Optional[int]
) -> QuoteClarification:
    """Enregistrer la réponse du fournisseur à une clarification en attente"""
    if index < 0 or index >= len(quote.clarifications):
        raise ClarificationNotFound(quote.id, index)

    clarification = quote.clarifications[index]
    if clarification.status != ClarificationStatus.PENDING:
        raise ClarificationNotFound(quote.id, index)

    ensure_transition(quote, QuoteStatus.CLARIFICATION_RECEIVED)
    clarification.response = response
    clarification.response_date = datetime.now()
    clarification.status = ClarificationStatus.RESPONDED

    # Le statut ne change que lorsque toutes les questions ont une réponse
    if all(c.status == ClarificationStatus.RESPONDED for c in quote.clarifications):
        quote.status = QuoteStatus.CLARIFICATION_RECEIVED
    quote.add_activity(
        ActivityAction.CLARIFICATION_RECEIVED,
        performed_by=responded_by,
        details="Clarification received",
        comments=response
    )
    return clarification


# ──────────────────────────────────────────────────────────
# Statistiques acheteur
# ──────────────────────────────────────────────────────────

def compute_buyer_stats(quotes: Iterable[Quote]) -> BuyerStats:
    quotes = list(quotes)
    if not quotes:
        return BuyerStats()

    def count(status):
        return sum(1 for q in quotes if q.status == status)

    scores = [q.evaluation.total_score for q in quotes if q.evaluation.total_score is not None]
    response_times = [q.response_time for q in quotes if q.response_time is not None]

    return BuyerStats(
        total=len(quotes),
        received=count(QuoteStatus.RECEIVED),
        evaluated=count(QuoteStatus.EVALUATED),
        selected=count(QuoteStatus.SELECTED),
        expired=count(QuoteStatus.EXPIRED),
        avg_total_score=round(sum(scores) / len(scores), 2) if scores else 0,
        avg_response_time=round(sum(response_times) / len(response_times), 2) if response_times else 0,
        total_value=sum(q.total_amount for q in quotes)
    )
