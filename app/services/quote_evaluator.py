"""
════════════════════════════════════════════════════════════
SERVICE - Évaluation & Comparaison des cotations
════════════════════════════════════════════════════════════
Score pondéré d'une cotation et classement comparatif de toutes
les cotations évaluées d'une même RFQ.
"""

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional

from app.config import settings
from app.schemas.quote import (
    ActivityAction,
    ComparisonMetrics,
    ComparisonResponse,
    COMPARABLE_STATUSES,
    EvaluationRequest,
    EvaluationWeights,
    Quote,
    QuoteEvaluation,
    QuoteRanking,
    QuoteStatus,
)


logger = logging.getLogger(__name__)

EVALUATION_DETAILS = "Quote evaluation completed"


# ──────────────────────────────────────────────────────────
# Score pondéré
# ──────────────────────────────────────────────────────────

def _round_half_up(value: float, digits: int = 2) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def calculate_total_score(
    quality_score: Optional[float],
    cost_score: Optional[float],
    delivery_score: Optional[float],
    technical_score: Optional[float],
    weights: Optional[EvaluationWeights] = None
) -> float:
    """
    Calculer le score total pondéré d'une cotation

    Les scores ne sont pas bornés ici: une valeur hors [0, 100] passe
    telle quelle dans le calcul. Un score absent compte pour 0.

    Args:
        quality_score, cost_score, delivery_score, technical_score: scores 0-100
        weights: pondérations (défaut 40/35/25/0)

    Returns:
        Score arrondi à 2 décimales, 0 si la somme des poids est nulle
    """
    weights = weights or EvaluationWeights()
    total_weight = weights.quality + weights.cost + weights.delivery + weights.technical

    if total_weight == 0:
        return 0

    weighted = (
        (quality_score or 0) * weights.quality
        + (cost_score or 0) * weights.cost
        + (delivery_score or 0) * weights.delivery
        + (technical_score or 0) * weights.technical
    ) / total_weight

    return _round_half_up(weighted, 2)


def score_evaluation(evaluation: QuoteEvaluation) -> float:
    """Recalculer et mémoriser le score total d'un bloc d'évaluation"""
    if not evaluation.evaluated:
        return 0

    evaluation.total_score = calculate_total_score(
        evaluation.quality_score,
        evaluation.cost_score,
        evaluation.delivery_score,
        evaluation.technical_score,
        evaluation.weights
    )
    return evaluation.total_score


def evaluate(quote: Quote, evaluation_data, evaluated_by: Optional[int]) -> Quote:
    """
    Appliquer une évaluation à une cotation (modification en place, sans persistance)

    Args:
        quote: Cotation à évaluer
        evaluation_data: EvaluationRequest ou dict (champs du bloc évaluation)
        evaluated_by: ID de l'évaluateur

    Returns:
        La cotation modifiée
    """
    if isinstance(evaluation_data, EvaluationRequest):
        data = evaluation_data.model_dump(exclude_unset=True)
    else:
        data = dict(evaluation_data or {})
    # Un champ envoyé à null conserve la valeur existante
    data = {key: value for key, value in data.items() if value is not None}

    merged = quote.evaluation.model_dump()
    merged.update(data)
    merged.update(
        evaluated=True,
        evaluated_by=evaluated_by,
        evaluation_date=datetime.now()
    )
    if merged.get("weights") is None:
        merged["weights"] = EvaluationWeights()

    quote.evaluation = QuoteEvaluation(**merged)
    score_evaluation(quote.evaluation)

    quote.status = QuoteStatus.EVALUATED
    quote.add_activity(
        ActivityAction.EVALUATED,
        performed_by=evaluated_by,
        details=EVALUATION_DETAILS,
        comments=data.get("notes")
    )
    return quote


# ──────────────────────────────────────────────────────────
# Classement comparatif
# ──────────────────────────────────────────────────────────

def _total_score_key(quote: Quote) -> float:
    # Une cotation sans score se classe après toutes les autres
    score = quote.evaluation.total_score
    return float("-inf") if score is None else score


def _delivery_value(quote: Quote) -> Optional[float]:
    return quote.delivery_time.value if quote.delivery_time else None


def _positions(ordered: List[Quote]) -> dict:
    return {id(quote): position for position, quote in enumerate(ordered, start=1)}


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def compute_comparison_metrics(
    quotes: Iterable[Quote],
    missing_delivery_value: Optional[float] = None,
    missing_quality_value: Optional[float] = None
) -> ComparisonResponse:
    """
    Calculer les rangs et écarts à la moyenne d'un ensemble de cotations

    Calcul pur: les cotations reçoivent leurs métriques en mémoire,
    rien n'est persisté. L'ordre d'entrée départage les égalités.

    Returns:
        ComparisonResponse avec un classement par cotation, dans l'ordre
        décroissant du score total
    """
    if missing_delivery_value is None:
        missing_delivery_value = settings.MISSING_DELIVERY_RANK_VALUE
    if missing_quality_value is None:
        missing_quality_value = settings.MISSING_QUALITY_RANK_VALUE

    ordered = sorted(quotes, key=_total_score_key, reverse=True)
    rfq_id = ordered[0].rfq_id if ordered else ""

    if not ordered:
        return ComparisonResponse(rfq_id=rfq_id)

    prices = [q.total_amount for q in ordered if q.total_amount > 0]
    delivery_times = [v for v in ((_delivery_value(q) or 0) for q in ordered) if v > 0]

    avg_price = _mean(prices)
    avg_delivery_time = _mean(delivery_times)

    price_positions = _positions(sorted(ordered, key=lambda q: q.total_amount))
    delivery_positions = _positions(
        sorted(ordered, key=lambda q: _delivery_value(q) or missing_delivery_value)
    )
    quality_positions = _positions(
        sorted(
            ordered,
            key=lambda q: q.evaluation.quality_score or missing_quality_value,
            reverse=True
        )
    )

    rankings = []
    for overall_rank, quote in enumerate(ordered, start=1):
        delivery = _delivery_value(quote) or 0
        metrics = ComparisonMetrics(
            price_rank=price_positions[id(quote)],
            delivery_rank=delivery_positions[id(quote)],
            quality_rank=quality_positions[id(quote)],
            overall_rank=overall_rank,
            price_variance_from_average=(
                (quote.total_amount - avg_price) / avg_price * 100 if avg_price > 0 else 0
            ),
            delivery_variance_from_average=(
                (delivery - avg_delivery_time) / avg_delivery_time * 100
                if avg_delivery_time > 0 else 0
            )
        )
        quote.comparison_metrics = metrics
        rankings.append(QuoteRanking(
            quote_id=quote.id,
            quote_number=quote.quote_number,
            total_amount=quote.total_amount,
            total_score=quote.evaluation.total_score,
            metrics=metrics
        ))

    return ComparisonResponse(
        rfq_id=rfq_id,
        average_price=avg_price,
        average_delivery_time=avg_delivery_time,
        rankings=rankings
    )


def calculate_comparison_metrics(rfq_id: str, repository) -> ComparisonResponse:
    """
    Recalculer et enregistrer les métriques de comparaison d'une RFQ

    Chaque cotation est écrite indépendamment: un échec d'écriture
    n'annule pas les autres et l'ID concerné est remonté dans `failed`.

    Args:
        rfq_id: Identifiant de la RFQ
        repository: fournit list_by_rfq() et update_comparison_metrics()
    """
    quotes = repository.list_by_rfq(rfq_id, statuses=COMPARABLE_STATUSES)

    if not quotes:
        logger.info("Comparaison RFQ %s: aucune cotation évaluée", rfq_id)
        return ComparisonResponse(rfq_id=rfq_id)

    result = compute_comparison_metrics(quotes)
    result.rfq_id = rfq_id

    for ranking in result.rankings:
        try:
            repository.update_comparison_metrics(ranking.quote_id, ranking.metrics)
            result.updated.append(ranking.quote_id)
        except Exception as e:
            logger.error(
                "Comparaison RFQ %s: échec d'écriture pour la cotation %s: %s",
                rfq_id, ranking.quote_id, e
            )
            result.failed[ranking.quote_id] = str(e)

    logger.info(
        "Comparaison RFQ %s: %d cotation(s) classée(s), %d échec(s)",
        rfq_id, len(result.updated), len(result.failed)
    )
    return result
