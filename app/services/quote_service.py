"""
════════════════════════════════════════════════════════════
SERVICE - Cotations (orchestration)
════════════════════════════════════════════════════════════
Compose le repository, le cycle de vie et le moteur d'évaluation.
Les routers n'appellent que cette classe.
"""

import logging
from typing import List, Optional

from app.exceptions import DuplicateQuote, QuoteNotFound
from app.repositories.quotes import QuoteRepository
from app.schemas.quote import (
    AwardResponse,
    BuyerStats,
    ComparisonResponse,
    EvaluationRequest,
    Quote,
    QuoteClarification,
    QuoteCreate,
    QuoteStatus,
)
from app.services import quote_workflow as workflow
from app.services.quote_evaluator import calculate_comparison_metrics, evaluate


logger = logging.getLogger(__name__)

AUTO_REJECTION_REASON = "Another quote was selected"


class QuoteService:

    def __init__(self, repository=None):
        self.repository = repository or QuoteRepository()

    # ──────────────────────────────────────────────────────
    # Lecture
    # ──────────────────────────────────────────────────────

    def get_quote(self, quote_id: int) -> Quote:
        quote = self.repository.get(quote_id)
        if quote is None:
            raise QuoteNotFound(quote_id)
        return quote

    def list_for_rfq(self, rfq_id: str) -> List[Quote]:
        return self.repository.list_by_rfq(rfq_id)

    def list_for_requisition(self, requisition_id: str) -> List[Quote]:
        return self.repository.list_by_requisition(requisition_id)

    def buyer_stats(self, buyer_id: int) -> BuyerStats:
        return workflow.compute_buyer_stats(self.repository.list_by_buyer(buyer_id))

    # ──────────────────────────────────────────────────────
    # Écriture
    # ──────────────────────────────────────────────────────

    def _save(self, quote: Quote) -> Quote:
        workflow.prepare_for_save(quote)
        return self.repository.save(quote)

    def _expire_if_due(self, quote: Quote) -> bool:
        """Appliquer et enregistrer l'expiration d'une cotation 'received' échue"""
        if quote.status != QuoteStatus.RECEIVED:
            return False
        workflow.refresh_expiry(quote)
        if quote.status != QuoteStatus.EXPIRED:
            return False
        self._save(quote)
        return True

    def _load_for_update(self, quote_id: int) -> Quote:
        # L'expiration est enregistrée avant toute vérification de transition
        quote = self.get_quote(quote_id)
        self._expire_if_due(quote)
        return quote

    def submit_quote(self, data: QuoteCreate) -> Quote:
        """Enregistrer la cotation d'un fournisseur pour une RFQ"""
        if self.repository.find_by_rfq_and_supplier(data.rfq_id, data.supplier_id):
            raise DuplicateQuote(data.rfq_id, data.supplier_id)

        quote = workflow.build_quote(data)
        quote.quote_number = workflow.generate_quote_number(self.repository, quote.submission_date)
        workflow.prepare_for_save(quote, quote.submission_date)
        self.repository.insert(quote)

        logger.info(
            "Cotation %s reçue du fournisseur %s pour la RFQ %s (%.2f %s)",
            quote.quote_number, quote.supplier_id, quote.rfq_id, quote.total_amount, quote.currency
        )
        return quote

    def start_review(self, quote_id: int, reviewer: Optional[int]) -> Quote:
        quote = self._load_for_update(quote_id)
        workflow.start_review(quote, reviewer)
        return self._save(quote)

    def evaluate_quote(self, quote_id: int, data: EvaluationRequest, evaluated_by: Optional[int]) -> Quote:
        """Évaluer une cotation puis reclasser toutes les cotations de sa RFQ"""
        quote = self._load_for_update(quote_id)
        workflow.ensure_transition(quote, QuoteStatus.EVALUATED)
        evaluate(quote, data, evaluated_by)
        self._save(quote)

        logger.info(
            "Cotation %s évaluée par %s: score %.2f",
            quote.display_id, evaluated_by, quote.evaluation.total_score
        )
        self.compare_rfq(quote.rfq_id)
        return self.get_quote(quote_id)

    def compare_rfq(self, rfq_id: str) -> ComparisonResponse:
        return calculate_comparison_metrics(rfq_id, self.repository)

    def reject_quote(self, quote_id: int, reason: Optional[str], decided_by: Optional[int]) -> Quote:
        quote = self._load_for_update(quote_id)
        workflow.reject_quote(quote, reason, decided_by)
        self._save(quote)
        self.compare_rfq(quote.rfq_id)
        return quote

    def select_quote(
        self,
        quote_id: int,
        reason: Optional[str],
        decided_by: Optional[int],
        reject_others: bool = True
    ) -> AwardResponse:
        """
        Retenir une cotation

        Avec reject_others, les autres cotations ouvertes de la même RFQ
        sont rejetées une par une; un échec n'empêche pas les suivantes.
        """
        quote = self._load_for_update(quote_id)
        workflow.select_quote(quote, reason, decided_by)
        self._save(quote)
        logger.info("Cotation %s retenue pour la RFQ %s", quote.display_id, quote.rfq_id)

        result = AwardResponse(selected=quote)
        if reject_others:
            for other in self.repository.list_by_rfq(quote.rfq_id):
                if other.id == quote.id:
                    continue
                try:
                    if self._expire_if_due(other) or other.status in workflow.TERMINAL_STATUSES:
                        continue
                    workflow.reject_quote(other, AUTO_REJECTION_REASON, decided_by)
                    self._save(other)
                    result.rejected.append(other.id)
                except Exception as e:
                    logger.error("Rejet automatique impossible pour la cotation %s: %s", other.id, e)
                    result.failed[other.id] = str(e)

        self.compare_rfq(quote.rfq_id)
        return result

    def request_clarification(self, quote_id: int, question: str, requested_by: Optional[int]) -> Quote:
        quote = self._load_for_update(quote_id)
        workflow.request_clarification(quote, question, requested_by)
        return self._save(quote)

    def respond_clarification(
        self, quote_id: int, index: int, response: str, responded_by: Optional[int]
    ) -> QuoteClarification:
        quote = self._load_for_update(quote_id)
        clarification = workflow.record_clarification_response(quote, index, response, responded_by)
        self._save(quote)
        return clarification
