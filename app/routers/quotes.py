"""
════════════════════════════════════════════════════════════
ROUTER - Cotations Fournisseurs (évaluation & comparaison)
════════════════════════════════════════════════════════════
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.auth.dependencies import (
    ensure_supplier_scope,
    get_current_user,
    is_procurement_user,
    require_role,
)
from app.exceptions import (
    ClarificationNotFound,
    DuplicateQuote,
    QuoteError,
    QuoteNotFound,
)
from app.schemas.auth import PROCUREMENT_ROLES
from app.schemas.quote import (
    AwardResponse,
    BuyerStats,
    ClarificationAnswer,
    ClarificationCreate,
    ComparisonResponse,
    DecisionRequest,
    EvaluationRequest,
    Quote,
    QuoteClarification,
    QuoteCreate,
    QuoteListResponse,
)
from app.services.quote_service import QuoteService


router = APIRouter(prefix="/quotes", tags=["Cotations"])

require_procurement = require_role(*PROCUREMENT_ROLES)


def get_quote_service() -> QuoteService:
    """Dependency: service cotations (remplacé dans les tests)"""
    return QuoteService()


def _http_error(error: QuoteError) -> HTTPException:
    """Traduire une erreur métier en réponse HTTP"""
    if isinstance(error, (QuoteNotFound, ClarificationNotFound)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, DuplicateQuote):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(error))


def _visible_quotes(quotes, current_user: dict) -> QuoteListResponse:
    if not is_procurement_user(current_user):
        quotes = [q for q in quotes if q.supplier_id == current_user.get("supplier_id")]
    return QuoteListResponse(quotes=quotes, total=len(quotes))


# ──────────────────────────────────────────────────────────
# Soumission
# ──────────────────────────────────────────────────────────

@router.post("", response_model=Quote, status_code=status.HTTP_201_CREATED)
async def submit_quote(
    data: QuoteCreate,
    current_user: dict = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service)
):
    """Soumettre la cotation d'un fournisseur pour une RFQ"""
    ensure_supplier_scope(current_user, data.supplier_id)
    try:
        return service.submit_quote(data)
    except QuoteError as e:
        raise _http_error(e)


# ──────────────────────────────────────────────────────────
# Lecture
# ──────────────────────────────────────────────────────────

@router.get("/stats/buyer", response_model=BuyerStats)
async def get_buyer_stats(
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """Statistiques des cotations de l'acheteur connecté"""
    return service.buyer_stats(current_user["id"])


@router.get("/rfq/{rfq_id}", response_model=QuoteListResponse)
async def list_quotes_for_rfq(
    rfq_id: str,
    current_user: dict = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service)
):
    """Cotations reçues pour une RFQ (un fournisseur ne voit que les siennes)"""
    return _visible_quotes(service.list_for_rfq(rfq_id), current_user)


@router.get("/requisition/{requisition_id}", response_model=QuoteListResponse)
async def list_quotes_for_requisition(
    requisition_id: str,
    current_user: dict = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service)
):
    """Toutes les cotations liées à une demande d'achat"""
    return _visible_quotes(service.list_for_requisition(requisition_id), current_user)


@router.get("/{quote_id}", response_model=Quote)
async def get_quote(
    quote_id: int,
    current_user: dict = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service)
):
    """Détail d'une cotation"""
    try:
        quote = service.get_quote(quote_id)
    except QuoteError as e:
        raise _http_error(e)

    ensure_supplier_scope(current_user, quote.supplier_id)
    return quote


# ──────────────────────────────────────────────────────────
# Revue & évaluation
# ──────────────────────────────────────────────────────────

@router.post("/{quote_id}/review", response_model=Quote)
async def start_review(
    quote_id: int,
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """Passer une cotation en revue"""
    try:
        return service.start_review(quote_id, current_user["id"])
    except QuoteError as e:
        raise _http_error(e)


@router.post("/{quote_id}/evaluate", response_model=Quote)
async def evaluate_quote(
    quote_id: int,
    evaluation: EvaluationRequest,
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """
    Évaluer une cotation

    Le score total est recalculé à partir des sous-scores et des poids,
    puis toutes les cotations évaluées de la RFQ sont reclassées.
    """
    try:
        return service.evaluate_quote(quote_id, evaluation, current_user["id"])
    except QuoteError as e:
        raise _http_error(e)


@router.post("/rfq/{rfq_id}/comparison", response_model=ComparisonResponse)
async def compare_rfq_quotes(
    rfq_id: str,
    response: Response,
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """Recalculer les classements et écarts de toutes les cotations évaluées d'une RFQ"""
    result = service.compare_rfq(rfq_id)
    if result.failed:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return result


# ──────────────────────────────────────────────────────────
# Décision
# ──────────────────────────────────────────────────────────

@router.post("/{quote_id}/select", response_model=AwardResponse)
async def select_quote(
    quote_id: int,
    decision: DecisionRequest,
    response: Response,
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """Retenir une cotation (et rejeter les autres cotations ouvertes de la RFQ)"""
    try:
        result = service.select_quote(
            quote_id, decision.reason, current_user["id"], reject_others=decision.reject_others
        )
    except QuoteError as e:
        raise _http_error(e)

    if result.failed:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return result


@router.post("/{quote_id}/reject", response_model=Quote)
async def reject_quote(
    quote_id: int,
    decision: DecisionRequest,
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """Rejeter une cotation"""
    try:
        return service.reject_quote(quote_id, decision.reason, current_user["id"])
    except QuoteError as e:
        raise _http_error(e)


# ──────────────────────────────────────────────────────────
# Clarifications
# ──────────────────────────────────────────────────────────

@router.post("/{quote_id}/clarifications", response_model=Quote)
async def request_clarification(
    quote_id: int,
    clarification: ClarificationCreate,
    current_user: dict = Depends(require_procurement),
    service: QuoteService = Depends(get_quote_service)
):
    """Demander une clarification au fournisseur"""
    try:
        return service.request_clarification(quote_id, clarification.question, current_user["id"])
    except QuoteError as e:
        raise _http_error(e)


@router.post("/{quote_id}/clarifications/{index}/response", response_model=QuoteClarification)
async def respond_clarification(
    quote_id: int,
    index: int,
    answer: ClarificationAnswer,
    current_user: dict = Depends(get_current_user),
    service: QuoteService = Depends(get_quote_service)
):
    """Enregistrer la réponse du fournisseur à une clarification"""
    try:
        ensure_supplier_scope(current_user, service.get_quote(quote_id).supplier_id)
        return service.respond_clarification(quote_id, index, answer.response, current_user["id"])
    except QuoteError as e:
        raise _http_error(e)
