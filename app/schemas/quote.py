"""
════════════════════════════════════════════════════════════
SCHEMAS - Cotations Fournisseurs (Quotes)
════════════════════════════════════════════════════════════
Document complet d'une cotation: lignes, conditions, évaluation,
métriques de comparaison, décision, clarifications et historique.
"""

import math
from pydantic import BaseModel, Field, computed_field
from typing import Optional, List, Dict, Union
from datetime import datetime
from enum import Enum


class QuoteStatus(str, Enum):
    RECEIVED = "received"
    UNDER_REVIEW = "under_review"
    EVALUATED = "evaluated"
    SELECTED = "selected"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CLARIFICATION_REQUESTED = "clarification_requested"
    CLARIFICATION_RECEIVED = "clarification_received"


# Statuts pris en compte par le classement comparatif
COMPARABLE_STATUSES = (
    QuoteStatus.EVALUATED,
    QuoteStatus.SELECTED,
    QuoteStatus.REJECTED,
)


class DeliveryUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class ActivityAction(str, Enum):
    RECEIVED = "received"
    UNDER_REVIEW = "under_review"
    EVALUATED = "evaluated"
    CLARIFICATION_REQUESTED = "clarification_requested"
    CLARIFICATION_RECEIVED = "clarification_received"
    SELECTED = "selected"
    REJECTED = "rejected"


class DecisionStatus(str, Enum):
    PENDING = "pending"
    SELECTED = "selected"
    REJECTED = "rejected"
    ALTERNATIVE = "alternative"


class ClarificationStatus(str, Enum):
    PENDING = "pending"
    RESPONDED = "responded"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ──────────────────────────────────────────────────────────
# Sous-documents
# ──────────────────────────────────────────────────────────

class SupplierDetails(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    contact_person: Optional[str] = None
    address: Optional[str] = None


class QuoteItem(BaseModel):
    """Ligne de cotation"""
    description: str
    quantity: float
    unit_price: float
    total_price: float = 0
    specifications: Optional[str] = None
    part_number: Optional[str] = None
    warranty: Optional[str] = None
    lead_time: Optional[str] = None
    availability: str = "Available"


class DeliveryTime(BaseModel):
    value: Optional[float] = 7
    unit: DeliveryUnit = DeliveryUnit.DAYS


class EvaluationWeights(BaseModel):
    quality: float = 40
    cost: float = 35
    delivery: float = 25
    technical: float = 0


class QuoteEvaluation(BaseModel):
    """Bloc d'évaluation (scores 0-100)"""
    evaluated: bool = False
    evaluated_by: Optional[int] = None
    evaluation_date: Optional[datetime] = None

    quality_score: Optional[float] = None
    cost_score: Optional[float] = None
    delivery_score: Optional[float] = None
    technical_score: Optional[float] = None
    total_score: Optional[float] = None

    weights: EvaluationWeights = Field(default_factory=EvaluationWeights)

    notes: Optional[str] = None
    strengths: List[str] = []
    weaknesses: List[str] = []
    recommendations: Optional[str] = None


class ComparisonMetrics(BaseModel):
    """Classements (1 = meilleur) et écarts à la moyenne (%)"""
    price_rank: Optional[int] = None
    delivery_rank: Optional[int] = None
    quality_rank: Optional[int] = None
    overall_rank: Optional[int] = None
    price_variance_from_average: Optional[float] = None
    delivery_variance_from_average: Optional[float] = None


class QuoteDecision(BaseModel):
    status: Optional[DecisionStatus] = None
    reason: Optional[str] = None
    decision_date: Optional[datetime] = None
    decided_by: Optional[int] = None
    alternative_action: Optional[str] = None


class QuoteClarification(BaseModel):
    question: str
    response: Optional[str] = None
    request_date: datetime = Field(default_factory=datetime.now)
    response_date: Optional[datetime] = None
    requested_by: Optional[int] = None
    status: ClarificationStatus = ClarificationStatus.PENDING


class QuoteActivity(BaseModel):
    action: ActivityAction
    performed_by: Optional[int] = None
    timestamp: datetime = Field(default_factory=datetime.now)
    details: Optional[str] = None
    comments: Optional[str] = None


class QuoteAttachment(BaseModel):
    name: str
    url: str
    size: Optional[int] = None
    mimetype: Optional[str] = None
    category: str = "other"


class RiskAssessment(BaseModel):
    supplier_risk: RiskLevel = RiskLevel.LOW
    delivery_risk: RiskLevel = RiskLevel.LOW
    quality_risk: RiskLevel = RiskLevel.LOW
    financial_risk: RiskLevel = RiskLevel.LOW
    overall_risk: RiskLevel = RiskLevel.LOW
    risk_notes: Optional[str] = None


# ──────────────────────────────────────────────────────────
# Cotation complète
# ──────────────────────────────────────────────────────────

class Quote(BaseModel):
    """Cotation d'un fournisseur en réponse à une RFQ"""
    id: Optional[int] = None
    quote_number: Optional[str] = None

    requisition_id: str
    rfq_id: str
    supplier_id: int
    buyer_id: int

    total_amount: float = 0
    currency: str = "XAF"

    submission_date: datetime = Field(default_factory=datetime.now)
    valid_until: datetime
    response_time: Optional[int] = None  # heures

    status: QuoteStatus = QuoteStatus.RECEIVED

    supplier_details: SupplierDetails = Field(default_factory=SupplierDetails)
    items: List[QuoteItem] = []

    payment_terms: str = "30 days"
    delivery_terms: str = "Standard delivery"
    delivery_time: Optional[DeliveryTime] = Field(default_factory=DeliveryTime)
    warranty: Optional[str] = None

    evaluation: QuoteEvaluation = Field(default_factory=QuoteEvaluation)
    comparison_metrics: ComparisonMetrics = Field(default_factory=ComparisonMetrics)
    decision: QuoteDecision = Field(default_factory=QuoteDecision)
    clarifications: List[QuoteClarification] = []
    attachments: List[QuoteAttachment] = []
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    activity_log: List[QuoteActivity] = []

    supplier_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def display_id(self) -> str:
        if self.quote_number:
            return self.quote_number
        return f"QUO-{str(self.id or '')[-6:].upper()}"

    @computed_field
    @property
    def days_until_expiry(self) -> int:
        delta = self.valid_until - datetime.now()
        return math.ceil(delta.total_seconds() / 86400)

    @computed_field
    @property
    def is_expired(self) -> bool:
        return datetime.now() > self.valid_until

    def add_activity(self, action, performed_by=None, details=None, comments=None) -> QuoteActivity:
        """Ajouter une entrée à l'historique (sans persistance)"""
        entry = QuoteActivity(
            action=action,
            performed_by=performed_by,
            details=details,
            comments=comments
        )
        self.activity_log.append(entry)
        return entry


# ──────────────────────────────────────────────────────────
# Requêtes API
# ──────────────────────────────────────────────────────────

class QuoteItemCreate(BaseModel):
    description: str
    quantity: float = Field(ge=1)
    unit_price: float = Field(ge=0)
    total_price: Optional[float] = None
    specifications: Optional[str] = None
    part_number: Optional[str] = None
    warranty: Optional[str] = None
    lead_time: Optional[str] = None
    availability: str = "Available"


class QuoteCreate(BaseModel):
    """Soumission d'une cotation par un fournisseur"""
    requisition_id: str
    rfq_id: str
    supplier_id: int
    buyer_id: int
    total_amount: float = Field(default=0, ge=0)
    currency: Optional[str] = None
    validity_days: int = Field(default=30, ge=1)
    invited_date: Optional[datetime] = None
    supplier_details: SupplierDetails = Field(default_factory=SupplierDetails)
    items: List[QuoteItemCreate] = Field(min_length=1)
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    delivery_time: Optional[Union[DeliveryTime, float, str]] = None
    warranty: Optional[str] = None
    attachments: List[QuoteAttachment] = []
    supplier_notes: Optional[str] = None


class EvaluationRequest(BaseModel):
    """Données d'évaluation saisies par l'acheteur"""
    quality_score: Optional[float] = None
    cost_score: Optional[float] = None
    delivery_score: Optional[float] = None
    technical_score: Optional[float] = None
    weights: Optional[EvaluationWeights] = None
    notes: Optional[str] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    recommendations: Optional[str] = None


class DecisionRequest(BaseModel):
    reason: Optional[str] = None
    # Sélection: rejeter automatiquement les autres cotations de la RFQ
    reject_others: bool = True


class ClarificationCreate(BaseModel):
    question: str = Field(min_length=1)


class ClarificationAnswer(BaseModel):
    response: str = Field(min_length=1)


# ──────────────────────────────────────────────────────────
# Réponses API
# ──────────────────────────────────────────────────────────

class QuoteListResponse(BaseModel):
    quotes: List[Quote]
    total: int


class QuoteRanking(BaseModel):
    """Résultat du classement pour une cotation"""
    quote_id: Optional[int] = None
    quote_number: Optional[str] = None
    total_amount: float
    total_score: Optional[float] = None
    metrics: ComparisonMetrics


class ComparisonResponse(BaseModel):
    """Résultat d'un recalcul des métriques de comparaison d'une RFQ"""
    rfq_id: str
    average_price: float = 0
    average_delivery_time: float = 0
    rankings: List[QuoteRanking] = []
    updated: List[int] = []
    failed: Dict[int, str] = {}
    date_analyse: datetime = Field(default_factory=datetime.now)


class AwardResponse(BaseModel):
    selected: Quote
    rejected: List[int] = []
    failed: Dict[int, str] = {}


class BuyerStats(BaseModel):
    total: int = 0
    received: int = 0
    evaluated: int = 0
    selected: int = 0
    expired: int = 0
    avg_total_score: float = 0
    avg_response_time: float = 0
    total_value: float = 0
