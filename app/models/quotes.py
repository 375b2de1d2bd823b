"""Modèle Cotation fournisseur (Quote)"""

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Enum, Text, JSON, UniqueConstraint, Index
)

from app.models import Base


QUOTE_STATUSES = (
    'received',
    'under_review',
    'evaluated',
    'selected',
    'rejected',
    'expired',
    'clarification_requested',
    'clarification_received'
)


class Quote(Base):
    __tablename__ = "quotes"
    __table_args__ = (
        UniqueConstraint("rfq_id", "supplier_id", name="uq_quotes_rfq_supplier"),
        Index("ix_quotes_status_submission", "status", "submission_date"),
    )

    id = Column(Integer, primary_key=True)
    quote_number = Column(String(30), unique=True, nullable=False, index=True)
    requisition_id = Column(String(36), nullable=False, index=True)
    rfq_id = Column(String(36), nullable=False, index=True)
    supplier_id = Column(Integer, nullable=False, index=True)
    buyer_id = Column(Integer, nullable=False, index=True)

    total_amount = Column(Float, nullable=False, default=0)
    currency = Column(String(3), default='XAF')
    submission_date = Column(DateTime, nullable=False, index=True)
    valid_until = Column(DateTime, nullable=False, index=True)
    response_time = Column(Integer)  # heures

    status = Column(Enum(*QUOTE_STATUSES), nullable=False, default='received', index=True)

    payment_terms = Column(String(255), default='30 days')
    delivery_terms = Column(String(255), default='Standard delivery')
    delivery_time_value = Column(Float)
    delivery_time_unit = Column(Enum('days', 'weeks', 'months'), default='days')
    warranty = Column(String(255))

    # Sous-documents
    supplier_details = Column(JSON)
    items = Column(JSON)
    evaluation = Column(JSON)
    comparison_metrics = Column(JSON)
    decision = Column(JSON)
    clarifications = Column(JSON)
    attachments = Column(JSON)
    risk_assessment = Column(JSON)
    activity_log = Column(JSON)

    supplier_notes = Column(Text)
    internal_notes = Column(Text)
    total_score = Column(Float, index=True)

    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Quote {self.quote_number} - {self.status}>"
