# tests/conftest.py
from datetime import datetime, timedelta
from itertools import count

import pytest

from app.schemas.quote import DeliveryTime, Quote, QuoteEvaluation, QuoteStatus


class InMemoryQuoteRepository:
    """Repository de test: stocke des copies, comme une vraie base"""

    def __init__(self, quotes=None, fail_ids=()):
        self._quotes = {}
        self._ids = count(1)
        self.fail_ids = set(fail_ids)
        self.metric_writes = []
        self.saves = []
        for quote in quotes or []:
            self.insert(quote)

    def _copy(self, quote):
        return quote.model_copy(deep=True)

    def get(self, quote_id):
        quote = self._quotes.get(quote_id)
        return self._copy(quote) if quote else None

    def list_by_rfq(self, rfq_id, statuses=None):
        wanted = {QuoteStatus(s) for s in statuses} if statuses else None
        return [
            self._copy(q) for q in self._quotes.values()
            if q.rfq_id == rfq_id and (wanted is None or q.status in wanted)
        ]

    def list_by_requisition(self, requisition_id):
        return [self._copy(q) for q in self._quotes.values() if q.requisition_id == requisition_id]

    def list_by_buyer(self, buyer_id, status=None, supplier_id=None):
        return [self._copy(q) for q in self._quotes.values() if q.buyer_id == buyer_id]

    def find_by_rfq_and_supplier(self, rfq_id, supplier_id):
        for quote in self._quotes.values():
            if quote.rfq_id == rfq_id and quote.supplier_id == supplier_id:
                return self._copy(quote)
        return None

    def count_created_between(self, start, end):
        return sum(1 for q in self._quotes.values() if q.created_at and start <= q.created_at < end)

    def quote_number_exists(self, quote_number):
        return any(q.quote_number == quote_number for q in self._quotes.values())

    def insert(self, quote):
        if quote.id is None:
            quote.id = next(self._ids)
        self._quotes[quote.id] = self._copy(quote)
        return quote

    def save(self, quote):
        if quote.id in self.fail_ids:
            raise RuntimeError(f"write failed for {quote.id}")
        self.saves.append(quote.id)
        self._quotes[quote.id] = self._copy(quote)
        return quote

    def update_comparison_metrics(self, quote_id, metrics):
        if quote_id in self.fail_ids:
            raise RuntimeError(f"write failed for {quote_id}")
        self.metric_writes.append(quote_id)
        self._quotes[quote_id].comparison_metrics = metrics.model_copy()
        return 1


def build_quote(
    rfq_id="RFQ-1",
    total_amount=100.0,
    quality=None,
    delivery_days=7,
    total_score=None,
    status=QuoteStatus.EVALUATED,
    supplier_id=None,
    quote_id=None,
    **overrides
):
    evaluation = QuoteEvaluation(
        evaluated=total_score is not None or quality is not None,
        quality_score=quality,
        total_score=total_score
    )
    data = dict(
        id=quote_id,
        requisition_id="REQ-1",
        rfq_id=rfq_id,
        supplier_id=supplier_id if supplier_id is not None else (quote_id or 0) + 100,
        buyer_id=7,
        total_amount=total_amount,
        valid_until=datetime.now() + timedelta(days=30),
        status=status,
        delivery_time=DeliveryTime(value=delivery_days) if delivery_days is not None else None,
        evaluation=evaluation,
        created_at=datetime.now()
    )
    data.update(overrides)
    return Quote(**data)


@pytest.fixture
def make_quote():
    return build_quote


@pytest.fixture
def repository():
    return InMemoryQuoteRepository()
