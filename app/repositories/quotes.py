"""
════════════════════════════════════════════════════════════
REPOSITORY - Cotations (table quotes)
════════════════════════════════════════════════════════════
Accès MySQL via les helpers de app.database. Chaque écriture est
une transaction indépendante (dernier écrivain gagnant).
"""

import json
from datetime import datetime
from typing import Iterable, List, Optional

from app.database import execute_insert, execute_query, execute_update
from app.schemas.quote import ComparisonMetrics, Quote


JSON_COLUMNS = (
    "supplier_details",
    "items",
    "evaluation",
    "comparison_metrics",
    "decision",
    "clarifications",
    "attachments",
    "risk_assessment",
    "activity_log",
)

SCALAR_COLUMNS = (
    "quote_number",
    "requisition_id",
    "rfq_id",
    "supplier_id",
    "buyer_id",
    "total_amount",
    "currency",
    "submission_date",
    "valid_until",
    "response_time",
    "status",
    "payment_terms",
    "delivery_terms",
    "delivery_time_value",
    "delivery_time_unit",
    "warranty",
    "supplier_notes",
    "internal_notes",
    "total_score",
    "created_at",
    "updated_at",
)

ALL_COLUMNS = SCALAR_COLUMNS + JSON_COLUMNS


# ──────────────────────────────────────────────────────────
# Conversion ligne <-> cotation
# ──────────────────────────────────────────────────────────

def _load_json(value):
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def row_to_quote(row: dict) -> Quote:
    """Construire une Quote à partir d'une ligne de la table quotes"""
    data = dict(row)
    for column in JSON_COLUMNS:
        loaded = _load_json(data.pop(column, None))
        if loaded is not None:
            data[column] = loaded

    value = data.pop("delivery_time_value", None)
    unit = data.pop("delivery_time_unit", None)
    data["delivery_time"] = {"value": value, "unit": unit or "days"} if value is not None else None
    data.pop("total_score", None)

    return Quote(**data)


def _dump_json(value) -> str:
    if isinstance(value, list):
        return json.dumps([v.model_dump(mode="json") for v in value])
    return value.model_dump_json()


def quote_to_params(quote: Quote) -> tuple:
    """Valeurs des colonnes dans l'ordre de ALL_COLUMNS"""
    scalars = (
        quote.quote_number,
        quote.requisition_id,
        quote.rfq_id,
        quote.supplier_id,
        quote.buyer_id,
        quote.total_amount,
        quote.currency,
        quote.submission_date,
        quote.valid_until,
        quote.response_time,
        quote.status.value,
        quote.payment_terms,
        quote.delivery_terms,
        quote.delivery_time.value if quote.delivery_time else None,
        quote.delivery_time.unit.value if quote.delivery_time else None,
        quote.warranty,
        quote.supplier_notes,
        quote.internal_notes,
        quote.evaluation.total_score,
        quote.created_at,
        quote.updated_at,
    )
    documents = tuple(_dump_json(getattr(quote, column)) for column in JSON_COLUMNS)
    return scalars + documents


# ──────────────────────────────────────────────────────────
# Repository
# ──────────────────────────────────────────────────────────

class QuoteRepository:
    """Lecture / écriture des cotations en base MySQL"""

    def get(self, quote_id: int) -> Optional[Quote]:
        row = execute_query("SELECT * FROM quotes WHERE id = %s", (quote_id,), fetch_one=True)
        return row_to_quote(row) if row else None

    def list_by_rfq(self, rfq_id: str, statuses: Optional[Iterable] = None) -> List[Quote]:
        """Cotations d'une RFQ, dans l'ordre d'insertion"""
        conditions = ["rfq_id = %s"]
        params = [rfq_id]

        if statuses:
            statuses = [getattr(s, "value", s) for s in statuses]
            conditions.append(f"status IN ({', '.join(['%s'] * len(statuses))})")
            params.extend(statuses)

        query = f"SELECT * FROM quotes WHERE {' AND '.join(conditions)} ORDER BY id ASC"
        return [row_to_quote(row) for row in execute_query(query, tuple(params))]

    def list_by_requisition(self, requisition_id: str) -> List[Quote]:
        rows = execute_query(
            "SELECT * FROM quotes WHERE requisition_id = %s ORDER BY submission_date DESC",
            (requisition_id,)
        )
        return [row_to_quote(row) for row in rows]

    def list_by_buyer(
        self,
        buyer_id: int,
        status: Optional[str] = None,
        supplier_id: Optional[int] = None
    ) -> List[Quote]:
        conditions = ["buyer_id = %s"]
        params = [buyer_id]

        if status:
            conditions.append("status = %s")
            params.append(status)

        if supplier_id:
            conditions.append("supplier_id = %s")
            params.append(supplier_id)

        query = f"""
            SELECT * FROM quotes
            WHERE {' AND '.join(conditions)}
            ORDER BY submission_date DESC
        """
        return [row_to_quote(row) for row in execute_query(query, tuple(params))]

    def find_by_rfq_and_supplier(self, rfq_id: str, supplier_id: int) -> Optional[Quote]:
        row = execute_query(
            "SELECT * FROM quotes WHERE rfq_id = %s AND supplier_id = %s",
            (rfq_id, supplier_id),
            fetch_one=True
        )
        return row_to_quote(row) if row else None

    def count_created_between(self, start: datetime, end: datetime) -> int:
        row = execute_query(
            "SELECT COUNT(*) as total FROM quotes WHERE created_at >= %s AND created_at < %s",
            (start, end),
            fetch_one=True
        )
        return row["total"] if row else 0

    def quote_number_exists(self, quote_number: str) -> bool:
        row = execute_query(
            "SELECT id FROM quotes WHERE quote_number = %s",
            (quote_number,),
            fetch_one=True
        )
        return row is not None

    def insert(self, quote: Quote) -> Quote:
        placeholders = ", ".join(["%s"] * len(ALL_COLUMNS))
        query = f"INSERT INTO quotes ({', '.join(ALL_COLUMNS)}) VALUES ({placeholders})"
        quote.id = execute_insert(query, quote_to_params(quote))
        return quote

    def save(self, quote: Quote) -> Quote:
        assignments = ", ".join(f"{column} = %s" for column in ALL_COLUMNS)
        query = f"UPDATE quotes SET {assignments} WHERE id = %s"
        execute_update(query, quote_to_params(quote) + (quote.id,))
        return quote

    def update_comparison_metrics(self, quote_id: int, metrics: ComparisonMetrics) -> int:
        """Écrire les métriques d'une seule cotation (transaction propre)"""
        return execute_update(
            "UPDATE quotes SET comparison_metrics = %s, updated_at = NOW() WHERE id = %s",
            (metrics.model_dump_json(), quote_id)
        )
