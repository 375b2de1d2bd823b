"""
════════════════════════════════════════════════════════════
EXCEPTIONS - Erreurs métier des cotations
════════════════════════════════════════════════════════════
Levées par les services, traduites en HTTPException par les routers.
"""


class QuoteError(Exception):
    """Erreur métier de base"""


class QuoteNotFound(QuoteError):
    def __init__(self, quote_id):
        self.quote_id = quote_id
        super().__init__(f"Cotation {quote_id} non trouvée")


class DuplicateQuote(QuoteError):
    def __init__(self, rfq_id, supplier_id):
        self.rfq_id = rfq_id
        self.supplier_id = supplier_id
        super().__init__(
            f"Le fournisseur {supplier_id} a déjà soumis une cotation pour la RFQ {rfq_id}"
        )


class InvalidStatusTransition(QuoteError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Transition interdite: {current} -> {target}")


class ClarificationNotFound(QuoteError):
    def __init__(self, quote_id, index):
        self.quote_id = quote_id
        self.index = index
        super().__init__(f"Aucune clarification en attente #{index} pour la cotation {quote_id}")
