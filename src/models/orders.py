"""Already-parsed input rows consumed by revenue reconciliation."""

from typing import TypedDict


class LedgerRow(TypedDict):
    """One line of the reported-orders ledger. Amounts may be raw strings."""

    order_id: str
    status: str
    subtotal: float | str
    seller_discount: float | str


class SourceRow(TypedDict):
    """One order event from the source feed."""

    order_id: str
    content_type: str
    created_at: str  # local "dd/mm/YYYY HH:MM:SS"
