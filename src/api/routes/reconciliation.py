"""Revenue reconciliation endpoint."""

import sqlite3

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_db
from api.logging import current_log, record_counters
from api.models.requests import ReconcileRequest
from api.models.responses import ReconcileResponse
from services.reconciler import reconcile

router = APIRouter(prefix="/v1", tags=["reconciliation"])


@router.post("/reconciliation", response_model=ReconcileResponse)
def reconcile_orders(request: Request, body: ReconcileRequest, conn: sqlite3.Connection = Depends(get_db)):
    """
    Recompute real income for one day's livestream from already-parsed
    ledger rows and source-feed rows.
    """
    result = reconcile(
        conn,
        body.date,
        [row.model_dump() for row in body.ledger_rows],
        [row.model_dump() for row in body.source_rows],
        channel_id=body.channel_id,
    )
    record_counters(request, orders_processed=result["processed_orders"], livestreams_updated=1)
    request_log = current_log(request)
    if request_log is not None:
        for message in result["skipped"]:
            request_log.details.append(("skipped_row", message))
    return result
