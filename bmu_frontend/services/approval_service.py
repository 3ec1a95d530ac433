from __future__ import annotations

import logging

from schemas.borrow import BorrowRecord
from services.backend_client import BmuApiClient
from services.lifecycle import (
    PENDING_BORROW,
    PENDING_RECORD_STATES,
    REJECTED,
    RECORD_STATUS_LABELS,
    REQUEST_TYPE_LABELS,
    RecordNotFoundError,
    approval_target,
    ensure_transition,
    require_elevated,
    require_text,
)
from services.session_service import SessionContext


LOGGER = logging.getLogger("bmu_frontend.workflow")


def serialize_pending(record: BorrowRecord) -> dict:
    payload = record.model_dump()
    payload["requestType"] = "borrow" if record.status == PENDING_BORROW else "return"
    payload["requestTypeLabel"] = REQUEST_TYPE_LABELS.get(record.status, record.status)
    return payload


def _pending_records(client: BmuApiClient) -> list[BorrowRecord]:
    return [record for record in client.list_pending_history() if record.status in PENDING_RECORD_STATES]


def _find_pending(client: BmuApiClient, history_id: int) -> BorrowRecord:
    for record in _pending_records(client):
        if record.id == int(history_id):
            return record
    raise RecordNotFoundError("ไม่พบคำขอที่รออนุมัติ")


def list_pending(client: BmuApiClient, session: SessionContext) -> list[dict]:
    require_elevated(session)
    return [serialize_pending(record) for record in _pending_records(client)]


def approve(client: BmuApiClient, session: SessionContext, history_id: int) -> dict:
    require_elevated(session)
    record = _find_pending(client, history_id)
    target = approval_target(record.status)
    response = client.approve_request(record.id)
    LOGGER.info("Request approved history=%s %s->%s by=%s", record.id, record.status, target, session.display_identity)
    return {
        "id": record.id,
        "equipment_id": record.equipment_id,
        "status": target,
        "statusLabel": RECORD_STATUS_LABELS[target],
        "response": response,
    }


def reject(client: BmuApiClient, session: SessionContext, history_id: int, remark: str | None) -> dict:
    require_elevated(session)
    reason = require_text(remark, "กรุณาระบุเหตุผลที่ไม่อนุมัติ")
    record = _find_pending(client, history_id)
    target = ensure_transition(record.status, REJECTED)
    response = client.reject_request(record.id, reason)
    LOGGER.info("Request rejected history=%s from=%s by=%s reason=%s", record.id, record.status, session.display_identity, reason)
    return {
        "id": record.id,
        "equipment_id": record.equipment_id,
        "status": target,
        "statusLabel": RECORD_STATUS_LABELS[target],
        "remark": reason,
        "response": response,
    }
