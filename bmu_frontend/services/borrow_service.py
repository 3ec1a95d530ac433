from __future__ import annotations

import logging

from schemas.borrow import BorrowRecord, BorrowSubmission
from services.backend_client import BmuApiClient
from services.equipment_service import find_equipment, serialize_equipment
from services.lifecycle import (
    INITIAL_RECORD_STATE,
    PENDING_RETURN,
    RECORD_BORROWED,
    RECORD_STATUS_LABELS,
    RecordNotFoundError,
    WorkflowError,
    ensure_transition,
    format_return_date,
    is_free,
    require_text,
)
from services.session_service import SessionContext


LOGGER = logging.getLogger("bmu_frontend.workflow")


def serialize_borrow_record(record: BorrowRecord, current_user: str | None = None) -> dict:
    payload = record.model_dump()
    payload["statusLabel"] = RECORD_STATUS_LABELS.get(record.status, record.status)
    payload["canReturn"] = can_request_return(record, current_user)
    return payload


def can_request_return(record: BorrowRecord, current_user: str | None) -> bool:
    return bool(current_user) and record.status == RECORD_BORROWED and record.borrower_name == current_user


def list_active(client: BmuApiClient, session: SessionContext) -> list[dict]:
    current_user = session.display_identity
    return [serialize_borrow_record(record, current_user) for record in client.list_active_history()]


def list_available(client: BmuApiClient) -> list[dict]:
    return [serialize_equipment(item) for item in client.list_equipment() if is_free(item.status)]


def submit_borrow(client: BmuApiClient, session: SessionContext, submission: BorrowSubmission) -> dict:
    remark = require_text(submission.remark, "กรุณาระบุเหตุผลที่ยืม")
    borrower_name = (submission.borrower_name or "").strip() or session.display_identity

    equipment = find_equipment(client.list_equipment(), submission.equipment_id)
    if not is_free(equipment.status):
        raise WorkflowError("อุปกรณ์นี้ไม่ว่างสำหรับการยืม")

    payload = {
        "borrower_name": borrower_name,
        "return_date": format_return_date(submission.return_date),
        "remark": remark,
    }
    response = client.request_borrow(equipment.ID, payload)
    LOGGER.info(
        "Borrow requested equipment=%s asset_code=%s borrower=%s by=%s",
        equipment.ID,
        equipment.asset_code,
        borrower_name,
        session.display_identity,
    )
    return {
        "equipment_id": equipment.ID,
        "asset_code": equipment.asset_code,
        "borrower_name": borrower_name,
        "status": INITIAL_RECORD_STATE,
        "statusLabel": RECORD_STATUS_LABELS[INITIAL_RECORD_STATE],
        "response": response,
    }


def submit_return(client: BmuApiClient, session: SessionContext, history_id: int, received_by: str | None) -> dict:
    # An unnamed receiver is refused before the backend is contacted at all.
    receiver = require_text(received_by, "กรุณาระบุชื่อผู้รับคืน")

    record = None
    for item in client.list_active_history():
        if item.id == int(history_id):
            record = item
            break
    if record is None:
        raise RecordNotFoundError("ไม่พบรายการยืม")
    if record.borrower_name != session.display_identity:
        raise WorkflowError("คืนได้เฉพาะรายการที่คุณเป็นผู้ยืม")
    target = ensure_transition(record.status, PENDING_RETURN)

    response = client.request_return(record.id, receiver)
    LOGGER.info("Return requested history=%s received_by=%s by=%s", record.id, receiver, session.display_identity)
    return {
        "id": record.id,
        "status": target,
        "statusLabel": RECORD_STATUS_LABELS[target],
        "received_by": receiver,
        "response": response,
    }
