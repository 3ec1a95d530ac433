from __future__ import annotations

import logging

from services.backend_client import BmuApiClient
from services.equipment_service import find_equipment, serialize_equipment
from services.lifecycle import (
    ACTIVE_RECORD_STATES,
    BORROWED,
    IN_USE,
    LOCATIONS,
    RecordNotFoundError,
    WorkflowError,
    is_free,
    require_text,
    toggle_location,
)
from services.session_service import SessionContext


LOGGER = logging.getLogger("bmu_frontend.workflow")

KIND_LABELS = {
    "borrowed": "ยืมจากส่วนกลาง",
    "owned": "ในครอบครอง",
    "other": "อื่นๆ",
}


def list_my_equipment(client: BmuApiClient, session: SessionContext) -> list[dict]:
    """Directly bound equipment followed by equipment the user holds through
    an active central borrow. The two sources never overlap."""
    current_user = session.display_identity
    equipment = client.list_equipment()
    history = client.list_active_history()

    rows = []
    for item in equipment:
        if item.assigned_to != current_user:
            continue
        row = serialize_equipment(item)
        row["is_borrowed"] = False
        row["current_location"] = item.current_location or "office"
        row["kindLabel"] = KIND_LABELS["owned"] if row["status"] == IN_USE else KIND_LABELS["other"]
        row["canToggleLocation"] = True
        rows.append(row)

    for record in history:
        if record.borrower_name != current_user or record.status not in ACTIVE_RECORD_STATES:
            continue
        rows.append(
            {
                "ID": record.equipment_id,
                "category": record.category,
                "asset_code": record.asset_code,
                "name": record.name,
                "status": BORROWED,
                "current_location": "office",
                "is_borrowed": True,
                "history_id": record.id,
                "kindLabel": KIND_LABELS["borrowed"],
                "canToggleLocation": False,
            }
        )
    return rows


def list_bindable(client: BmuApiClient) -> list[dict]:
    return [serialize_equipment(item) for item in client.list_equipment() if is_free(item.status)]


def bind(client: BmuApiClient, session: SessionContext, asset_code: str | None):
    code = require_text(asset_code, "กรุณาเลือกรหัสสินทรัพย์")
    match = None
    for item in client.list_equipment():
        if item.asset_code == code:
            match = item
            break
    if match is None:
        raise RecordNotFoundError("ไม่พบรหัสสินทรัพย์นี้")
    if not is_free(match.status):
        raise WorkflowError("อุปกรณ์นี้ไม่ว่างสำหรับการผูก")
    response = client.bind_equipment(code)
    LOGGER.info("Equipment bound asset_code=%s to=%s", code, session.display_identity)
    return response


def set_location(client: BmuApiClient, session: SessionContext, equipment_id: int, location: str | None = None) -> dict:
    equipment = find_equipment(client.list_equipment(), equipment_id)
    if equipment.assigned_to != session.display_identity:
        # Centrally borrowed items are listed under the user but never bound to them.
        raise WorkflowError("เปลี่ยนสถานที่ได้เฉพาะอุปกรณ์ที่ผูกกับคุณ")
    target = location or toggle_location(equipment.current_location)
    if target not in LOCATIONS:
        raise WorkflowError(f"สถานที่ไม่ถูกต้อง: {target}")
    response = client.update_equipment_location(equipment.ID, target)
    return {
        "ID": equipment.ID,
        "current_location": target,
        "atHome": target == "home",
        "response": response,
    }
