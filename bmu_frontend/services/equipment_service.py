from __future__ import annotations

import logging

from schemas.equipment import Equipment, EquipmentCreate, EquipmentPasswordCreate
from services.backend_client import BmuApiClient
from services.lifecycle import (
    HELD_STATUSES,
    OVERRIDE_STATUSES,
    RecordNotFoundError,
    WorkflowError,
    equipment_status_label,
    normalize_equipment_status,
    require_elevated,
    require_text,
)
from services.session_service import SessionContext


LOGGER = logging.getLogger("bmu_frontend.workflow")

OTHER_CATEGORY = "อื่นๆ"


def serialize_equipment(equipment: Equipment) -> dict:
    payload = equipment.model_dump()
    payload["status"] = normalize_equipment_status(equipment.status)
    payload["statusLabel"] = equipment_status_label(equipment.status, equipment.assigned_to)
    payload["is_leased"] = bool(equipment.is_leased)
    return payload


def find_equipment(items: list[Equipment], equipment_id: int) -> Equipment:
    for item in items:
        if item.ID == int(equipment_id):
            return item
    raise RecordNotFoundError("ไม่พบอุปกรณ์")


def list_equipment(client: BmuApiClient) -> list[dict]:
    return [serialize_equipment(item) for item in client.list_equipment()]


def get_equipment(client: BmuApiClient, session: SessionContext, equipment_id: int) -> dict:
    equipment = find_equipment(client.list_equipment(), equipment_id)
    payload = serialize_equipment(equipment)
    payload["canChangeStatus"] = session.is_elevated and payload["status"] not in HELD_STATUSES
    payload["canManagePasswords"] = session.is_elevated
    return payload


def resolve_category(payload: EquipmentCreate) -> str:
    category = require_text(payload.category, "กรุณาเลือกหรือระบุหมวดหมู่")
    if category == OTHER_CATEGORY:
        return require_text(payload.customCategory, "กรุณาระบุหมวดหมู่")
    return category


def create_equipment(client: BmuApiClient, session: SessionContext, payload: EquipmentCreate):
    require_elevated(session)
    body = payload.model_dump(exclude={"customCategory"})
    body["category"] = resolve_category(payload)
    body["asset_code"] = require_text(payload.asset_code, "กรุณากรอกรหัสสินทรัพย์")
    body["name"] = require_text(payload.name, "กรุณากรอกชื่อสินทรัพย์")
    result = client.create_equipment(body)
    LOGGER.info("Equipment created asset_code=%s by=%s", body["asset_code"], session.display_identity)
    return result


def delete_equipment(client: BmuApiClient, session: SessionContext, equipment_id: int):
    require_elevated(session)
    result = client.delete_equipment(equipment_id)
    LOGGER.info("Equipment deleted id=%s by=%s", equipment_id, session.display_identity)
    return result


def change_status(client: BmuApiClient, session: SessionContext, equipment_id: int, status: str):
    """Elevated status override.

    Borrowed or in-use equipment keeps its status until the holder returns
    it through the borrow workflow.
    """
    require_elevated(session)
    target = normalize_equipment_status(status)
    if target not in OVERRIDE_STATUSES:
        raise WorkflowError(f"สถานะไม่ถูกต้อง: {status}")
    equipment = find_equipment(client.list_equipment(), equipment_id)
    if normalize_equipment_status(equipment.status) in HELD_STATUSES:
        raise WorkflowError("อุปกรณ์ถูกใช้งานอยู่ หากต้องการเปลี่ยนสถานะกรุณาทำเรื่องคืนเครื่องก่อน")
    result = client.update_equipment_status(equipment_id, target)
    LOGGER.info(
        "Equipment status override id=%s %s->%s by=%s",
        equipment_id,
        equipment.status,
        target,
        session.display_identity,
    )
    return result


def list_passwords(client: BmuApiClient, session: SessionContext, equipment_id: int) -> list[dict]:
    require_elevated(session)
    return [item.model_dump() for item in client.list_equipment_passwords(equipment_id)]


def add_password(client: BmuApiClient, session: SessionContext, equipment_id: int, payload: EquipmentPasswordCreate):
    require_elevated(session)
    require_text(payload.password, "กรุณากรอกรหัสผ่าน")
    return client.add_equipment_password(equipment_id, payload)


def delete_password(client: BmuApiClient, session: SessionContext, password_id: int):
    require_elevated(session)
    return client.delete_equipment_password(password_id)
