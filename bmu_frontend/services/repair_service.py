from __future__ import annotations

import logging

from schemas.repairs import BrokenReportSubmission, RepairReport
from services.backend_client import BmuApiClient
from services.equipment_service import find_equipment, serialize_equipment
from services.lifecycle import (
    REPAIR_PENDING,
    REPAIR_STATUS_LABELS,
    RecordNotFoundError,
    WorkflowError,
    is_reportable,
    require_elevated,
    require_text,
)
from services.session_service import SessionContext


LOGGER = logging.getLogger("bmu_frontend.workflow")


def serialize_report(report: RepairReport, can_resolve: bool = False) -> dict:
    payload = report.model_dump()
    payload["repairStatusLabel"] = REPAIR_STATUS_LABELS.get(report.repair_status, report.repair_status)
    payload["canResolve"] = can_resolve and report.repair_status == REPAIR_PENDING
    return payload


def list_reports(client: BmuApiClient, session: SessionContext) -> list[dict]:
    return [serialize_report(report, session.is_elevated) for report in client.list_repair_reports()]


def list_reportable(client: BmuApiClient) -> list[dict]:
    return [serialize_equipment(item) for item in client.list_equipment() if is_reportable(item.status)]


def report_broken(client: BmuApiClient, session: SessionContext, submission: BrokenReportSubmission):
    problem = require_text(submission.problem_detail, "กรุณาระบุอาการเสีย")
    equipment = find_equipment(client.list_equipment(), submission.equipment_id)
    if not is_reportable(equipment.status):
        raise WorkflowError("อุปกรณ์นี้ถูกแจ้งเสียหรือรอซ่อมอยู่แล้ว")
    response = client.report_broken(equipment.ID, problem)
    LOGGER.info("Broken equipment reported equipment=%s asset_code=%s by=%s", equipment.ID, equipment.asset_code, session.display_identity)
    return response


def resolve(client: BmuApiClient, session: SessionContext, report_id: int):
    require_elevated(session)
    report = None
    for item in client.list_repair_reports():
        if item.id == int(report_id):
            report = item
            break
    if report is None:
        raise RecordNotFoundError("ไม่พบรายการแจ้งซ่อม")
    if report.repair_status != REPAIR_PENDING:
        raise WorkflowError("รายการนี้ซ่อมเสร็จแล้ว")
    response = client.resolve_repair(report.id)
    LOGGER.info("Repair resolved report=%s equipment=%s by=%s", report.id, report.equipment_id, session.display_identity)
    return response
