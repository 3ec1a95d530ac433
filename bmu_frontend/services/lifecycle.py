"""Equipment and borrow-record lifecycle shared by every page.

The backend is the only place where status changes are applied. The rules
here decide which requests the page API is willing to send at all, so an
invalid transition is refused before any round-trip.
"""

from __future__ import annotations

from datetime import datetime


class WorkflowError(ValueError):
    """A request that the lifecycle rules refuse to send to the backend."""


class InvalidTransitionError(WorkflowError):
    def __init__(self, current: str, target: str):
        super().__init__(f"ไม่สามารถเปลี่ยนสถานะจาก {current} เป็น {target} ได้")
        self.current = current
        self.target = target


class RecordNotFoundError(LookupError):
    pass


class PermissionDeniedError(PermissionError):
    pass


# Equipment status
USABLE = "usable"
IN_USE = "in_use"
BORROWED = "borrowed"
BROKEN = "broken"
NEEDS_REPAIR = "needs_repair"

EQUIPMENT_STATUS_ALIASES = {
    "ว่าง": USABLE,
    "รอซ่อม": NEEDS_REPAIR,
}
FREE_STATUSES = {USABLE}
UNAVAILABLE_FOR_REPORT = {BROKEN, NEEDS_REPAIR}
HELD_STATUSES = {BORROWED, IN_USE}
OVERRIDE_STATUSES = {USABLE, BROKEN, NEEDS_REPAIR}

EQUIPMENT_STATUS_LABELS = {
    USABLE: "ใช้งานได้",
    IN_USE: "ผู้กำลังใช้งาน",
    BORROWED: "อยู่ระหว่างการยืมกลาง",
    BROKEN: "เสีย",
    NEEDS_REPAIR: "รอซ่อม",
}

# Borrow record status
PENDING_BORROW = "pending_borrow"
RECORD_BORROWED = "borrowed"
PENDING_RETURN = "pending_return"
RETURNED = "returned"
REJECTED = "rejected"

INITIAL_RECORD_STATE = PENDING_BORROW
TERMINAL_RECORD_STATES = {RETURNED, REJECTED}
PENDING_RECORD_STATES = {PENDING_BORROW, PENDING_RETURN}
ACTIVE_RECORD_STATES = {RECORD_BORROWED, PENDING_RETURN}
RECORD_TRANSITIONS = {
    PENDING_BORROW: {RECORD_BORROWED, REJECTED},
    RECORD_BORROWED: {PENDING_RETURN},
    PENDING_RETURN: {RETURNED, REJECTED},
    RETURNED: set(),
    REJECTED: set(),
}
APPROVAL_TARGETS = {
    PENDING_BORROW: RECORD_BORROWED,
    PENDING_RETURN: RETURNED,
}

RECORD_STATUS_LABELS = {
    RETURNED: "คืนแล้ว",
    RECORD_BORROWED: "กำลังยืม",
    PENDING_BORROW: "รออนุมัติยืม",
    PENDING_RETURN: "รออนุมัติคืน",
    REJECTED: "ไม่อนุมัติ",
}
REQUEST_TYPE_LABELS = {
    PENDING_BORROW: "ขอยืมอุปกรณ์",
    PENDING_RETURN: "ขอคืนอุปกรณ์",
}

# Repair report status
REPAIR_PENDING = "pending"
REPAIRED = "repaired"
REPAIR_STATUS_LABELS = {
    REPAIR_PENDING: "รอซ่อม",
    REPAIRED: "ซ่อมเสร็จแล้ว",
}

LOCATIONS = ("office", "home")
BORROW_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def normalize_equipment_status(raw: str | None) -> str:
    status = (raw or "").strip()
    return EQUIPMENT_STATUS_ALIASES.get(status, status)


def is_free(status: str | None) -> bool:
    return normalize_equipment_status(status) in FREE_STATUSES


def is_reportable(status: str | None) -> bool:
    return normalize_equipment_status(status) not in UNAVAILABLE_FOR_REPORT


def equipment_status_label(status: str | None, assigned_to: str | None = None) -> str:
    normalized = normalize_equipment_status(status)
    if normalized == IN_USE:
        return f"{EQUIPMENT_STATUS_LABELS[IN_USE]}: {assigned_to or '-'}"
    return EQUIPMENT_STATUS_LABELS.get(normalized, normalized or "-")


def can_transition(current: str, target: str) -> bool:
    return target in RECORD_TRANSITIONS.get(current, set())


def ensure_transition(current: str, target: str) -> str:
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return target


def approval_target(current: str) -> str:
    target = APPROVAL_TARGETS.get(current)
    if target is None:
        raise WorkflowError("คำขอนี้ไม่ได้อยู่ในสถานะรออนุมัติ")
    return ensure_transition(current, target)


def require_elevated(session) -> None:
    if not session.is_elevated:
        raise PermissionDeniedError("คุณไม่มีสิทธิ์ในการทำรายการนี้")


def require_text(value: str | None, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise WorkflowError(message)
    return text


def format_return_date(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.strftime(BORROW_DATE_FORMAT)


def toggle_location(current: str | None) -> str:
    return "office" if (current or "office") == "home" else "home"
