from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError


ELEVATED_ROLES = {"HR", "IT", "OwnerBMU", "Head"}
VAULT_MENU_ROLES = {"IT", "OwnerBMU"}

BASE_MENU = [
    {"key": "/dashboard/summary", "name": "Dashboard", "label": "ภาพรวมระบบ"},
    {"key": "/dashboard/equipment", "name": "Equipment", "label": "อุปกรณ์ทั้งหมด"},
    {"key": "/dashboard/borrow", "name": "Borrow Equipment", "label": "ยืมอุปกรณ์"},
    {"key": "/dashboard/my-equipment", "name": "My Equipment", "label": "ข้อมูลอุปกรณ์ส่วนตัว"},
    {"key": "/dashboard/report-broken", "name": "Report Broken Equipment", "label": "แจ้งอุปกรณ์เสีย"},
]
ELEVATED_MENU = [
    {"key": "/dashboard/approval-requests", "name": "Approval Requests", "label": "คำขออนุมัติ"},
    {"key": "/dashboard/users", "name": "User Management", "label": "จัดการผู้ใช้งาน"},
]
VAULT_MENU = [
    {"key": "/dashboard/passwords", "name": "Password Manager", "label": "จัดการรหัสผ่าน"},
]


@dataclass
class SessionContext:
    token: str
    user_id: int | None
    username: str
    first_name: str
    last_name: str
    department: str
    role: str
    expires_at: float | None = None
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def is_elevated(self) -> bool:
        return is_elevated(self.role)

    @property
    def can_open_vault_menu(self) -> bool:
        return can_open_vault_menu(self.role)

    @property
    def display_identity(self) -> str:
        name = self.username or str(self.claims.get("name") or "").strip()
        if name:
            return name
        return f"User ID: {self.user_id}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def profile(self) -> dict[str, Any]:
        return {
            "id": self.user_id,
            "username": self.username,
            "displayName": self.full_name or "ผู้ใช้งาน",
            "department": self.department,
            "role": self.role,
            "isElevated": self.is_elevated,
        }


def is_elevated(role: str | None) -> bool:
    return (role or "") in ELEVATED_ROLES


def can_open_vault_menu(role: str | None) -> bool:
    return (role or "") in VAULT_MENU_ROLES


def _to_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def resolve_session(token: str | None, now: float | None = None) -> SessionContext | None:
    """Decode the bearer credential into a session, or ``None`` when it is
    missing, malformed or expired.

    The signature is not verified here; the backend checks it on every call.
    """
    raw = (token or "").strip()
    if not raw:
        return None
    try:
        claims = jwt.get_unverified_claims(raw)
    except JOSEError:
        return None
    if not isinstance(claims, dict):
        return None

    expires_at = claims.get("exp")
    if expires_at is not None:
        try:
            expires_at = float(expires_at)
        except (TypeError, ValueError):
            return None
        if expires_at <= (now if now is not None else time.time()):
            return None

    return SessionContext(
        token=raw,
        user_id=_to_int(claims.get("id")),
        username=str(claims.get("username") or "").strip(),
        first_name=str(claims.get("first_name") or "").strip(),
        last_name=str(claims.get("last_name") or "").strip(),
        department=str(claims.get("department") or "").strip(),
        role=str(claims.get("role") or "").strip(),
        expires_at=expires_at,
        claims=claims,
    )


def build_menu(session: SessionContext, pending_count: int = 0) -> list[dict[str, Any]]:
    items = [dict(item) for item in BASE_MENU]
    if session.is_elevated:
        for item in ELEVATED_MENU:
            entry = dict(item)
            if entry["key"] == "/dashboard/approval-requests":
                entry["badge"] = int(pending_count)
            items.append(entry)
    if session.can_open_vault_menu:
        items.extend(dict(item) for item in VAULT_MENU)
    return items
