from __future__ import annotations

import http.client
import json
import logging
import os
import urllib.error
import urllib.request
from typing import Any

from pydantic import TypeAdapter, ValidationError

from schemas.borrow import BorrowRecord
from schemas.dashboard import DashboardSummary
from schemas.equipment import Equipment, EquipmentPassword, EquipmentPasswordCreate
from schemas.repairs import RepairReport
from schemas.users import LoginResponse, User, UserCreate
from schemas.vault import VaultEntry, VaultEntryUpsert


LOGGER = logging.getLogger("bmu_frontend.backend")

DEFAULT_BASE_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT_SECONDS = 20

_EQUIPMENT_LIST = TypeAdapter(list[Equipment])
_BORROW_LIST = TypeAdapter(list[BorrowRecord])
_REPAIR_LIST = TypeAdapter(list[RepairReport])
_EQUIPMENT_PASSWORD_LIST = TypeAdapter(list[EquipmentPassword])
_VAULT_LIST = TypeAdapter(list[VaultEntry])
_USER_LIST = TypeAdapter(list[User])
_CATEGORY_LIST = TypeAdapter(list[str])


class BackendError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class BackendHTTPError(BackendError):
    pass


class BackendConnectionError(BackendError):
    pass


class MalformedResponseError(BackendError):
    pass


def _extract_detail(raw: bytes) -> str | None:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return None


class BmuApiClient:
    """Bearer-authenticated JSON client for the BMU backend API.

    Every list/detail response is validated against its schema; a payload of
    the wrong shape raises ``MalformedResponseError`` instead of leaking
    untyped data into the page API.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        data = None
        if payload is not None:
            data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json"
        request = urllib.request.Request(
            url=f"{self.base_url}{path}",
            data=data,
            headers=headers,
            method=method,
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            detail = _extract_detail(exc.read() or b"")
            LOGGER.warning("Backend %s %s failed status=%s detail=%s", method, path, exc.code, detail)
            raise BackendHTTPError(f"Backend HTTP error: {exc.code}", status_code=exc.code, detail=detail) from exc
        except urllib.error.URLError as exc:
            LOGGER.warning("Backend %s %s unreachable reason=%s", method, path, exc.reason)
            raise BackendConnectionError(f"Backend connection error: {exc.reason}") from exc
        except (TimeoutError, OSError, http.client.HTTPException) as exc:
            # Raised from the socket while the response is being read.
            LOGGER.warning("Backend %s %s transport failure: %r", method, path, exc)
            raise BackendConnectionError(f"Backend connection error: {exc!r}") from exc

        if not body or not body.strip():
            return None
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedResponseError(f"Backend returned invalid JSON for {method} {path}") from exc

    def _validated(self, adapter: TypeAdapter, payload: Any, what: str) -> Any:
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            LOGGER.warning("Malformed %s response: %s", what, exc.errors()[:3])
            raise MalformedResponseError(f"Backend returned malformed {what}") from exc

    # Auth

    def login(self, username: str, password: str) -> LoginResponse:
        payload = self._request("POST", "/auth/login", {"username": username, "password": password})
        return self._validated(TypeAdapter(LoginResponse), payload, "login response")

    # Equipment

    def list_equipment(self) -> list[Equipment]:
        return self._validated(_EQUIPMENT_LIST, self._request("GET", "/equipment"), "equipment list")

    def list_categories(self) -> list[str]:
        return self._validated(_CATEGORY_LIST, self._request("GET", "/equipment/categories"), "category list")

    def create_equipment(self, payload: dict[str, Any]) -> Any:
        return self._request("POST", "/equipment", payload)

    def delete_equipment(self, equipment_id: int) -> Any:
        return self._request("DELETE", f"/equipment/{int(equipment_id)}")

    def update_equipment_status(self, equipment_id: int, status: str) -> Any:
        return self._request("PUT", f"/equipment/{int(equipment_id)}/status", {"status": status})

    def update_equipment_location(self, equipment_id: int, location: str) -> Any:
        return self._request("PUT", f"/equipment/{int(equipment_id)}/location", {"location": location})

    def bind_equipment(self, asset_code: str) -> Any:
        return self._request("POST", "/equipment/bind", {"asset_code": asset_code})

    def get_dashboard_summary(self) -> DashboardSummary:
        payload = self._request("GET", "/equipment/dashboard-summary")
        return self._validated(TypeAdapter(DashboardSummary), payload, "dashboard summary")

    # Borrow history

    def list_active_history(self) -> list[BorrowRecord]:
        return self._validated(_BORROW_LIST, self._request("GET", "/equipment/history/active"), "active borrow list")

    def list_pending_history(self) -> list[BorrowRecord]:
        return self._validated(_BORROW_LIST, self._request("GET", "/equipment/history/pending"), "pending request list")

    def request_borrow(self, equipment_id: int, payload: dict[str, Any]) -> Any:
        return self._request("POST", f"/equipment/history/{int(equipment_id)}/borrow", payload)

    def request_return(self, history_id: int, received_by: str) -> Any:
        return self._request("PUT", f"/equipment/history/{int(history_id)}/return", {"received_by": received_by})

    def approve_request(self, history_id: int) -> Any:
        return self._request("PUT", f"/equipment/history/{int(history_id)}/approve")

    def reject_request(self, history_id: int, remark: str) -> Any:
        return self._request("PUT", f"/equipment/history/{int(history_id)}/reject", {"remark": remark})

    # Broken equipment

    def list_repair_reports(self) -> list[RepairReport]:
        return self._validated(_REPAIR_LIST, self._request("GET", "/equipment/broken"), "repair report list")

    def report_broken(self, equipment_id: int, problem_detail: str) -> Any:
        return self._request(
            "POST",
            "/equipment/broken",
            {"equipment_id": int(equipment_id), "problem_detail": problem_detail},
        )

    def resolve_repair(self, report_id: int) -> Any:
        return self._request("PUT", f"/equipment/broken/{int(report_id)}/resolve")

    # Equipment-scoped passwords

    def list_equipment_passwords(self, equipment_id: int) -> list[EquipmentPassword]:
        payload = self._request("GET", f"/equipment/{int(equipment_id)}/passwords")
        return self._validated(_EQUIPMENT_PASSWORD_LIST, payload, "equipment password list")

    def add_equipment_password(self, equipment_id: int, payload: EquipmentPasswordCreate) -> Any:
        return self._request("POST", f"/equipment/{int(equipment_id)}/passwords", payload.model_dump())

    def delete_equipment_password(self, password_id: int) -> Any:
        return self._request("DELETE", f"/equipment/passwords/{int(password_id)}")

    # Password vault

    def list_vault_entries(self) -> list[VaultEntry]:
        return self._validated(_VAULT_LIST, self._request("GET", "/passwords"), "password list")

    def create_vault_entry(self, payload: VaultEntryUpsert) -> Any:
        return self._request("POST", "/passwords", payload.model_dump())

    def update_vault_entry(self, entry_id: int, payload: VaultEntryUpsert) -> Any:
        return self._request("PUT", f"/passwords/{int(entry_id)}", payload.model_dump())

    def delete_vault_entry(self, entry_id: int) -> Any:
        return self._request("DELETE", f"/passwords/{int(entry_id)}")

    # Users

    def list_users(self) -> list[User]:
        return self._validated(_USER_LIST, self._request("GET", "/users"), "user list")

    def create_user(self, payload: UserCreate) -> Any:
        return self._request("POST", "/users", payload.model_dump())

    def delete_user(self, user_id: int) -> Any:
        return self._request("DELETE", f"/users/{int(user_id)}")


def build_backend_client(token: str | None = None) -> BmuApiClient:
    base_url = (os.environ.get("BMU_API_BASE_URL") or DEFAULT_BASE_URL).strip()
    timeout = float(os.environ.get("BMU_API_TIMEOUT_SECONDS") or DEFAULT_TIMEOUT_SECONDS)
    return BmuApiClient(base_url, token=token, timeout=timeout)
