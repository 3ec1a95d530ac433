import asyncio
import json
import logging
import os
import secrets
from contextlib import contextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.sessions import SessionMiddleware

load_dotenv()

from schemas.borrow import BorrowSubmission, RejectDecision, ReturnSubmission
from schemas.equipment import (
    BindEquipmentRequest,
    EquipmentCreate,
    EquipmentLocationUpdate,
    EquipmentPasswordCreate,
    EquipmentStatusUpdate,
)
from schemas.repairs import BrokenReportSubmission
from schemas.users import LoginRequest, UserCreate
from schemas.vault import VaultEntryUpsert, VaultUnlockRequest
from services import (
    approval_service,
    borrow_service,
    equipment_service,
    my_equipment_service,
    repair_service,
    user_service,
    vault_service,
)
from services.approval_store import ApprovalQueueStore, ApprovalStoreRegistry
from services.backend_client import BackendError, build_backend_client
from services.dashboard_service import build_dashboard_view
from services.lifecycle import PermissionDeniedError, RecordNotFoundError, WorkflowError, require_elevated
from services.notifications import LOGIN_FAILED, NOT_LOGGED_IN, describe_failure, success_message
from services.session_service import SessionContext, build_menu, resolve_session

app = FastAPI(title="BMU Front-end")


DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000")


def _env_list(name: str, default: tuple[str, ...]) -> list[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default)
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


def _parse_bool_env(name: str, default: str) -> bool:
    return str(os.environ.get(name, default)).strip().lower() in {"1", "true", "yes", "on"}


def _require_session_secret() -> str:
    raw = (os.environ.get("SESSION_SIGNING_SECRET") or "").strip()
    if len(raw) < 32:
        raise RuntimeError("SESSION_SIGNING_SECRET must be set and at least 32 characters long.")
    return raw


def cors_settings() -> tuple[list[str], bool]:
    origins = _env_list("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS)
    allow_credentials = _parse_bool_env("CORS_ALLOW_CREDENTIALS", "true")
    if "*" in origins:
        # The session cookie is never offered to a wildcard origin.
        allow_credentials = False
    return origins, allow_credentials


_CORS_ALLOW_ORIGINS, _CORS_ALLOW_CREDENTIALS = cors_settings()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    SessionMiddleware,
    secret_key=_require_session_secret(),
    session_cookie="bmu_frontend_session",
    same_site="lax",
    https_only=_parse_bool_env("SESSION_HTTPS_ONLY", "false"),
)

APPROVAL_POLL_INTERVAL_SECONDS = float(os.environ.get("APPROVAL_POLL_INTERVAL_SECONDS") or "30")
APPROVAL_POLLING_ENABLED = _parse_bool_env("APPROVAL_POLLING_ENABLED", "true")
STREAM_KEEPALIVE_SECONDS = 15.0
AUTH_LOGGER = logging.getLogger("bmu_frontend.auth")
APPROVAL_STORES = ApprovalStoreRegistry()

# Requests the layout keeps issuing while any screen, the vault included, is open.
BACKGROUND_PATHS = ("/api/approvals/pending-count", "/api/menu", "/api/auth/me")


class NotAuthenticated(Exception):
    pass


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    return JSONResponse(status_code=401, content={"detail": NOT_LOGGED_IN, "redirect": "/login"})


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(RecordNotFoundError)
async def record_not_found_handler(request: Request, exc: RecordNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@contextmanager
def _backend_call(operation: str):
    try:
        yield
    except BackendError as exc:
        status_code, message = describe_failure(operation, exc)
        raise HTTPException(status_code=status_code, detail=message) from exc


def get_session_context(
    request: Request,
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
) -> SessionContext:
    token = x_session_token or request.session.get("token")
    session = resolve_session(token)
    if session is None:
        if not x_session_token:
            _end_cookie_session(request)
        raise NotAuthenticated()
    if _leaves_vault(request.url.path):
        vault_service.lock(request.session)
    return session


def _leaves_vault(path: str) -> bool:
    if path.startswith("/api/vault"):
        return False
    return not any(path.startswith(prefix) for prefix in BACKGROUND_PATHS)


def _end_cookie_session(request: Request) -> None:
    APPROVAL_STORES.remove(request.session.get("sid"))
    request.session.clear()


def _client(session: SessionContext | None = None):
    return build_backend_client(session.token if session else None)


def _ensure_approval_store(request: Request, session: SessionContext) -> ApprovalQueueStore | None:
    if not session.is_elevated:
        return None
    sid = request.session.get("sid")
    if not sid:
        sid = secrets.token_urlsafe(16)
        request.session["sid"] = sid
    store = APPROVAL_STORES.get(sid)
    if store is not None:
        return store

    token = session.token
    store = ApprovalQueueStore(
        lambda: build_backend_client(token).list_pending_history(),
        poll_interval_seconds=APPROVAL_POLL_INTERVAL_SECONDS,
        expires_at=session.expires_at,
    )
    APPROVAL_STORES.register(sid, store)
    store.refresh()
    if APPROVAL_POLLING_ENABLED:
        store.start()
    return store


def _signal_request_update() -> None:
    APPROVAL_STORES.broadcast()


def _with_message(operation: str, **payload) -> dict:
    return {"message": success_message(operation), **payload}


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


# Session


@app.post("/api/auth/login")
def auth_login(payload: dict, request: Request):
    try:
        parsed = LoginRequest.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="กรุณากรอกชื่อผู้ใช้และรหัสผ่าน")

    username = parsed.username.strip()
    if not username or not parsed.password:
        raise HTTPException(status_code=400, detail="กรุณากรอกชื่อผู้ใช้และรหัสผ่าน")

    try:
        result = _client().login(username, parsed.password)
    except BackendError as exc:
        AUTH_LOGGER.warning("Login failed username=%s status=%s", username, exc.status_code)
        status_code, message = describe_failure("login", exc)
        raise HTTPException(status_code=status_code, detail=message) from exc

    session = resolve_session(result.token)
    if session is None:
        AUTH_LOGGER.warning("Login failed username=%s reason=undecodable_token", username)
        raise HTTPException(status_code=502, detail=LOGIN_FAILED)

    _end_cookie_session(request)
    request.session["token"] = result.token
    request.session["user"] = dict(result.user)
    request.session["sid"] = secrets.token_urlsafe(16)

    store = _ensure_approval_store(request, session)
    AUTH_LOGGER.info("Login success username=%s role=%s", session.username, session.role)
    return _with_message(
        "login",
        user=session.profile(),
        menu=build_menu(session, store.pending_count if store else 0),
        redirect="/dashboard/equipment",
    )


@app.post("/api/auth/logout")
def auth_logout(request: Request):
    _end_cookie_session(request)
    return _with_message("logout", ok=True, redirect="/login")


@app.get("/api/auth/me")
def auth_me(request: Request, session: SessionContext = Depends(get_session_context)):
    stored_user = request.session.get("user")
    return {
        "user": session.profile(),
        "storedUser": stored_user if isinstance(stored_user, dict) else None,
    }


@app.get("/api/menu")
def get_menu(request: Request, session: SessionContext = Depends(get_session_context)):
    store = _ensure_approval_store(request, session)
    return {
        "profile": session.profile(),
        "menu": build_menu(session, store.pending_count if store else 0),
    }


@app.get("/api/dashboard")
def get_dashboard(session: SessionContext = Depends(get_session_context)):
    with _backend_call("dashboard"):
        summary = _client(session).get_dashboard_summary()
    return build_dashboard_view(summary)


# Equipment


@app.get("/api/equipment")
def get_equipment(session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.list"):
        rows = equipment_service.list_equipment(_client(session))
    return {"items": rows, "canManage": session.is_elevated}


@app.get("/api/equipment/categories")
def get_equipment_categories(session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.categories"):
        categories = _client(session).list_categories()
    return {"categories": categories, "otherCategory": equipment_service.OTHER_CATEGORY}


@app.get("/api/equipment/{equipment_id}")
def get_equipment_item(equipment_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.list"):
        return equipment_service.get_equipment(_client(session), session, equipment_id)


@app.post("/api/equipment")
def create_equipment(payload: EquipmentCreate, session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.create"):
        result = equipment_service.create_equipment(_client(session), session, payload)
    return _with_message("equipment.create", result=result)


@app.delete("/api/equipment/{equipment_id}")
def delete_equipment(equipment_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.delete"):
        equipment_service.delete_equipment(_client(session), session, equipment_id)
    return _with_message("equipment.delete", id=equipment_id)


@app.put("/api/equipment/{equipment_id}/status")
def update_equipment_status(
    equipment_id: int,
    payload: EquipmentStatusUpdate,
    session: SessionContext = Depends(get_session_context),
):
    with _backend_call("equipment.status"):
        equipment_service.change_status(_client(session), session, equipment_id, payload.status)
    return _with_message("equipment.status", id=equipment_id, status=payload.status)


@app.get("/api/equipment/{equipment_id}/passwords")
def get_equipment_passwords(equipment_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.passwords"):
        return {"items": equipment_service.list_passwords(_client(session), session, equipment_id)}


@app.post("/api/equipment/{equipment_id}/passwords")
def add_equipment_password(
    equipment_id: int,
    payload: EquipmentPasswordCreate,
    session: SessionContext = Depends(get_session_context),
):
    with _backend_call("equipment.passwords.add"):
        equipment_service.add_password(_client(session), session, equipment_id, payload)
    return _with_message("equipment.passwords.add", equipment_id=equipment_id)


@app.delete("/api/equipment/passwords/{password_id}")
def delete_equipment_password(password_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("equipment.passwords.delete"):
        equipment_service.delete_password(_client(session), session, password_id)
    return _with_message("equipment.passwords.delete", id=password_id)


# Borrow / return


@app.get("/api/borrow")
def get_borrow_history(session: SessionContext = Depends(get_session_context)):
    with _backend_call("borrow.list"):
        rows = borrow_service.list_active(_client(session), session)
    return {"items": rows, "currentUser": session.display_identity}


@app.get("/api/borrow/available")
def get_borrowable_equipment(session: SessionContext = Depends(get_session_context)):
    with _backend_call("borrow.available"):
        rows = borrow_service.list_available(_client(session))
    return {"items": rows, "defaultBorrowerName": session.display_identity}


@app.post("/api/borrow")
def submit_borrow(payload: BorrowSubmission, session: SessionContext = Depends(get_session_context)):
    with _backend_call("borrow.submit"):
        result = borrow_service.submit_borrow(_client(session), session, payload)
    _signal_request_update()
    return _with_message("borrow.submit", record=result)


@app.post("/api/borrow/{history_id}/return")
def submit_return(
    history_id: int,
    payload: ReturnSubmission,
    session: SessionContext = Depends(get_session_context),
):
    with _backend_call("borrow.return"):
        result = borrow_service.submit_return(_client(session), session, history_id, payload.received_by)
    _signal_request_update()
    return _with_message("borrow.return", record=result)


# Approvals


@app.get("/api/approvals")
def get_pending_approvals(request: Request, session: SessionContext = Depends(get_session_context)):
    with _backend_call("approvals.list"):
        rows = approval_service.list_pending(_client(session), session)
    store = _ensure_approval_store(request, session)
    if store is not None:
        store.update(rows)
    return {"items": rows, "pendingCount": len(rows)}


@app.get("/api/approvals/pending-count")
def get_pending_count(request: Request, session: SessionContext = Depends(get_session_context)):
    require_elevated(session)
    store = _ensure_approval_store(request, session)
    return store.snapshot()


def _sse(snapshot: dict) -> str:
    return f"event: pending-count\ndata: {json.dumps(snapshot)}\n\n"


@app.get("/api/approvals/pending-count/stream")
async def stream_pending_count(request: Request, session: SessionContext = Depends(get_session_context)):
    require_elevated(session)
    store = await run_in_threadpool(_ensure_approval_store, request, session)
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = store.subscribe(lambda snapshot: loop.call_soon_threadsafe(queue.put_nowait, snapshot))

    async def events():
        try:
            yield _sse(store.snapshot())
            while not await request.is_disconnected():
                try:
                    snapshot = await asyncio.wait_for(queue.get(), timeout=STREAM_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(snapshot)
        finally:
            unsubscribe()

    return StreamingResponse(events(), media_type="text/event-stream")


@app.post("/api/approvals/{history_id}/approve")
def approve_request(history_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("approvals.approve"):
        result = approval_service.approve(_client(session), session, history_id)
    _signal_request_update()
    return _with_message("approvals.approve", record=result)


@app.post("/api/approvals/{history_id}/reject")
def reject_request(
    history_id: int,
    payload: RejectDecision,
    session: SessionContext = Depends(get_session_context),
):
    with _backend_call("approvals.reject"):
        result = approval_service.reject(_client(session), session, history_id, payload.remark)
    _signal_request_update()
    return _with_message("approvals.reject", record=result)


# Broken equipment


@app.get("/api/broken")
def get_repair_reports(session: SessionContext = Depends(get_session_context)):
    with _backend_call("broken.list"):
        rows = repair_service.list_reports(_client(session), session)
    return {"items": rows, "currentUser": session.display_identity}


@app.get("/api/broken/reportable")
def get_reportable_equipment(session: SessionContext = Depends(get_session_context)):
    with _backend_call("broken.reportable"):
        return {"items": repair_service.list_reportable(_client(session))}


@app.post("/api/broken")
def report_broken_equipment(payload: BrokenReportSubmission, session: SessionContext = Depends(get_session_context)):
    with _backend_call("broken.report"):
        result = repair_service.report_broken(_client(session), session, payload)
    return _with_message("broken.report", result=result)


@app.post("/api/broken/{report_id}/resolve")
def resolve_repair_report(report_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("broken.resolve"):
        result = repair_service.resolve(_client(session), session, report_id)
    return _with_message("broken.resolve", id=report_id, result=result)


# My equipment


@app.get("/api/my-equipment")
def get_my_equipment(session: SessionContext = Depends(get_session_context)):
    with _backend_call("my.list"):
        rows = my_equipment_service.list_my_equipment(_client(session), session)
    return {"items": rows, "currentUser": session.display_identity}


@app.get("/api/my-equipment/bindable")
def get_bindable_equipment(session: SessionContext = Depends(get_session_context)):
    with _backend_call("my.list"):
        return {"items": my_equipment_service.list_bindable(_client(session))}


@app.post("/api/my-equipment/bind")
def bind_equipment(payload: BindEquipmentRequest, session: SessionContext = Depends(get_session_context)):
    with _backend_call("my.bind"):
        result = my_equipment_service.bind(_client(session), session, payload.asset_code)
    return _with_message("my.bind", asset_code=payload.asset_code, result=result)


@app.put("/api/my-equipment/{equipment_id}/location")
def update_my_equipment_location(
    equipment_id: int,
    payload: EquipmentLocationUpdate | None = None,
    session: SessionContext = Depends(get_session_context),
):
    with _backend_call("my.location"):
        result = my_equipment_service.set_location(
            _client(session),
            session,
            equipment_id,
            payload.location if payload else None,
        )
    return _with_message("my.location", **result)


# Password vault


def _require_vault_unlocked(request: Request) -> None:
    if not vault_service.is_unlocked(request.session):
        raise HTTPException(status_code=423, detail="กรุณาปลดล็อคด้วยรหัส PIN")


@app.post("/api/vault/unlock")
def unlock_vault(
    payload: VaultUnlockRequest,
    request: Request,
    session: SessionContext = Depends(get_session_context),
):
    if not vault_service.unlock(request.session, payload.pin):
        AUTH_LOGGER.warning("Vault unlock failed username=%s", session.username)
        raise HTTPException(status_code=400, detail="รหัส PIN ไม่ถูกต้อง กรุณาลองใหม่")
    return _with_message("vault.unlock", unlocked=True)


@app.post("/api/vault/lock")
def lock_vault(request: Request, session: SessionContext = Depends(get_session_context)):
    vault_service.lock(request.session)
    return {"unlocked": False}


@app.get("/api/vault")
def get_vault_entries(request: Request, session: SessionContext = Depends(get_session_context)):
    _require_vault_unlocked(request)
    with _backend_call("vault.list"):
        return {"items": vault_service.list_entries(_client(session))}


@app.post("/api/vault")
def create_vault_entry(
    payload: VaultEntryUpsert,
    request: Request,
    session: SessionContext = Depends(get_session_context),
):
    _require_vault_unlocked(request)
    with _backend_call("vault.create"):
        result = vault_service.create_entry(_client(session), payload)
    return _with_message("vault.create", result=result)


@app.put("/api/vault/{entry_id}")
def update_vault_entry(
    entry_id: int,
    payload: VaultEntryUpsert,
    request: Request,
    session: SessionContext = Depends(get_session_context),
):
    _require_vault_unlocked(request)
    with _backend_call("vault.update"):
        result = vault_service.update_entry(_client(session), entry_id, payload)
    return _with_message("vault.update", id=entry_id, result=result)


@app.delete("/api/vault/{entry_id}")
def delete_vault_entry(entry_id: int, request: Request, session: SessionContext = Depends(get_session_context)):
    _require_vault_unlocked(request)
    with _backend_call("vault.delete"):
        vault_service.delete_entry(_client(session), entry_id)
    return _with_message("vault.delete", id=entry_id)


# Users


@app.get("/api/users")
def get_users(session: SessionContext = Depends(get_session_context)):
    with _backend_call("users.list"):
        return {"items": user_service.list_users(_client(session), session)}


@app.post("/api/users")
def create_user(payload: UserCreate, session: SessionContext = Depends(get_session_context)):
    with _backend_call("users.create"):
        result = user_service.create_user(_client(session), session, payload)
    return _with_message("users.create", result=result)


@app.delete("/api/users/{user_id}")
def delete_user(user_id: int, session: SessionContext = Depends(get_session_context)):
    with _backend_call("users.delete"):
        user_service.delete_user(_client(session), session, user_id)
    return _with_message("users.delete", id=user_id)
