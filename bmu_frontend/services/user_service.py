from __future__ import annotations

import logging

from schemas.users import UserCreate
from services.backend_client import BmuApiClient
from services.lifecycle import require_elevated, require_text
from services.session_service import SessionContext


LOGGER = logging.getLogger("bmu_frontend.auth")


def list_users(client: BmuApiClient, session: SessionContext) -> list[dict]:
    require_elevated(session)
    rows = []
    for user in client.list_users():
        payload = user.model_dump()
        payload["fullName"] = f"{user.first_name or ''} {user.last_name or ''}".strip()
        rows.append(payload)
    return rows


def create_user(client: BmuApiClient, session: SessionContext, payload: UserCreate):
    require_elevated(session)
    for value in (payload.username, payload.password, payload.first_name, payload.last_name, payload.department):
        require_text(value, "จำเป็นต้องกรอก")
    response = client.create_user(payload)
    LOGGER.info("User created username=%s role=%s by=%s", payload.username, payload.role, session.display_identity)
    return response


def delete_user(client: BmuApiClient, session: SessionContext, user_id: int):
    require_elevated(session)
    response = client.delete_user(user_id)
    LOGGER.info("User deleted id=%s by=%s", user_id, session.display_identity)
    return response
