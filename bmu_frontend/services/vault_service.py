"""Company-wide password vault.

The PIN gate is a shared static value kept for parity with the existing
front-end. It is not tied to a user, never checked by the backend and gives
no protection beyond hiding the list from a casual glance. Real access
control for ``/passwords`` must live in the backend.
"""

from __future__ import annotations

import hmac
import os
from typing import Any, MutableMapping

from schemas.vault import VaultEntryUpsert
from services.backend_client import BmuApiClient
from services.lifecycle import require_text


DEFAULT_VAULT_PIN = "9669"
UNLOCK_KEY = "vaultUnlocked"


def _configured_pin() -> str:
    return (os.environ.get("BMU_VAULT_PIN") or DEFAULT_VAULT_PIN).strip()


def check_pin(pin: str | None) -> bool:
    candidate = (pin or "").strip()
    if len(candidate) != 4 or not candidate.isdigit():
        return False
    return hmac.compare_digest(candidate, _configured_pin())


def unlock(store: MutableMapping[str, Any], pin: str | None) -> bool:
    ok = check_pin(pin)
    if ok:
        store[UNLOCK_KEY] = True
    else:
        store.pop(UNLOCK_KEY, None)
    return ok


def lock(store: MutableMapping[str, Any]) -> None:
    store.pop(UNLOCK_KEY, None)


def is_unlocked(store: MutableMapping[str, Any]) -> bool:
    return bool(store.get(UNLOCK_KEY))


def list_entries(client: BmuApiClient) -> list[dict]:
    return [entry.model_dump() for entry in client.list_vault_entries()]


def create_entry(client: BmuApiClient, payload: VaultEntryUpsert):
    require_text(payload.title, "กรุณากรอกหัวข้อ")
    return client.create_vault_entry(payload)


def update_entry(client: BmuApiClient, entry_id: int, payload: VaultEntryUpsert):
    require_text(payload.title, "กรุณากรอกหัวข้อ")
    return client.update_vault_entry(entry_id, payload)


def delete_entry(client: BmuApiClient, entry_id: int):
    return client.delete_vault_entry(entry_id)
