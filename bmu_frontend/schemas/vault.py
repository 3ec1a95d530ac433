from typing import Optional

from pydantic import BaseModel, ConfigDict


class VaultEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    title: str = ""
    username: Optional[str] = None
    password: Optional[str] = None
    details: Optional[str] = None
    remark: Optional[str] = None
    updated_at: Optional[str] = None


class VaultEntryUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str
    username: Optional[str] = None
    password: Optional[str] = None
    details: Optional[str] = None
    remark: Optional[str] = None


class VaultUnlockRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    pin: str = ""
