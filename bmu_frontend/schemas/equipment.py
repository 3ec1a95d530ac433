from typing import Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Equipment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ID: int = Field(validation_alias=AliasChoices("ID", "id"))
    category: str = ""
    sub_category: Optional[str] = None
    asset_group_code: Optional[str] = None
    asset_code: str
    name: str = ""
    unit: Optional[str] = None
    description: Optional[str] = None
    ref_document: Optional[str] = None
    checklist: Optional[str] = None
    is_leased: Optional[Union[bool, int]] = None
    status: str = ""
    assigned_to: Optional[str] = None
    assigned_date: Optional[str] = None
    current_location: Optional[str] = None
    created_at: Optional[str] = None


class EquipmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: str
    customCategory: Optional[str] = None
    sub_category: Optional[str] = None
    asset_group_code: Optional[str] = None
    asset_code: str
    name: str
    unit: Optional[str] = None
    description: Optional[str] = None
    ref_document: Optional[str] = None
    checklist: Optional[str] = None
    is_leased: bool = False
    status: Literal["usable", "broken", "needs_repair"] = "usable"


class EquipmentStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: Literal["usable", "broken", "needs_repair"]


class EquipmentLocationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    location: Literal["office", "home"]


class BindEquipmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    asset_code: str


class EquipmentPassword(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ID: int = Field(validation_alias=AliasChoices("ID", "id"))
    equipment_id: Optional[int] = None
    password: str = ""
    note: Optional[str] = None


class EquipmentPasswordCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    password: str
    note: Optional[str] = None
