from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


Role = Literal["Normal", "HR", "IT", "OwnerBMU", "Head"]


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    ID: int = Field(validation_alias=AliasChoices("ID", "id"))
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    department: Optional[str] = None
    role: str = "Normal"


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    username: str
    password: str
    first_name: str
    last_name: str
    department: str
    role: Role = "Normal"


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str
    password: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: str
    user: dict[str, Any] = {}
