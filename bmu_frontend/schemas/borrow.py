from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class BorrowRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    equipment_id: int
    category: Optional[str] = None
    asset_code: Optional[str] = None
    name: Optional[str] = None
    borrower_name: str = ""
    borrow_date: Optional[str] = None
    return_date: Optional[str] = None
    status: str
    remark: Optional[str] = None
    received_by: Optional[str] = None


class BorrowSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipment_id: int
    borrower_name: Optional[str] = None
    return_date: Optional[datetime] = None
    remark: Optional[str] = None


class ReturnSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    received_by: Optional[str] = None


class RejectDecision(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    remark: Optional[str] = None
