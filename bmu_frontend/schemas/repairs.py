from typing import Optional

from pydantic import BaseModel, ConfigDict


class RepairReport(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    equipment_id: int
    category: Optional[str] = None
    asset_code: Optional[str] = None
    name: Optional[str] = None
    reporter_name: Optional[str] = None
    problem_detail: str = ""
    report_date: Optional[str] = None
    repair_status: str = "pending"
    resolved_date: Optional[str] = None


class BrokenReportSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipment_id: int
    problem_detail: Optional[str] = None
