from typing import List

from pydantic import BaseModel, ConfigDict


class CategoryCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    value: int


class DashboardSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    totalEquipment: int
    brokenEquipment: int
    borrowsThisMonth: int
    categoryCounts: List[CategoryCount] = []
