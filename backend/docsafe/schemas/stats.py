from typing import Dict, List

from pydantic import BaseModel


class AdminStats(BaseModel):
    total_documents: int
    documents_by_status: Dict[str, int]
    documents_by_category: Dict[str, int]
    documents_by_folder: Dict[str, int]
    recent_uploads: int
    storage_usage: int
    storage_usage_formatted: str


class AdminStatsResponse(BaseModel):
    success: bool = True
    data: AdminStats


class DailyActivity(BaseModel):
    date: str
    documents: int
    activities: int


class HourlyActivity(BaseModel):
    hour: int
    count: int


class StatusShare(BaseModel):
    status: str
    count: int
    percentage: int


class ChartData(BaseModel):
    daily_activity: List[DailyActivity]
    hourly_activity: List[HourlyActivity]
    status_distribution: List[StatusShare]
