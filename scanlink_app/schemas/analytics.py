from pydantic import BaseModel
from typing import Dict
from datetime import date


class Totals(BaseModel):
    scan_count: int
    # Distinct client IPs: NAT'd users collapse, proxies inflate
    unique_clients: int


class BreakdownEntry(BaseModel):
    value: str
    count: int


class TimePoint(BaseModel):
    day: date
    count: int


class SummaryResponse(BaseModel):
    """Dashboard summary. Breakdown maps keep count-descending order."""
    total_scans: int
    unique_clients: int
    countries: Dict[str, int]
    devices: Dict[str, int]
    browsers: Dict[str, int]
