"""Routing and tracking request/response schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import Coordinate, CrewAvailability, CrewMember, Customer
from ..services.routing.models import Route

StopAction = Literal["arrive", "depart", "pause", "resume", "skip"]


class DailyRoutesRequest(BaseModel):
    company_id: str
    date: dt.date
    customers: Optional[List[Customer]] = Field(
        default=None,
        description="Inline customers. When omitted, customers and crews are read from the data root.",
    )
    crews: List[CrewAvailability] = Field(default_factory=list)
    members: List[CrewMember] = Field(
        default_factory=list,
        description="Crew members with weekly schedules; grouped into crews for the date.",
    )
    base_location: Optional[Coordinate] = None


class DailyRoutesResponse(BaseModel):
    company_id: str
    date: dt.date
    routes: List[Route]


class StopEventRequest(BaseModel):
    route: Route
    customer_id: str
    timestamp: Optional[dt.datetime] = None


class ProgressRequest(BaseModel):
    route: Route
    current_location: Optional[Coordinate] = None
    now: Optional[dt.datetime] = None


class ScheduleStatusRequest(BaseModel):
    route: Route
    now: Optional[dt.datetime] = None


class TimeBreakdownRequest(BaseModel):
    route: Route


class MetricsExportRequest(BaseModel):
    routes: List[Route] = Field(..., min_length=1)
    company_id: Optional[str] = None
