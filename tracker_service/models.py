"""
Shared Pydantic models for the tracker service.

These models define the structure of job records, the collection envelope,
and API responses.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobRecord(BaseModel):
    """One tracked job-application entry."""

    model_config = ConfigDict(extra="allow")

    location: str = Field(..., description="City / region of the position")
    website: str = Field(..., description="Company website")
    websiteToJobs: str = Field(..., description="Link to the company's careers page")
    hasJob: bool = Field(..., description="Whether a matching opening was found")
    name: Optional[str] = Field(None, description="Position title")
    salary: Optional[str] = None
    homeOfficeOption: Optional[bool] = None
    period: Optional[str] = Field(None, description="Full-time, Part-time, ...")
    employmentType: Optional[str] = Field(None, description="Permanent, Contract, ...")
    applicationDate: Optional[str] = Field(None, description="ISO date the application was sent")
    comments: Optional[str] = None
    foundOn: Optional[str] = Field(None, description="Where the posting was found")
    occupyStart: Optional[str] = Field(None, description="Expected start date")


class JobCollection(BaseModel):
    """The full ordered set of job records; the unit of replacement."""

    # Rows are kept verbatim; JobRecord only applies in strict mode.
    rows: List[Any] = Field(default_factory=list)


class WriteResponse(BaseModel):
    """Envelope returned by every write operation."""

    success: bool
    message: str
    count: Optional[int] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    row_count: int
    backing_file_present: bool
    timestamp: datetime
