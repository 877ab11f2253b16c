from datetime import date, datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class LinkAttachment(BaseModel):
    """One link record as stored in TimelineEvent.links."""
    model_config = ConfigDict(extra="forbid")

    url: str
    private: bool = False
    title: Optional[str] = None


# --- files_metadata descriptors ---------------------------------------------

class PersistedFileDescriptor(BaseModel):
    """Reference to an existing TimelineEventFile, optionally flagged for deletion."""
    persisted: Literal[True]
    identifier: int
    delete: bool = False
    # echoed back by the edit form; ignored by the sync
    title: Optional[str] = None
    private: Optional[bool] = None


class NewFileDescriptor(BaseModel):
    """A file to create; `identifier` is the key of its content in the upload map."""
    persisted: Literal[False] = False
    identifier: str
    title: str
    private: bool = False


AttachmentDescriptor = Union[PersistedFileDescriptor, NewFileDescriptor]


# --- operation inputs -------------------------------------------------------

class TimelineEventInput(BaseModel):
    """Everything a founder submission may carry when creating an event."""
    target_id: int
    founder_ids: List[int] = Field(min_length=1)
    description: str
    event_on: Optional[date] = None
    links: List[LinkAttachment] = Field(default_factory=list)
    # serialized form from the edit form; wins over `links` when given
    serialized_links: Optional[str] = None
    files_metadata: List[AttachmentDescriptor] = Field(default_factory=list)


class TimelineEventUpdate(BaseModel):
    """Fields a founder may change before review. None means unchanged."""
    description: Optional[str] = None
    event_on: Optional[date] = None
    serialized_links: Optional[str] = None
    files_metadata: List[AttachmentDescriptor] = Field(default_factory=list)


class EvaluationInput(BaseModel):
    faculty_id: int
    # evaluation_criterion_id -> grade
    grades: dict[int, int] = Field(default_factory=dict)
    passed: bool = False


# --- outputs ----------------------------------------------------------------

class VisibleAttachment(BaseModel):
    kind: Literal["file", "link"]
    title: Optional[str] = None
    private: bool
    file_id: Optional[int] = None
    url: Optional[str] = None


class SyncItemOut(BaseModel):
    index: int
    action: str
    ok: bool
    attachment_id: Optional[int] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


class TimelineEventOut(BaseModel):
    id: int
    target_id: int
    description: str
    event_on: date
    links: List[LinkAttachment]
    founder_ids: List[int]
    evaluator_id: Optional[int] = None
    score: Optional[float] = None
    passed_at: Optional[datetime] = None
    improved_timeline_event_id: Optional[int] = None
    created_at: datetime


class SaveResultOut(BaseModel):
    event: TimelineEventOut
    files: List[SyncItemOut]
    summary: str


class ReviewStateOut(BaseModel):
    auto_verifiable: bool
    pending_review: bool
    evaluated: bool
    passed: bool
    reviewed: bool
    overall_grade: Optional[str] = None


class ShareIdentifier(BaseModel):
    founder_id: int
    event_id: int
    event_title: str


class StartupBrief(BaseModel):
    id: int
    slug: str
    name: str


class StartupOut(BaseModel):
    id: int
    slug: str
    name: str
    pitch: Optional[str] = None
    website: Optional[str] = None
    founder_ids: List[int]
