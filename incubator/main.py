# incubator/main.py
from __future__ import annotations

import json
from dataclasses import asdict
from typing import Dict, Generator, List, Optional, Tuple

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from incubator.db.session import create_all, get_session
from incubator.exceptions import IncubatorError, RecordNotFound, incubator_exception_handler
from incubator.logging_config import bind_context, clear_context, setup_logging
from incubator.models.schemas import (
    EvaluationInput,
    ReviewStateOut,
    SaveResultOut,
    ShareIdentifier,
    StartupBrief,
    StartupOut,
    SyncItemOut,
    TimelineEventInput,
    TimelineEventOut,
    TimelineEventUpdate,
    VisibleAttachment,
)
from incubator.models.startup import Faculty, Founder, Startup
from incubator.models.timeline_event import TimelineEvent
from incubator.timeline import lineage, review
from incubator.timeline.file_sync import SyncResult
from incubator.timeline.links import AttachmentSet
from incubator.timeline.service import (
    Notifier,
    SaveResult,
    create_timeline_event,
    delete_timeline_event,
    get_event,
    update_timeline_event,
)
from incubator.timeline.share import share_identifier
from incubator.timeline.visibility import attachments_for

setup_logging()

# FastAPI instance (uvicorn target is "incubator.main:api")
api = FastAPI(title="Incubator Timeline API")
api.add_exception_handler(IncubatorError, incubator_exception_handler)


@api.exception_handler(PydanticValidationError)
async def _payload_validation_handler(request: Request, exc: PydanticValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "code": "VALIDATION_ERROR", "errors": json.loads(exc.json(include_url=False))},
    )


@api.middleware("http")
async def _request_context(request: Request, call_next):
    clear_context()
    bind_context(path=request.url.path, method=request.method)
    return await call_next(request)


# --- helpers -----------------------------------------------------------------

def db() -> Generator[Session, None, None]:
    """Yield a DB session per request."""
    with get_session() as s:
        yield s


def get_notifier() -> Optional[Notifier]:
    """Post-save notification hook; override to plug a mailer / push sender in."""
    return None


# Ensure tables exist (safe alongside Alembic in dev)
@api.on_event("startup")
def _create_tables() -> None:
    create_all()


def _event_out(e: TimelineEvent) -> TimelineEventOut:
    return TimelineEventOut(
        id=e.id,
        target_id=e.target_id,
        description=e.description,
        event_on=e.event_on,
        links=AttachmentSet(e).links,
        founder_ids=[f.id for f in e.founders],
        evaluator_id=e.evaluator_id,
        score=e.score,
        passed_at=e.passed_at,
        improved_timeline_event_id=e.improved_timeline_event_id,
        created_at=e.created_at,
    )


def _sync_out(result: SyncResult) -> List[SyncItemOut]:
    return [
        SyncItemOut(
            index=item.index,
            action=item.action,
            ok=item.ok,
            attachment_id=item.attachment_id,
            error_code=item.error.code if item.error else None,
            error=item.error.message if item.error else None,
        )
        for item in result.items
    ]


def _save_out(saved: SaveResult) -> SaveResultOut:
    return SaveResultOut(
        event=_event_out(saved.event),
        files=_sync_out(saved.files),
        summary=saved.files.summary(),
    )


async def _read_submission(request: Request) -> Tuple[str, Dict[str, bytes]]:
    """Split a submission into its JSON payload and {content_key: bytes}.

    JSON bodies carry no files. Multipart bodies put the payload in the
    `payload` field; every uploaded part is keyed by its field name.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        return (await request.body()).decode("utf-8"), {}

    form = await request.form()
    payload = form.get("payload")
    if not isinstance(payload, str):
        raise IncubatorError("Missing 'payload' form field", code="VALIDATION_ERROR", status_code=422)
    files: Dict[str, bytes] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files[key] = await value.read()
    return payload, files


# session work and lazy loads stay off the event loop
def _create_and_render(s, data, files, notify) -> SaveResultOut:
    return _save_out(create_timeline_event(s, data, files, notify=notify))


def _update_and_render(s, event_id, data, files, notify) -> SaveResultOut:
    return _save_out(update_timeline_event(s, event_id, data, files, notify=notify))


def _founder_or_none(s: Session, founder_id: Optional[int]) -> Optional[Founder]:
    if founder_id is None:
        return None
    founder = s.get(Founder, founder_id)
    if founder is None:
        raise RecordNotFound("Founder", founder_id)
    return founder


# --- routes: timeline events --------------------------------------------------

@api.post("/timeline_events", response_model=SaveResultOut, status_code=201)
async def create_event(
    request: Request,
    s: Session = Depends(db),
    notify: Optional[Notifier] = Depends(get_notifier),
) -> SaveResultOut:
    payload, files = await _read_submission(request)
    data = TimelineEventInput.model_validate_json(payload)
    return await run_in_threadpool(_create_and_render, s, data, files, notify)


@api.patch("/timeline_events/{event_id}", response_model=SaveResultOut)
async def update_event(
    event_id: int,
    request: Request,
    s: Session = Depends(db),
    notify: Optional[Notifier] = Depends(get_notifier),
) -> SaveResultOut:
    payload, files = await _read_submission(request)
    data = TimelineEventUpdate.model_validate_json(payload)
    return await run_in_threadpool(_update_and_render, s, event_id, data, files, notify)


@api.get("/timeline_events/{event_id}", response_model=TimelineEventOut)
def show_event(event_id: int, s: Session = Depends(db)) -> TimelineEventOut:
    return _event_out(get_event(s, event_id))


@api.delete("/timeline_events/{event_id}", status_code=204)
def destroy_event(event_id: int, s: Session = Depends(db)) -> None:
    delete_timeline_event(s, event_id)


@api.get("/timeline_events/{event_id}/attachments", response_model=List[VisibleAttachment])
def list_attachments(
    event_id: int,
    viewer_id: Optional[int] = Query(default=None, description="Founder viewing the event, if any."),
    s: Session = Depends(db),
) -> List[VisibleAttachment]:
    event = get_event(s, event_id)
    return attachments_for(event, _founder_or_none(s, viewer_id))


@api.get("/timeline_events/{event_id}/review", response_model=ReviewStateOut)
def show_review(event_id: int, s: Session = Depends(db)) -> ReviewStateOut:
    state = review.review_state(get_event(s, event_id))
    return ReviewStateOut(**asdict(state))


@api.post("/timeline_events/{event_id}/evaluation", response_model=ReviewStateOut)
def evaluate_event(event_id: int, body: EvaluationInput, s: Session = Depends(db)) -> ReviewStateOut:
    event = get_event(s, event_id)
    faculty = s.get(Faculty, body.faculty_id)
    if faculty is None:
        raise RecordNotFound("Faculty", body.faculty_id)
    review.record_evaluation(s, event, faculty, body.grades, passed=body.passed)
    return ReviewStateOut(**asdict(review.review_state(event)))


@api.get("/timeline_events/{event_id}/share", response_model=ShareIdentifier)
def show_share_identifier(event_id: int, s: Session = Depends(db)) -> ShareIdentifier:
    return share_identifier(get_event(s, event_id))


@api.get("/timeline_events/{event_id}/improvement_candidates", response_model=List[TimelineEventOut])
def list_improvement_candidates(
    event_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    s: Session = Depends(db),
) -> List[TimelineEventOut]:
    out: List[TimelineEventOut] = []
    for candidate in lineage.improvement_candidates(s, get_event(s, event_id)):
        out.append(_event_out(candidate))
        if len(out) >= limit:
            break
    return out


@api.post("/timeline_events/{event_id}/improved_by/{improver_id}", response_model=TimelineEventOut)
def mark_improved(event_id: int, improver_id: int, s: Session = Depends(db)) -> TimelineEventOut:
    improved = lineage.mark_improved(s, get_event(s, event_id), get_event(s, improver_id))
    return _event_out(improved)


# --- routes: startup directory -------------------------------------------------

@api.get("/startups", response_model=List[StartupBrief])
def list_startups(
    search: Optional[str] = Query(default=None, description="Prefix match on startup name."),
    limit: int = Query(default=100, ge=1, le=1000),
    s: Session = Depends(db),
) -> List[StartupBrief]:
    stmt = select(Startup)
    if search:
        stmt = stmt.where(Startup.name.ilike(f"{search}%"))
    stmt = stmt.order_by(Startup.id.desc()).limit(limit)
    return [StartupBrief(id=st.id, slug=st.slug, name=st.name) for st in s.exec(stmt).all()]


@api.get("/startups/{startup_id}", response_model=StartupOut)
def show_startup(startup_id: int, s: Session = Depends(db)) -> StartupOut:
    startup = s.get(Startup, startup_id)
    if startup is None:
        raise RecordNotFound("Startup", startup_id)
    return StartupOut(
        id=startup.id,
        slug=startup.slug,
        name=startup.name,
        pitch=startup.pitch,
        website=startup.website,
        founder_ids=[f.id for f in startup.founders],
    )
