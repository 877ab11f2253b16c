# incubator/timeline/service.py
"""
Create / update / delete timeline events as one unit of work.

Order of a save:
  1. entity validation (description); nothing is written on failure
  2. link text is parsed; a malformed blob aborts before any write
  3. the event row is flushed
  4. files_metadata is applied item by item (see file_sync)
  5. commit, then the notification hook runs; its errors are only logged
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

from sqlmodel import Session

from incubator import storage
from incubator.exceptions import DescriptionInvalid, RecordNotFound
from incubator.logging_config import get_logger
from incubator.models.schemas import LinkAttachment, TimelineEventInput, TimelineEventUpdate
from incubator.models.startup import Founder
from incubator.models.target import Target
from incubator.models.timeline_event import (
    MAX_DESCRIPTION_CHARACTERS,
    TimelineEvent,
    TimelineEventOwner,
)
from incubator.timeline.file_sync import SyncResult, discard_stored, release_removed, sync_files
from incubator.timeline.lineage import clear_improvement_references
from incubator.timeline.links import AttachmentSet, parse_links

log = get_logger(__name__)

Notifier = Callable[[TimelineEvent], None]


@dataclass
class SaveResult:
    event: TimelineEvent
    files: SyncResult


def validate_description(description: Optional[str]) -> str:
    if description is None or not description.strip():
        raise DescriptionInvalid("can't be blank")
    if len(description) > MAX_DESCRIPTION_CHARACTERS:
        raise DescriptionInvalid(f"is too long (maximum is {MAX_DESCRIPTION_CHARACTERS} characters)")
    return description


def get_event(session: Session, event_id: int) -> TimelineEvent:
    event = session.get(TimelineEvent, event_id)
    if event is None:
        raise RecordNotFound("TimelineEvent", event_id)
    return event


def _load_founders(session: Session, founder_ids: List[int]) -> List[Founder]:
    founders: List[Founder] = []
    for founder_id in dict.fromkeys(founder_ids):  # dedupe, keep order
        founder = session.get(Founder, founder_id)
        if founder is None:
            raise RecordNotFound("Founder", founder_id)
        founders.append(founder)
    return founders


def _notify(notify: Optional[Notifier], event: TimelineEvent) -> None:
    if notify is None:
        return
    try:
        notify(event)
    except Exception:
        # the save is already committed; a failed notification must not undo it
        log.exception("timeline_event.notify_failed", timeline_event_id=event.id)


def create_timeline_event(
    session: Session,
    data: TimelineEventInput,
    files: Optional[Mapping[str, bytes]] = None,
    notify: Optional[Notifier] = None,
) -> SaveResult:
    description = validate_description(data.description)

    target = session.get(Target, data.target_id)
    if target is None:
        raise RecordNotFound("Target", data.target_id)
    founders = _load_founders(session, data.founder_ids)

    links: List[LinkAttachment] = (
        parse_links(data.serialized_links) if data.serialized_links is not None else []
    )

    result = SyncResult()
    try:
        event = TimelineEvent(target_id=target.id, description=description)
        if data.event_on is not None:
            event.event_on = data.event_on
        attachment_set = AttachmentSet(event)
        if data.serialized_links is not None:
            attachment_set.replace(links)
        else:
            for link in data.links:
                attachment_set.add(link.url, link.private, link.title)

        event.owners = [TimelineEventOwner(founder_id=f.id) for f in founders]
        session.add(event)
        session.flush()

        sync_files(session, event, data.files_metadata, files, result=result)
        session.commit()
    except Exception:
        session.rollback()
        discard_stored(result)
        raise
    release_removed(result)

    session.refresh(event)
    log.info(
        "timeline_event.created",
        timeline_event_id=event.id,
        target_id=event.target_id,
        founder_ids=[f.id for f in founders],
        files=result.summary(),
    )
    _notify(notify, event)
    return SaveResult(event=event, files=result)


def update_timeline_event(
    session: Session,
    event_id: int,
    data: TimelineEventUpdate,
    files: Optional[Mapping[str, bytes]] = None,
    notify: Optional[Notifier] = None,
) -> SaveResult:
    event = get_event(session, event_id)

    description = validate_description(data.description) if data.description is not None else None
    links = parse_links(data.serialized_links) if data.serialized_links is not None else None

    result = SyncResult()
    try:
        if description is not None:
            event.description = description
        if data.event_on is not None:
            event.event_on = data.event_on
        if links is not None:
            AttachmentSet(event).replace(links)
        session.add(event)
        session.flush()

        sync_files(session, event, data.files_metadata, files, result=result)
        session.commit()
    except Exception:
        session.rollback()
        discard_stored(result)
        raise
    release_removed(result)

    session.refresh(event)
    log.info("timeline_event.updated", timeline_event_id=event.id, files=result.summary())
    _notify(notify, event)
    return SaveResult(event=event, files=result)


def delete_timeline_event(session: Session, event_id: int) -> None:
    """Destroy an event with its files, grades, feedback and owner rows.

    An event this one improved is kept; only its back-reference is cleared.
    """
    event = get_event(session, event_id)
    file_keys = [te_file.file_key for te_file in event.files]

    try:
        cleared = clear_improvement_references(session, event)
        session.delete(event)
        session.commit()
    except Exception:
        session.rollback()
        raise

    for key in file_keys:
        storage.delete_content(key)
    log.info(
        "timeline_event.deleted",
        timeline_event_id=event_id,
        files_removed=len(file_keys),
        improvement_refs_cleared=cleared,
    )
