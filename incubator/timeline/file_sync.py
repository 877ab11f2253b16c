# incubator/timeline/file_sync.py
"""
Apply a files_metadata batch to one event's TimelineEventFile rows.

Each descriptor is handled on its own, in the order given. A failing
descriptor is recorded and the batch carries on; descriptors applied before
it stay applied. Callers show the outcome per item ("3 of 4 files saved").

Stored content follows the transaction: content written for new rows is
recorded in `stored_keys` so a rollback can discard it, and content of
deleted rows is only unlinked by release_removed after the commit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

from sqlmodel import Session, select

from incubator import storage
from incubator.exceptions import AttachmentNotFound, ContentMissing, IncubatorError
from incubator.logging_config import get_logger
from incubator.models.schemas import (
    AttachmentDescriptor,
    NewFileDescriptor,
    PersistedFileDescriptor,
)
from incubator.models.timeline_event import TimelineEvent, TimelineEventFile

log = get_logger(__name__)

ACTION_CREATE = "create"
ACTION_DELETE = "delete"
ACTION_KEEP = "keep"


@dataclass
class SyncItem:
    index: int
    action: str
    attachment_id: Optional[int] = None
    error: Optional[IncubatorError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncResult:
    items: List[SyncItem] = field(default_factory=list)
    stored_keys: List[str] = field(default_factory=list)
    removed_keys: List[str] = field(default_factory=list)

    @property
    def failures(self) -> List[SyncItem]:
        return [i for i in self.items if not i.ok]

    @property
    def applied(self) -> List[SyncItem]:
        return [i for i in self.items if i.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        return f"{len(self.applied)} of {len(self.items)} file changes applied"


def _delete_file(session: Session, event: TimelineEvent, file_id: int, result: SyncResult) -> int:
    te_file = session.exec(
        select(TimelineEventFile).where(
            (TimelineEventFile.id == file_id)
            & (TimelineEventFile.timeline_event_id == event.id)
        )
    ).first()
    if te_file is None:
        raise AttachmentNotFound(event.id, file_id)

    file_key = te_file.file_key
    session.delete(te_file)
    session.flush()
    result.removed_keys.append(file_key)
    return file_id


def _create_file(
    session: Session,
    event: TimelineEvent,
    descriptor: NewFileDescriptor,
    files: Mapping[str, bytes],
    result: SyncResult,
) -> int:
    content = files.get(descriptor.identifier)
    if content is None:
        raise ContentMissing(descriptor.identifier)

    file_key = storage.save_content(content, descriptor.title)
    result.stored_keys.append(file_key)
    te_file = TimelineEventFile(
        timeline_event_id=event.id,
        title=descriptor.title,
        file_key=file_key,
        size=len(content),
        private=descriptor.private,
    )
    session.add(te_file)
    session.flush()
    return te_file.id


def sync_files(
    session: Session,
    event: TimelineEvent,
    descriptors: Sequence[AttachmentDescriptor],
    files: Optional[Mapping[str, bytes]] = None,
    result: Optional[SyncResult] = None,
) -> SyncResult:
    """Create / delete file attachments for an already-saved event.

    Only attachment rows are touched; the event row is not re-saved. Pass
    `result` to keep track of stored content even when the batch raises.
    """
    files = files or {}
    result = result if result is not None else SyncResult()

    for index, descriptor in enumerate(descriptors):
        if isinstance(descriptor, PersistedFileDescriptor):
            action = ACTION_DELETE if descriptor.delete else ACTION_KEEP
        else:
            action = ACTION_CREATE
        item = SyncItem(index=index, action=action)

        try:
            if action == ACTION_DELETE:
                item.attachment_id = _delete_file(session, event, descriptor.identifier, result)
            elif action == ACTION_CREATE:
                item.attachment_id = _create_file(session, event, descriptor, files, result)
            else:
                # persisted files aren't edited in place
                item.attachment_id = descriptor.identifier
        except (AttachmentNotFound, ContentMissing) as exc:
            item.error = exc
            log.warning(
                "file_sync.item_failed",
                timeline_event_id=event.id,
                index=index,
                action=action,
                code=exc.code,
                error=exc.message,
            )
        result.items.append(item)

    # collections loaded before the sync no longer match the rows
    session.expire(event, ["files"])
    log.info(
        "file_sync.done",
        timeline_event_id=event.id,
        applied=len(result.applied),
        failed=len(result.failures),
    )
    return result


def release_removed(result: SyncResult) -> None:
    """Unlink content of rows deleted by a committed sync."""
    for key in result.removed_keys:
        storage.delete_content(key)
    result.removed_keys.clear()


def discard_stored(result: SyncResult) -> None:
    """Unlink content written by a sync whose transaction rolled back."""
    for key in result.stored_keys:
        storage.delete_content(key)
    if result.stored_keys:
        log.info("file_sync.discarded", keys=len(result.stored_keys))
    result.stored_keys.clear()


def files_metadata_for(event: TimelineEvent) -> List[PersistedFileDescriptor]:
    """Descriptors for the event's current files, to pre-fill an edit form."""
    return [
        PersistedFileDescriptor(
            persisted=True,
            identifier=te_file.id,
            title=te_file.title,
            private=te_file.private,
        )
        for te_file in event.files
    ]
