# incubator/timeline/visibility.py
from __future__ import annotations

from typing import List, Optional

from incubator.exceptions import NoOwningFounder
from incubator.logging_config import get_logger
from incubator.models.schemas import VisibleAttachment
from incubator.models.startup import Founder, Startup
from incubator.models.timeline_event import TimelineEvent
from incubator.timeline.links import AttachmentSet

log = get_logger(__name__)


def startup_for(event: TimelineEvent) -> Optional[Startup]:
    """Startup of the event's representative (first) founder.

    Team events may have several owners, but only the first one decides which
    startup the event belongs to.
    """
    founder = event.founder
    if founder is None:
        log.error("timeline_event.no_owning_founder", timeline_event_id=event.id)
        raise NoOwningFounder(event.id)
    return founder.startup


def is_privileged(event: TimelineEvent, viewer: Optional[Founder]) -> bool:
    if viewer is None:
        return False
    startup = startup_for(event)
    if startup is None:
        # representative founder isn't linked to a startup; only they can see it
        return viewer.id == event.founder.id
    return any(f.id == viewer.id for f in startup.founders)


def attachments_for(event: TimelineEvent, viewer: Optional[Founder]) -> List[VisibleAttachment]:
    """Files then links, private ones only for founders of the event's startup."""
    privileged = is_privileged(event, viewer)
    out: List[VisibleAttachment] = []

    for te_file in event.files:
        if te_file.private and not privileged:
            continue
        out.append(
            VisibleAttachment(kind="file", title=te_file.title, private=te_file.private, file_id=te_file.id)
        )

    for link in AttachmentSet(event).links:
        if link.private and not privileged:
            continue
        out.append(VisibleAttachment(kind="link", title=link.title, private=link.private, url=link.url))

    return out
