# incubator/timeline/share.py
from __future__ import annotations

import re
import unicodedata

from incubator.exceptions import NoOwningFounder
from incubator.logging_config import get_logger
from incubator.models.schemas import ShareIdentifier
from incubator.models.timeline_event import TimelineEvent

log = get_logger(__name__)


def parameterize(text: str, sep: str = "-") -> str:
    """'Build a Landing Page!' -> 'build-a-landing-page'"""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-zA-Z0-9]+", sep, ascii_text).strip(sep)
    return slug.lower()


def share_identifier(event: TimelineEvent) -> ShareIdentifier:
    """Parts a router needs to build the public link to an event."""
    founder = event.founder
    if founder is None:
        log.error("timeline_event.no_owning_founder", timeline_event_id=event.id)
        raise NoOwningFounder(event.id)
    return ShareIdentifier(
        founder_id=founder.id,
        event_id=event.id,
        event_title=parameterize(event.title),
    )
