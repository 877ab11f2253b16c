# incubator/timeline/links.py
"""
Link attachments stored inline on a timeline event.

Links live in the ``timeline_events.links`` JSON column as a list of
``{"url", "private", "title"}`` records. The column is never null: new events
start with ``[]`` and the model's load/save hooks heal a null back to ``[]``.
AttachmentSet is the only place that rewrites the list; it always assigns a
fresh list so SQLAlchemy sees the change.
"""
from __future__ import annotations

import json
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from incubator.exceptions import AttachmentNotFound, MalformedAttachmentData
from incubator.models.schemas import LinkAttachment
from incubator.models.timeline_event import LINKS_SCHEMA_VERSION, TimelineEvent

_LINK_LIST = TypeAdapter(List[LinkAttachment])


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise MalformedAttachmentData(f"not an http(s) URL: {url!r}")
    return url


def parse_links(text: str) -> List[LinkAttachment]:
    """Parse the serialized exchange form into link records."""
    try:
        links = _LINK_LIST.validate_json(text)
    except PydanticValidationError as exc:
        raise MalformedAttachmentData(str(exc.errors(include_url=False))) from exc
    for link in links:
        link.url = _validate_url(link.url)
    return links


def dump_links(links: Iterable[LinkAttachment]) -> List[dict]:
    return [link.model_dump(exclude_none=True) for link in links]


class AttachmentSet:
    """Typed view over one event's link attachments."""

    def __init__(self, event: TimelineEvent):
        self.event = event

    @property
    def links(self) -> List[LinkAttachment]:
        return [LinkAttachment.model_validate(raw) for raw in (self.event.links or [])]

    def replace(self, links: Iterable[LinkAttachment]) -> None:
        self.event.links = dump_links(links)
        self.event.links_version = LINKS_SCHEMA_VERSION

    def add(self, url: str, private: bool = False, title: Optional[str] = None) -> LinkAttachment:
        link = LinkAttachment(url=_validate_url(url), private=private, title=title)
        self.replace([*self.links, link])
        return link

    def remove(self, url: str) -> None:
        current = self.links
        kept = [link for link in current if link.url != url]
        if len(kept) == len(current):
            raise AttachmentNotFound(self.event.id, url)
        self.replace(kept)

    def serialized(self) -> str:
        return json.dumps(dump_links(self.links))

    def load_serialized(self, text: str) -> None:
        # parse first so a failure leaves the current links alone
        self.replace(parse_links(text))

    def has_public_link(self) -> bool:
        return any(not link.private for link in self.links)
