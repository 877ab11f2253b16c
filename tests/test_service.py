# tests/test_service.py
import pytest
from sqlalchemy import func
from sqlmodel import select

from incubator import storage
from incubator.exceptions import DescriptionInvalid, MalformedAttachmentData, RecordNotFound
from incubator.models.schemas import NewFileDescriptor, PersistedFileDescriptor, TimelineEventInput, TimelineEventUpdate
from incubator.models.timeline_event import (
    TimelineEvent,
    TimelineEventFile,
    TimelineEventGrade,
    TimelineEventOwner,
)
from incubator.timeline import review
from incubator.timeline.links import AttachmentSet
from incubator.timeline.service import create_timeline_event, delete_timeline_event, update_timeline_event
from incubator.timeline.share import parameterize, share_identifier


def _count(session, model) -> int:
    total = session.exec(select(func.count()).select_from(model)).one()
    return total[0] if isinstance(total, tuple) else total


def _input(target, founders, **kw):
    return TimelineEventInput(target_id=target.id, founder_ids=[f.id for f in founders], **kw)


def test_create_event_with_links_and_files(session, factory):
    startup = factory.startup()
    founder, cofounder = factory.founder(startup), factory.founder(startup)
    target = factory.target(criteria=1)

    saved = create_timeline_event(
        session,
        _input(
            target,
            [founder, cofounder],
            description="Launched the beta",
            links=[{"url": "https://beta.example.com", "private": False}],
            files_metadata=[{"persisted": False, "identifier": "f1", "title": "metrics.csv", "private": True}],
        ),
        files={"f1": b"day,users\n1,10\n"},
    )

    e = saved.event
    assert e.id is not None
    assert [f.id for f in e.founders] == [founder.id, cofounder.id]
    assert AttachmentSet(e).has_public_link()
    assert [f.title for f in e.files] == ["metrics.csv"]
    assert saved.files.ok
    # a fresh submission is never evaluated or passed
    assert review.is_pending_review(e) and not review.is_evaluated(e) and not review.is_passed(e)


@pytest.mark.parametrize("description", ["", "   ", "x" * 501])
def test_invalid_description_blocks_the_save(session, factory, description):
    target = factory.target()
    with pytest.raises(DescriptionInvalid):
        create_timeline_event(
            session,
            _input(
                target,
                [factory.founder()],
                description=description,
                files_metadata=[NewFileDescriptor(identifier="f", title="f.txt")],
            ),
            files={"f": b"data"},
        )
    assert _count(session, TimelineEvent) == 0
    assert _count(session, TimelineEventFile) == 0


def test_description_at_limit_is_fine(session, factory):
    saved = create_timeline_event(session, _input(factory.target(), [factory.founder()], description="x" * 500))
    assert len(saved.event.description) == 500


def test_malformed_serialized_links_abort_create(session, factory):
    with pytest.raises(MalformedAttachmentData):
        create_timeline_event(
            session,
            _input(factory.target(), [factory.founder()], description="ok", serialized_links="[{oops"),
        )
    assert _count(session, TimelineEvent) == 0


def test_unknown_founder_is_rejected(session, factory):
    target = factory.target()
    with pytest.raises(RecordNotFound):
        create_timeline_event(session, TimelineEventInput(target_id=target.id, founder_ids=[999999], description="x"))


def test_failing_notifier_does_not_undo_the_save(session, factory):
    calls = []

    def notify(event):
        calls.append(event.id)
        raise RuntimeError("mail server down")

    saved = create_timeline_event(
        session, _input(factory.target(), [factory.founder()], description="ok"), notify=notify
    )
    assert calls == [saved.event.id]
    session.expire_all()
    assert session.get(TimelineEvent, saved.event.id) is not None


def test_update_replaces_links_and_applies_files(session, factory):
    founder = factory.founder(factory.startup())
    saved = create_timeline_event(
        session,
        _input(
            factory.target(),
            [founder],
            description="v1",
            files_metadata=[NewFileDescriptor(identifier="old", title="old.txt")],
        ),
        files={"old": b"old"},
    )
    old_file = saved.event.files[0]
    old_key = old_file.file_key

    updated = update_timeline_event(
        session,
        saved.event.id,
        TimelineEventUpdate(
            description="v2",
            serialized_links='[{"url": "https://example.com/demo", "private": true}]',
            files_metadata=[
                PersistedFileDescriptor(persisted=True, identifier=old_file.id, delete=True),
                NewFileDescriptor(identifier="new", title="new.txt"),
                NewFileDescriptor(identifier="gone", title="gone.txt"),
            ],
        ),
        files={"new": b"new"},
    )

    e = updated.event
    assert e.description == "v2"
    assert not AttachmentSet(e).has_public_link()
    assert [f.title for f in e.files] == ["new.txt"]
    assert updated.files.summary() == "2 of 3 file changes applied"
    # content of the deleted row goes once the update is committed
    assert storage.delete_content(old_key) is False


def test_update_with_bad_links_keeps_prior_state(session, factory):
    saved = create_timeline_event(
        session,
        _input(factory.target(), [factory.founder()], description="v1", links=[{"url": "https://a.example.com"}]),
    )
    with pytest.raises(MalformedAttachmentData):
        update_timeline_event(
            session, saved.event.id, TimelineEventUpdate(description="v2", serialized_links="{}")
        )
    session.expire_all()
    e = session.get(TimelineEvent, saved.event.id)
    assert e.description == "v1"
    assert [link.url for link in AttachmentSet(e).links] == ["https://a.example.com"]


def test_failed_update_keeps_content_of_surviving_rows(session, factory, monkeypatch):
    saved = create_timeline_event(
        session,
        _input(
            factory.target(),
            [factory.founder()],
            description="v1",
            files_metadata=[NewFileDescriptor(identifier="old", title="old.txt")],
        ),
        files={"old": b"old"},
    )
    old_file = saved.event.files[0]
    old_id, old_key = old_file.id, old_file.file_key

    def disk_full(content, filename=None):
        raise OSError("No space left on device")

    monkeypatch.setattr(storage, "save_content", disk_full)
    with pytest.raises(OSError):
        update_timeline_event(
            session,
            saved.event.id,
            TimelineEventUpdate(
                files_metadata=[
                    PersistedFileDescriptor(persisted=True, identifier=old_id, delete=True),
                    NewFileDescriptor(identifier="new", title="new.txt"),
                ],
            ),
            files={"new": b"new"},
        )

    session.expire_all()
    assert session.get(TimelineEventFile, old_id) is not None
    assert storage.read_content(old_key) == b"old"


def test_failed_create_discards_stored_content(session, factory, monkeypatch, upload_dir):
    real_save = storage.save_content
    calls = []

    def fail_on_second(content, filename=None):
        calls.append(filename)
        if len(calls) == 2:
            raise OSError("No space left on device")
        return real_save(content, filename)

    monkeypatch.setattr(storage, "save_content", fail_on_second)
    with pytest.raises(OSError):
        create_timeline_event(
            session,
            _input(
                factory.target(),
                [factory.founder()],
                description="two files",
                files_metadata=[
                    NewFileDescriptor(identifier="a", title="a.txt"),
                    NewFileDescriptor(identifier="b", title="b.txt"),
                ],
            ),
            files={"a": b"a", "b": b"b"},
        )

    assert _count(session, TimelineEvent) == 0
    assert _count(session, TimelineEventFile) == 0
    assert list(upload_dir.glob("*")) == []


def test_delete_cascades_children(session, factory):
    target = factory.target(criteria=1)
    saved = create_timeline_event(
        session,
        _input(
            target,
            [factory.founder()],
            description="to delete",
            files_metadata=[NewFileDescriptor(identifier="f", title="f.txt")],
        ),
        files={"f": b"bye"},
    )
    e = saved.event
    key = e.files[0].file_key
    review.record_evaluation(session, e, factory.faculty(), {target.evaluation_criteria[0].id: 1})

    delete_timeline_event(session, e.id)

    assert _count(session, TimelineEvent) == 0
    assert _count(session, TimelineEventFile) == 0
    assert _count(session, TimelineEventGrade) == 0
    assert _count(session, TimelineEventOwner) == 0
    assert storage.delete_content(key) is False


def test_share_identifier(factory):
    founder = factory.founder(factory.startup())
    e = factory.event([founder], target=factory.target(title="Build a Landing Page!"))
    ident = share_identifier(e)
    assert (ident.founder_id, ident.event_id, ident.event_title) == (founder.id, e.id, "build-a-landing-page")
    assert parameterize("  Café  Pitch -- v2 ") == "cafe-pitch-v2"


def test_share_identifier_without_founder_is_logged(factory, monkeypatch):
    from structlog.testing import CapturingLogger

    from incubator.exceptions import NoOwningFounder
    from incubator.timeline import share

    captured = CapturingLogger()
    monkeypatch.setattr(share, "log", captured)
    e = factory.event([])

    with pytest.raises(NoOwningFounder):
        share_identifier(e)
    assert [(c.method_name, c.args[0], c.kwargs["timeline_event_id"]) for c in captured.calls] == [
        ("error", "timeline_event.no_owning_founder", e.id)
    ]
