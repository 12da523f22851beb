from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from crate_upd.classifier import AmbiguousDiffError, InvalidRecordError, classify
from crate_upd.core import PollLoop
from crate_upd.history import CommitWindowWalker, HistorySynchronizer, NotFastForward, SyncError
from crate_upd.models import ActionKind, DeltaKind
from crate_upd.notify import Dispatcher, SendError
from crate_upd.parsers.index_record import crate_path
from crate_upd.store import SqliteSubscriptionStore


class RecordingSink:
    def __init__(self, failing: set[int] = frozenset()) -> None:
        self.sent: list[tuple[int, str]] = []
        self.failing = failing

    def send(self, target, text, disable_link_preview=True, silent=True) -> None:
        self.sent.append((target, text))
        if target in self.failing:
            raise SendError(f"Failed to send message to {target}: blocked")


@pytest.fixture
def checkout(upstream, tmp_path: Path) -> HistorySynchronizer:
    synchronizer = HistorySynchronizer(
        index_path=tmp_path / "index",
        index_url=str(upstream.path),
        branch="master",
    )
    synchronizer.ensure_cloned()
    return synchronizer


@pytest.fixture
def store(tmp_path: Path) -> SqliteSubscriptionStore:
    return SqliteSubscriptionStore(tmp_path / "subs.db")


def make_loop(checkout, store, sink, channel=-100) -> PollLoop:
    return PollLoop(
        synchronizer=checkout,
        walker=CommitWindowWalker(checkout.index_path),
        dispatcher=Dispatcher(sink=sink, store=store, broadcast_target=channel, sleep=lambda _: None),
        sleep=lambda _: None,
    )


def test_fetch_returns_remote_head(upstream, checkout) -> None:
    start = checkout.checkpoint()
    new_head = upstream.publish("foo", "1.0.0")

    assert checkout.fetch() == new_head
    assert checkout.checkpoint() == start


def test_windows_are_ancestor_first_and_gapless(upstream, checkout) -> None:
    start = checkout.checkpoint()
    commits = [upstream.publish("foo", f"1.0.{patch}") for patch in range(4)]
    head = checkout.fetch()

    windows = list(CommitWindowWalker(checkout.index_path).windows(start, head))

    assert [(w.previous, w.next) for w in windows] == list(zip([start, *commits], commits))


def test_no_windows_when_up_to_date(checkout) -> None:
    head = checkout.checkpoint()

    assert list(CommitWindowWalker(checkout.index_path).windows(head, head)) == []


def test_diff_and_classify_real_commits(upstream, checkout) -> None:
    start = checkout.checkpoint()
    upstream.publish("foo", "1.0.0")
    upstream.set_yanked("foo", "1.0.0", True)
    upstream.set_yanked("foo", "1.0.0", False)
    head = checkout.fetch()
    walker = CommitWindowWalker(checkout.index_path)

    results = [classify(walker.diff(window)) for window in walker.windows(start, head)]

    assert [(r.record.key, r.action) for r in results] == [
        (("foo", "1.0.0"), ActionKind.NEW_VERSION),
        (("foo", "1.0.0"), ActionKind.YANKED),
        (("foo", "1.0.0"), ActionKind.UNYANKED),
    ]


def test_yank_of_older_version_touches_one_line(upstream, checkout) -> None:
    upstream.publish("serde", "1.0.0")
    upstream.publish("serde", "1.0.1")
    start = upstream.head()
    checkout.advance(checkout.fetch())
    upstream.set_yanked("serde", "1.0.0", True)
    head = checkout.fetch()
    walker = CommitWindowWalker(checkout.index_path)

    (window,) = list(walker.windows(start, head))
    (delta,) = walker.diff(window)
    result = classify([delta])

    assert delta.kind is DeltaKind.MODIFIED
    assert result.record.key == ("serde", "1.0.0")
    assert result.action is ActionKind.YANKED


def test_advance_moves_checkpoint_and_working_tree(upstream, checkout) -> None:
    new_head = upstream.publish("foo", "1.0.0")
    checkout.fetch()

    checkout.advance(new_head)

    assert checkout.checkpoint() == new_head
    assert (checkout.index_path / "3" / "f" / "foo").is_file()


def test_advance_backwards_is_not_fast_forward(upstream, checkout) -> None:
    first = checkout.checkpoint()
    second = upstream.publish("foo", "1.0.0")
    checkout.advance(checkout.fetch())
    assert checkout.checkpoint() == second

    with pytest.raises(NotFastForward):
        checkout.advance(first)


def test_fetch_from_missing_remote_raises_sync_error(checkout, upstream) -> None:
    subprocess.run(
        ["git", "remote", "set-url", "origin", str(upstream.path.parent / "gone")],
        cwd=checkout.index_path,
        check=True,
    )

    with pytest.raises(SyncError):
        checkout.fetch()


def test_poll_cycle_notifies_and_checkpoints(upstream, checkout, store) -> None:
    store.subscribe(1, "foo")
    store.subscribe(2, "foo")
    store.subscribe(3, "bar")
    upstream.publish("foo", "1.0.0")
    upstream.set_yanked("foo", "1.0.0", True)
    head = upstream.publish("bar", "0.1.0")
    sink = RecordingSink(failing={2})
    loop = make_loop(checkout, store, sink)

    report = loop.run_cycle()

    assert report.status == "completed"
    assert report.processed == 3
    assert checkout.checkpoint() == head
    assert [target for target, _ in sink.sent] == [-100, 1, 2, -100, 1, 2, -100, 3]
    assert sink.sent[0][1].startswith("Crate was updated: <code>foo#1.0.0</code>")
    assert sink.sent[3][1].startswith("Crate was yanked: <code>foo#1.0.0</code>")
    assert sink.sent[6][1].startswith("Crate was updated: <code>bar#0.1.0</code>")

    assert loop.run_cycle().status == "up-to-date"


def test_ambiguous_commit_blocks_checkpoint(upstream, checkout, store, make_line) -> None:
    good = upstream.publish("foo", "1.0.0")
    upstream.write_lines("bar", [make_line("bar", "0.1.0")])
    upstream.write_lines("foo", upstream.read_lines("foo") + [make_line("foo", "1.0.1")])
    upstream.commit("Two crates in one commit")
    upstream.publish("foo", "1.0.2")
    sink = RecordingSink()
    loop = make_loop(checkout, store, sink, channel=None)
    store.subscribe(9, "foo")

    first = loop.run_cycle()

    assert first.status == "classification-failed"
    assert first.processed == 1
    assert checkout.checkpoint() == good
    assert len(sink.sent) == 1

    second = loop.run_cycle()

    assert second.status == "classification-failed"
    assert second.processed == 0
    assert second.error == first.error
    assert checkout.checkpoint() == good
    assert len(sink.sent) == 1

    walker = CommitWindowWalker(checkout.index_path)
    (window, *_) = list(walker.windows(good, checkout.fetch()))
    with pytest.raises(AmbiguousDiffError):
        classify(walker.diff(window))


def test_non_utf8_record_blocks_checkpoint(upstream, checkout, store) -> None:
    good = upstream.publish("foo", "1.0.0")
    target = upstream.path / crate_path("fooo")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(b'{"name":"fo\xffo","vers":"1.0.0","yanked":false}\n')
    upstream.commit("Non-UTF-8 record")
    sink = RecordingSink()
    loop = make_loop(checkout, store, sink)

    report = loop.run_cycle()

    assert report.status == "classification-failed"
    assert report.processed == 1
    assert "non-utf8" in report.error
    assert checkout.checkpoint() == good
    assert len(sink.sent) == 1
    assert sink.sent[0][1].startswith("Crate was updated: <code>foo#1.0.0</code>")

    walker = CommitWindowWalker(checkout.index_path)
    (window,) = list(walker.windows(good, checkout.fetch()))
    with pytest.raises(InvalidRecordError):
        classify(walker.diff(window))
