import asyncio
import shutil

import pytest

from broadcast.hub import BroadcastHub
from core.errors import RootNotFoundError
from core.models import DirectoryNode, empty_root
from engine.source_engine import SourceEngine


class FakeWatcher:
    instances = []

    def __init__(self, *, on_change, debounce_seconds, limits, extensions, excluded_names):
        self.on_change = on_change
        self.debounce_seconds = debounce_seconds
        self.extensions = extensions
        self.armed = False
        self.stopped = False
        self.root = None
        FakeWatcher.instances.append(self)

    def start(self, root_path):
        self.root = root_path
        self.armed = True

    def stop(self):
        self.armed = False
        self.stopped = True


@pytest.fixture
def fake_watchers():
    FakeWatcher.instances = []
    return FakeWatcher.instances


class RecordingChannel:
    def __init__(self):
        self.messages = []

    def send(self, message):
        self.messages.append(message)

    def close(self):
        pass


def test_current_tree_before_ingest_is_empty_root():
    engine = SourceEngine()
    assert engine.current_tree() == empty_root()
    assert not engine.initialized


@pytest.mark.asyncio
async def test_ingest_installs_snapshot(wiki):
    engine = SourceEngine()
    await engine.ingest(wiki)

    tree = engine.current_tree()
    assert engine.initialized
    assert tree.name == "root"
    assert len(tree.children) == 2
    assert engine.find_document("sub/b").raw_content == "# B"


@pytest.mark.asyncio
async def test_ingest_failure_keeps_previous_snapshot(wiki, tmp_path_factory):
    engine = SourceEngine()
    await engine.ingest(wiki)
    before = engine.current_tree()

    with pytest.raises(RootNotFoundError):
        await engine.ingest(tmp_path_factory.mktemp("gone") / "missing")

    assert engine.current_tree() is before


@pytest.mark.asyncio
async def test_ingest_replaces_snapshot_wholesale(wiki):
    engine = SourceEngine()
    await engine.ingest(wiki)
    first = engine.current_tree()

    (wiki / "c.md").write_text("# C", encoding="utf-8")
    await engine.ingest(wiki)
    second = engine.current_tree()

    assert second is not first
    assert len(first.children) == 2
    assert len(second.children) == 3


@pytest.mark.asyncio
async def test_reads_during_ingest_see_complete_snapshots(wiki):
    for i in range(50):
        (wiki / f"p{i}.md").write_text(f"# P{i}", encoding="utf-8")

    engine = SourceEngine()
    await engine.ingest(wiki)
    old = engine.current_tree()

    seen = []

    async def reader():
        for _ in range(20):
            seen.append(engine.current_tree())
            await asyncio.sleep(0)

    await asyncio.gather(engine.ingest(wiki), reader())

    for tree in seen:
        assert isinstance(tree, DirectoryNode)
        assert tree is old or tree is engine.current_tree()


@pytest.mark.asyncio
async def test_rebuild_publishes_then_calls_on_update(wiki, fake_watchers):
    hub = BroadcastHub()
    ch = RecordingChannel()
    hub.subscribe(ch)

    engine = SourceEngine(hub=hub, debounce_seconds=0.3, watcher_factory=FakeWatcher)
    await engine.ingest(wiki)

    order = []
    engine.start_watching(wiki, lambda: order.append(len(ch.messages)))

    watcher = fake_watchers[0]
    assert watcher.armed
    assert watcher.root == wiki
    assert watcher.debounce_seconds == 0.3
    assert watcher.extensions == (".md",)

    (wiki / "a.md").unlink()
    await watcher.on_change()

    assert ch.messages[0] == {"type": "connected"}
    update = ch.messages[1]
    assert update["type"] == "sources_updated"
    assert update["sources"]["name"] == "root"
    assert [c["name"] for c in update["sources"]["children"]] == ["sub"]
    # on_update runs after the publish
    assert order == [2]


@pytest.mark.asyncio
async def test_rebuild_failure_keeps_snapshot_and_skips_update(wiki, fake_watchers):
    hub = BroadcastHub()
    ch = RecordingChannel()
    hub.subscribe(ch)

    engine = SourceEngine(hub=hub, watcher_factory=FakeWatcher)
    await engine.ingest(wiki)
    before = engine.current_tree()

    updates = []
    engine.start_watching(wiki, lambda: updates.append(1))

    shutil.rmtree(wiki)
    await fake_watchers[0].on_change()

    assert engine.current_tree() is before
    assert updates == []
    assert ch.messages == [{"type": "connected"}]
    assert engine.watching


@pytest.mark.asyncio
async def test_start_watching_replaces_previous_session(wiki, fake_watchers):
    engine = SourceEngine(watcher_factory=FakeWatcher)

    engine.start_watching(wiki)
    engine.start_watching(wiki)

    assert len(fake_watchers) == 2
    assert fake_watchers[0].stopped
    assert engine.watching

    engine.stop_watching()
    engine.stop_watching()
    assert not engine.watching


@pytest.mark.asyncio
async def test_ensure_started_ingests_once_and_watches(wiki, fake_watchers):
    engine = SourceEngine(watcher_factory=FakeWatcher)

    first, second = await asyncio.gather(engine.ensure_started(wiki), engine.ensure_started(wiki))

    assert first is second
    assert len(fake_watchers) == 1
    assert len(first.children) == 2
    engine.stop_watching()


@pytest.mark.asyncio
async def test_subscribe_delegates_to_hub():
    engine = SourceEngine()

    sub = engine.subscribe()
    assert len(engine.hub) == 1

    engine.unsubscribe(sub)
    assert len(engine.hub) == 0
