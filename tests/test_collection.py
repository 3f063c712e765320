"""Tests for the photo collection and preview lifecycle."""

from timeprint.photos.item import PhotoStatus, fail, start
from timeprint.photos.preview import PreviewHandle, create_preview


class TestPhotoCollection:
    """Tests for add/remove/update on the owned collection."""

    def test_add_creates_pending_item_with_preview(self, collection, make_source, preview_factory):
        """Each added photo gets its own preview and a unique id."""
        a = collection.add(make_source("a.png"))
        b = collection.add(make_source("b.png"))

        assert [p.id for p in collection.snapshot()] == [a.id, b.id]
        assert a.id != b.id
        assert a.status is PhotoStatus.PENDING
        assert preview_factory.handles == [a.preview, b.preview]
        assert a.preview is not b.preview

    def test_remove_releases_preview_once(self, collection, make_source):
        """Removal releases the preview exactly once and is permanent."""
        item = collection.add(make_source())

        assert collection.remove(item.id) is True
        assert collection.remove(item.id) is False
        assert item.preview.release_count == 1
        assert collection.get(item.id) is None
        assert item not in collection.eligible()

    def test_remove_from_any_state(self, collection, make_source):
        """Processing and failed items can be removed too."""
        busy = collection.add(make_source("busy.png"))
        broken = collection.add(make_source("broken.png"))
        collection.update(busy.id, start)
        collection.update(broken.id, start)
        collection.update(broken.id, lambda p: fail(p, "bad"))

        assert collection.remove(busy.id)
        assert collection.remove(broken.id)
        assert len(collection) == 0

    def test_snapshot_is_not_mutated_by_later_updates(self, collection, make_source):
        """Updates replace the collection rather than editing a held snapshot."""
        item = collection.add(make_source())
        before = collection.snapshot()

        collection.update(item.id, start)

        assert before[0].status is PhotoStatus.PENDING
        assert collection.get(item.id).status is PhotoStatus.PROCESSING

    def test_update_after_remove_is_dropped(self, collection, make_source):
        """A transition for a removed item does nothing."""
        item = collection.add(make_source())
        collection.remove(item.id)

        assert collection.update(item.id, start) is None
        assert collection.replace(start(item)) is None
        assert len(collection) == 0

    def test_update_adjustment_clamps(self, collection, make_source):
        item = collection.add(make_source())
        updated = collection.update_adjustment(item.id, "brightness", 999)
        assert updated.adjustments.brightness == 150.0

    def test_counts_and_eligible(self, collection, make_source):
        """Eligible items are pending or failed ones."""
        pending = collection.add(make_source("p.png"))
        failed = collection.add(make_source("f.png"))
        busy = collection.add(make_source("b.png"))
        collection.update(failed.id, start)
        collection.update(failed.id, lambda p: fail(p, "x"))
        collection.update(busy.id, start)

        assert [p.id for p in collection.eligible()] == [pending.id, failed.id]
        counts = collection.counts()
        assert counts[PhotoStatus.PENDING] == 1
        assert counts[PhotoStatus.ERROR] == 1
        assert counts[PhotoStatus.PROCESSING] == 1
        assert counts[PhotoStatus.COMPLETED] == 0

    def test_close_releases_everything(self, collection, make_source, preview_factory):
        collection.add(make_source("a.png"))
        collection.add(make_source("b.png"))
        collection.close()
        assert len(collection) == 0
        assert all(h.release_count == 1 for h in preview_factory.handles)

    def test_add_files_skips_unloadable(self, collection, tmp_path, png_bytes):
        """Files that cannot be loaded are skipped, the rest are added."""
        good = tmp_path / "good.png"
        good.write_bytes(png_bytes)
        bad = tmp_path / "notes.txt"
        bad.write_text("not a photo")

        added = collection.add_files([good, bad, tmp_path / "missing.jpg"])

        assert [p.name for p in added] == ["good.png"]


class TestPreviewHandle:
    """Tests for temp-file backed previews."""

    def test_create_and_release(self, png_bytes):
        """The preview file exists until released."""
        handle = create_preview(png_bytes, "image/png")
        assert handle.path.exists()
        assert handle.path.suffix == ".png"
        assert handle.path.read_bytes() == png_bytes

        handle.release()
        handle.release()

        assert not handle.path.exists()
        assert handle.release_count == 1

    def test_release_without_file(self):
        handle = PreviewHandle(None)
        handle.release()
        assert handle.released
