"""
Unit tests for artifact sinks, the PNG exporter and the overlay scope.
"""

import asyncio
import io
import threading

import pytest
from PIL import Image

from roadmap_export.core.models import RasterBuffer
from roadmap_export.core.overlay import InMemoryOverlayHost, overlay_scope
from roadmap_export.core.raster import RasterExporter
from roadmap_export.core.sinks import FileSystemSink, MemorySink
from roadmap_export.utils.error_handling import AssemblyError, SaveError


class TestFileSystemSink:

    def test_writes_file(self, tmp_path):
        sink = FileSystemSink(tmp_path / "exports")

        location = asyncio.run(sink.save("roadmap.pdf", b"%PDF-1.4 data"))

        assert location == str(tmp_path / "exports" / "roadmap.pdf")
        assert (tmp_path / "exports" / "roadmap.pdf").read_bytes() == b"%PDF-1.4 data"
        assert [p.name for p in (tmp_path / "exports").iterdir()] == ["roadmap.pdf"]

    def test_overwrites_existing(self, tmp_path):
        sink = FileSystemSink(tmp_path)
        asyncio.run(sink.save("a.png", b"old"))
        asyncio.run(sink.save("a.png", b"new"))

        assert (tmp_path / "a.png").read_bytes() == b"new"

    def test_unwritable_target_raises_save_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")

        with pytest.raises(SaveError):
            asyncio.run(FileSystemSink(blocker).save("a.pdf", b"data"))

    def test_failed_rename_leaves_no_partial_file(self, tmp_path):
        (tmp_path / "a.pdf").mkdir()

        with pytest.raises(SaveError):
            asyncio.run(FileSystemSink(tmp_path).save("a.pdf", b"data"))

        assert not list(tmp_path.glob(".partial-*"))

    def test_write_runs_off_the_event_loop_thread(self, tmp_path):
        threads = []

        class RecordingSink(FileSystemSink):
            def _write(self, target, data):
                threads.append(threading.get_ident())
                super()._write(target, data)

        asyncio.run(RecordingSink(tmp_path).save("a.pdf", b"data"))

        assert (tmp_path / "a.pdf").read_bytes() == b"data"
        assert threads and threads[0] != threading.get_ident()


class TestMemorySink:

    def test_keeps_artifacts(self):
        sink = MemorySink()

        location = asyncio.run(sink.save("a.pdf", b"data"))

        assert location == "memory://a.pdf"
        assert sink.artifacts == {"a.pdf": b"data"}


class TestRasterExporter:
    """Test lossless PNG output."""

    def test_png_is_lossless(self):
        image = Image.new("RGBA", (40, 30), (12, 34, 56, 255))
        image.putpixel((3, 4), (250, 1, 2, 255))
        exporter = RasterExporter(MemorySink())

        encoded = exporter.encode(RasterBuffer(image=image, scale=1.0))

        assert encoded.format == "PNG"
        assert encoded.quality is None
        decoded = Image.open(io.BytesIO(encoded.data))
        assert decoded.size == (40, 30)
        assert decoded.convert("RGBA").getpixel((3, 4)) == (250, 1, 2, 255)

    def test_export_names_file(self):
        sink = MemorySink()
        exporter = RasterExporter(sink)
        encoded = exporter.encode(RasterBuffer(image=Image.new("RGBA", (4, 4)), scale=1.0))

        location = asyncio.run(exporter.export(encoded, "roadmap-track-2026-10-18T09-35-00"))

        assert location == "memory://roadmap-track-2026-10-18T09-35-00.png"

    def test_unencodable_mode_is_assembly_error(self):
        exporter = RasterExporter(MemorySink())

        with pytest.raises(AssemblyError, match="PNG"):
            exporter.encode(RasterBuffer(image=Image.new("CMYK", (4, 4)), scale=1.0))


class TestOverlayScope:
    """The overlay is removed on every exit path."""

    def test_removed_after_success(self):
        host = InMemoryOverlayHost()

        async def run():
            async with overlay_scope(host, "exp-1", "Generating PDF...") as handle:
                assert await host.count() == 1
                assert handle.message == "Generating PDF..."

        asyncio.run(run())
        assert host.active == {}

    def test_removed_after_failure(self):
        host = InMemoryOverlayHost()

        async def run():
            async with overlay_scope(host, "exp-1", "Generating PDF..."):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(run())
        assert host.active == {}

    def test_remove_is_idempotent(self):
        host = InMemoryOverlayHost()

        async def run():
            async with overlay_scope(host, "exp-1", "Generating PNG..."):
                await host.remove("exp-1")

        asyncio.run(run())
        assert asyncio.run(host.remove("exp-1")) is False
