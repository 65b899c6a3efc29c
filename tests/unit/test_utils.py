"""
Unit tests for export ids, filenames, error helpers and per-export log files.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest

from roadmap_export.utils.error_handling import (
    CaptureError,
    ExportError,
    SaveError,
    SizeWarning,
    convert_exceptions,
    report_size_warning,
    user_message,
)
from roadmap_export.utils.export_id import build_base_filename, format_timestamp, generate_export_id
from roadmap_export.utils.run_logging import export_log_file


class TestExportId:

    def test_default_length(self):
        assert len(generate_export_id()) == 12

    def test_unique(self):
        assert len({generate_export_id() for _ in range(50)}) == 50

    def test_too_short(self):
        with pytest.raises(ValueError):
            generate_export_id(4)


class TestFilenames:
    """Test filename-safe timestamps."""

    def test_timestamp_has_no_colons(self):
        stamp = format_timestamp(datetime(2026, 10, 18, 9, 35, 7, 999999, tzinfo=timezone.utc))

        assert stamp == "2026-10-18T09-35-07"
        assert ":" not in stamp

    def test_timestamp_converted_to_utc(self):
        moment = datetime(2026, 10, 18, 11, 35, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(moment) == "2026-10-18T09-35-00"

    def test_base_filename(self):
        moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

        assert build_base_filename("overview", moment) == "roadmap-overview-2026-01-02T03-04-05"
        assert build_base_filename("track", moment, prefix="plan") == "plan-track-2026-01-02T03-04-05"


class TestErrorHandling:
    """Test exception conversion and user messages."""

    def test_sync_conversion_chains_cause(self):
        @convert_exceptions(SaveError)
        def write():
            raise PermissionError("read-only volume")

        with pytest.raises(SaveError, match="read-only volume") as exc_info:
            write()

        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_async_conversion(self):
        @convert_exceptions(CaptureError)
        async def grab():
            raise RuntimeError("tainted canvas")

        with pytest.raises(CaptureError, match="tainted canvas"):
            asyncio.run(grab())

    def test_empty_message_uses_type_name(self):
        @convert_exceptions(CaptureError)
        def grab():
            raise KeyError()

        with pytest.raises(CaptureError, match="KeyError"):
            grab()

    def test_export_errors_pass_through(self):
        original = SaveError("already typed")

        @convert_exceptions(CaptureError)
        def grab():
            raise original

        with pytest.raises(SaveError) as exc_info:
            grab()

        assert exc_info.value is original

    def test_error_hierarchy(self):
        assert issubclass(CaptureError, ExportError)
        assert issubclass(SaveError, ExportError)
        assert issubclass(SizeWarning, UserWarning)
        assert not issubclass(SizeWarning, ExportError)

    def test_user_message(self):
        assert user_message(CaptureError("Canvas error")) == "Export failed: Canvas error. Please try again."
        assert user_message(ExportError()) == "Export failed: Unknown error. Please try again."

    def test_size_warning_is_logged_only(self, caplog):
        with caplog.at_level(logging.WARNING):
            warning = report_size_warning("Large PDF expected", estimatedSizeMB=12.5)

        assert isinstance(warning, SizeWarning)
        assert "SizeWarning: Large PDF expected (estimatedSizeMB=12.5)" in caplog.text


class TestExportLogFile:
    """Test per-export log files."""

    @pytest.fixture
    def root_at_info(self):
        root = logging.getLogger()
        previous_level = root.level
        root.setLevel(logging.INFO)
        yield root
        root.setLevel(previous_level)

    def test_lines_tagged_with_export_id(self, tmp_path, root_at_info):
        with export_log_file("abc123def456", tmp_path / "logs") as log_path:
            logging.getLogger("roadmap_export.test").info("capturing page 1")

        assert log_path == tmp_path / "logs" / "abc123def456.log"
        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert any("abc123def456 - roadmap_export.test - INFO - capturing page 1" in line for line in lines)
        assert lines[-1].endswith("Export completed")

    def test_failure_recorded_and_handler_removed(self, tmp_path, root_at_info):
        handlers_before = list(root_at_info.handlers)

        with pytest.raises(CaptureError):
            with export_log_file("failing-export", tmp_path):
                raise CaptureError("Canvas error")

        lines = (tmp_path / "failing-export.log").read_text(encoding="utf-8").splitlines()
        assert lines[-1].endswith("Export failed: CaptureError: Canvas error")
        assert root_at_info.handlers == handlers_before

    def test_records_after_exit_not_written(self, tmp_path, root_at_info):
        with export_log_file("closed-export", tmp_path) as log_path:
            pass
        logging.getLogger("roadmap_export.test").info("after the export")

        assert "after the export" not in log_path.read_text(encoding="utf-8")
