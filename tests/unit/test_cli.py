"""
Unit tests for the roadmap-export command line.
"""

from roadmap_export import cli
from roadmap_export.core.models import ExportFormat, ExportResult
from roadmap_export.utils.error_handling import CaptureError


def fake_result(export_id="cli-export-id"):
    return ExportResult(
        export_id=export_id,
        filename="roadmap-overview-2026-10-18T09-35-00.pdf",
        location="exports/roadmap-overview-2026-10-18T09-35-00.pdf",
        format=ExportFormat.PDF,
        page_count=3,
        byte_length=1234,
        estimated_size_mb=27.03,
    )


class TestParser:

    def test_defaults(self, tmp_path):
        args = cli.build_parser().parse_args([str(tmp_path / "view.html")])

        assert args.mode == "overview"
        assert args.format == "pdf"
        assert args.title == "Roadmap"
        assert args.no_wrap is False


class TestMain:
    """Test exit codes without launching a browser."""

    def test_success(self, tmp_path, monkeypatch, capsys):
        view = tmp_path / "view.html"
        view.write_text("<div class='export-page'></div>")
        seen = {}

        async def fake_run_export(args, export_id):
            seen["args"] = args
            return fake_result(export_id)

        monkeypatch.setattr(cli, "run_export", fake_run_export)

        assert cli.main([str(view), "--title", "Q4"]) == 0
        assert seen["args"].title == "Q4"
        assert "3 page(s)" in capsys.readouterr().out

    def test_track_requires_team(self, tmp_path):
        view = tmp_path / "view.html"
        view.write_text("<div/>")

        assert cli.main([str(view), "--mode", "track"]) == 2

    def test_missing_html(self, tmp_path):
        assert cli.main([str(tmp_path / "missing.html")]) == 2

    def test_export_failure(self, tmp_path, monkeypatch):
        view = tmp_path / "view.html"
        view.write_text("<div/>")

        async def failing_run_export(args, export_id):
            raise CaptureError("Canvas error")

        monkeypatch.setattr(cli, "run_export", failing_run_export)

        assert cli.main([str(view)]) == 1

    def test_unexpected_failure_reported(self, tmp_path, monkeypatch, capsys):
        view = tmp_path / "view.html"
        view.write_text("<div/>")

        async def failing_run_export(args, export_id):
            raise RuntimeError("Executable doesn't exist")

        monkeypatch.setattr(cli, "run_export", failing_run_export)

        assert cli.main([str(view)]) == 1
        assert "Export failed: Executable doesn't exist. Please try again." in capsys.readouterr().err

    def test_log_dir(self, tmp_path, monkeypatch):
        view = tmp_path / "view.html"
        view.write_text("<div/>")

        async def fake_run_export(args, export_id):
            return fake_result(export_id)

        monkeypatch.setattr(cli, "run_export", fake_run_export)
        monkeypatch.setattr(cli, "generate_export_id", lambda: "fixed-export-id")

        assert cli.main([str(view), "--log-dir", str(tmp_path / "logs")]) == 0
        assert (tmp_path / "logs" / "fixed-export-id.log").exists()
