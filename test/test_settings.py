"""Tests for settings, options, progress reporting and formatting helpers."""

from datetime import datetime, timedelta, timezone

from discord_chat_exporter.models import ExportOptions
from discord_chat_exporter.progress import ProgressReporter
from discord_chat_exporter.settings import ExportSettings
from discord_chat_exporter.utils import (
    avatar_initial,
    export_filename,
    format_timestamp,
)


class TestExportSettings:
    def test_defaults(self):
        settings = ExportSettings()
        assert settings.scroll_delay == 0.6
        assert settings.max_iterations == 500
        assert settings.image_cache_size == 200
        assert settings.prefetch_batch_size == 10

    def test_from_env(self):
        settings = ExportSettings.from_env(
            {
                "DISCORD_EXPORT_SCROLL_DELAY": "1.5",
                "DISCORD_EXPORT_MAX_ITERATIONS": " ",
                "UNRELATED": "x",
            }
        )
        assert settings.scroll_delay == 1.5
        assert settings.max_iterations == 500


class TestExportOptions:
    def test_partial_record(self):
        """Keys left out of the record default to True."""
        options = ExportOptions.merge({"includeImages": False})
        assert options.as_record() == {
            "includeImages": False,
            "includeAvatars": True,
            "includeTimestamps": True,
            "includeReactions": True,
        }

    def test_empty_record(self):
        assert ExportOptions.merge(None) == ExportOptions()

    def test_field_names(self):
        assert ExportOptions(include_reactions=False).as_record()["includeReactions"] is False


class TestProgressReporter:
    def test_clamps_and_never_goes_back(self):
        seen: list[tuple[int, str]] = []
        progress = ProgressReporter(lambda p, t: seen.append((p, t)))

        progress.report(60, "a")
        progress.report(50, "b")
        progress.report(150, "c")
        progress.report(-5, "d")

        assert seen == [(60, "a"), (60, "b"), (100, "c"), (100, "d")]
        assert progress.percent == 100

    def test_without_sink(self):
        progress = ProgressReporter()
        progress.report(42.7, "x")
        assert progress.percent == 42


class TestFormatting:
    def test_format_timestamp(self):
        assert format_timestamp("2024-03-01T10:00:00.000Z") == "2024-03-01 10:00:00"
        assert format_timestamp("2024-03-01T12:00:00+02:00") == "2024-03-01 10:00:00"
        assert format_timestamp(None) == ""

    def test_unparseable_timestamp_is_kept(self):
        assert format_timestamp("???") == "???"

    def test_export_filename(self):
        now = datetime(2024, 3, 1, 10, 5, 7, 123000, tzinfo=timezone.utc)
        assert export_filename("pdf", now) == "discord-export-2024-03-01T10-05-07-123Z.pdf"

    def test_export_filename_converts_to_utc(self):
        now = datetime(2024, 3, 1, 12, 5, 7, tzinfo=timezone(timedelta(hours=2)))
        assert export_filename("html", now) == "discord-export-2024-03-01T10-05-07-000Z.html"

    def test_naive_export_time_is_utc(self):
        assert export_filename("md", datetime(2024, 3, 1, 10, 5, 7)) == (
            "discord-export-2024-03-01T10-05-07-000Z.md"
        )

    def test_avatar_initial(self):
        assert avatar_initial("bob") == "B"
        assert avatar_initial("") == "U"
