import json
from datetime import datetime, timezone

import redis

from padata.importers.progress import (
    LoggingProgressReporter,
    MemoryProgressReporter,
    NullProgressReporter,
    RedisProgressReporter,
    read_progress,
)
from padata.schemas.import_run import FileResult, ProgressUpdate, RunSummary

KEY = "padata:import:status"
CHANNEL = "padata:import:updates"


def _update(**overrides):
    values = dict(
        is_running=True,
        current_file="2019 PSSA School Level Data.xlsx",
        files_processed=1,
        files_total=4,
        rows_processed=120,
        progress=25,
        started_at=datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return ProgressUpdate(**values)


class TestReporters:
    def test_null_and_logging_accept_updates(self, caplog):
        NullProgressReporter().publish(_update())
        with caplog.at_level("INFO", logger="padata.importers.progress"):
            LoggingProgressReporter().publish(_update())
            LoggingProgressReporter().publish(_update(is_running=False, is_complete=True, progress=100))

        assert "[25%]" in caplog.text
        assert "Import complete" in caplog.text

    def test_memory_keeps_latest_and_history(self):
        reporter = MemoryProgressReporter()
        assert reporter.latest is None

        reporter.publish(_update())
        reporter.publish(_update(files_processed=2, progress=50))

        assert reporter.latest.files_processed == 2
        assert [u.progress for u in reporter.history] == [25, 50]


class TestRedisReporter:
    def test_sets_snapshot_and_publishes(self, fake_redis):
        RedisProgressReporter(fake_redis, KEY, CHANNEL).publish(_update())

        stored = json.loads(fake_redis.store[KEY])
        assert stored["current_file"] == "2019 PSSA School Level Data.xlsx"
        assert stored["progress"] == 25
        channel, message = fake_redis.published[0]
        assert channel == CHANNEL
        assert json.loads(message)["files_total"] == 4

    def test_snapshot_expires(self, fake_redis):
        RedisProgressReporter(fake_redis, KEY, CHANNEL, ttl=3600).publish(_update())

        assert fake_redis.expiry[KEY] == 3600

    def test_redis_outage_does_not_raise(self, caplog):
        class DownRedis:
            def set(self, key, value, ex=None, nx=False):
                raise redis.ConnectionError("connection refused")

        RedisProgressReporter(DownRedis(), KEY, CHANNEL).publish(_update())

        assert "Failed to publish import progress" in caplog.text

    def test_read_progress_round_trip(self, fake_redis):
        RedisProgressReporter(fake_redis, KEY, CHANNEL).publish(_update(errors=["bad.xlsx: boom"]))

        update = read_progress(fake_redis, KEY)

        assert update.is_running is True
        assert update.errors == ["bad.xlsx: boom"]
        assert update.started_at == datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

    def test_read_progress_idle(self, fake_redis):
        update = read_progress(fake_redis, KEY)

        assert update.is_running is False
        assert update.is_complete is False
        assert update.progress == 0


class TestRunSummary:
    def test_add_file_aggregates(self):
        summary = RunSummary(started_at=datetime.now(timezone.utc), files_total=3)

        summary.add_file(FileResult(
            file_name="a.xlsx", file_path="/s/a.xlsx", program="pssa", level="school", status="completed",
            processed_rows=10, inserted_rows=7, existing_rows=1, skipped_rows=2,
            skip_reasons={"subject not allowed: Writing": 2},
        ))
        summary.add_file(FileResult(
            file_name="b.xlsx", file_path="/s/b.xlsx", program="pssa", level="school", status="failed",
            error_message="boom",
        ))
        summary.add_file(FileResult(
            file_name="c.xlsx", file_path="/s/c.xlsx", program="pssa", level="school", status="skipped",
            error_message="No layout registered for pssa/school file 'c.xlsx'",
        ))

        assert summary.files_processed == 3
        assert (summary.files_completed, summary.files_failed, summary.files_skipped) == (1, 1, 1)
        assert summary.rows_inserted == 7
        assert summary.rows_skipped == 2
        assert summary.skip_reasons == {"subject not allowed: Writing": 2}
        assert [e.file_name for e in summary.errors] == ["b.xlsx"]
