"""Tests for the extract-url, housekeeping and telemetry commands."""

import argparse
import json
from unittest.mock import Mock

import pandas as pd
import pytest

from freereader.cli.commands.extract_url import handle_extract_url_command
from freereader.cli.commands.housekeeping import handle_housekeeping_command
from freereader.cli.commands.telemetry import handle_telemetry_command
from freereader.models.database import DatabaseManager
from freereader.utils.article_cache import ArticleCache
from freereader.utils.comprehensive_telemetry import (
    ExtractionAttemptMetrics,
    ExtractionLogger,
)
from freereader.utils.extraction_outcomes import (
    GENERIC_FAILURE_MESSAGE,
    PARTIAL_WARNING,
    ArticleResponse,
    AttemptStatus,
    ExtractionOutcome,
    ExtractionResult,
)
from freereader.utils.reliability import ReliabilityTracker

URL = "https://medium.com/@alice/my-post-abc123"


def _result(score=87):
    return ExtractionResult(
        title="Understanding Python Internals",
        author="Alice Johnson",
        content="<p>Body text</p>",
        plain_text="Body text",
        word_count=1200,
        reading_time=6,
        completeness_score=score,
        method="mirror-b",
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def fake_fetcher(mocker):
    fetcher = Mock()
    mocker.patch(
        "freereader.cli.commands.extract_url.build_article_fetcher", return_value=fetcher
    )
    return fetcher


class TestExtractUrl:
    def _args(self, database_url, as_json=False):
        return argparse.Namespace(url=URL, as_json=as_json, database_url=database_url)

    def test_prints_article(self, fake_fetcher, database_url, capsys):
        fake_fetcher.fetch_article.return_value = ArticleResponse.from_outcome(
            ExtractionOutcome(result=_result())
        )

        assert handle_extract_url_command(self._args(database_url)) == 0

        out = capsys.readouterr().out
        assert "Understanding Python Internals" in out
        assert "by Alice Johnson" in out
        assert "1200 words" in out
        assert "Body text" in out
        fake_fetcher.fetch_article.assert_called_once_with(URL)
        fake_fetcher.close.assert_called_once()

    def test_partial_prints_warning(self, fake_fetcher, database_url, capsys):
        fake_fetcher.fetch_article.return_value = ArticleResponse.from_outcome(
            ExtractionOutcome(result=_result(score=45), warning=PARTIAL_WARNING)
        )

        assert handle_extract_url_command(self._args(database_url)) == 0
        assert PARTIAL_WARNING in capsys.readouterr().out

    def test_failure_exit_code(self, fake_fetcher, database_url, capsys):
        fake_fetcher.fetch_article.return_value = ArticleResponse.failure(
            GENERIC_FAILURE_MESSAGE, "all_strategies_exhausted"
        )

        assert handle_extract_url_command(self._args(database_url)) == 1
        assert GENERIC_FAILURE_MESSAGE in capsys.readouterr().out

    def test_json_output(self, fake_fetcher, database_url, capsys):
        fake_fetcher.fetch_article.return_value = ArticleResponse.from_outcome(
            ExtractionOutcome(result=_result(), cached=True)
        )

        assert handle_extract_url_command(self._args(database_url, as_json=True)) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload == {
            "content": "<p>Body text</p>",
            "title": "Understanding Python Internals",
            "author": "Alice Johnson",
            "wordCount": 1200,
            "readingTime": 6,
            "cached": True,
        }

    def test_fetcher_closed_on_error(self, fake_fetcher, database_url):
        fake_fetcher.fetch_article.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            handle_extract_url_command(self._args(database_url))

        fake_fetcher.close.assert_called_once()


class TestHousekeeping:
    def _seed(self, database_url):
        with DatabaseManager(database_url) as db:
            ArticleCache(db, ttl_days=-1).store(URL + "-old", _result())
            ArticleCache(db, ttl_days=7).store(URL, _result())

    def test_dry_run_counts_only(self, database_url, capsys):
        self._seed(database_url)
        args = argparse.Namespace(dry_run=True, database_url=database_url)

        assert handle_housekeeping_command(args) == 0
        assert "Would remove 1 expired" in capsys.readouterr().out

        with DatabaseManager(database_url) as db:
            assert ArticleCache(db).count_expired() == 1

    def test_sweep_deletes_expired(self, database_url, capsys):
        self._seed(database_url)
        args = argparse.Namespace(dry_run=False, database_url=database_url)

        assert handle_housekeeping_command(args) == 0
        assert "Removed 1 expired" in capsys.readouterr().out

        with DatabaseManager(database_url) as db:
            cache = ArticleCache(db)
            assert cache.count_expired() == 0
            assert cache.get(URL) is not None

    def test_database_error_returns_one(self, mocker):
        mocker.patch(
            "freereader.cli.commands.housekeeping.DatabaseManager",
            side_effect=RuntimeError("cannot connect"),
        )
        args = argparse.Namespace(dry_run=False, database_url="sqlite:///x.db")

        assert handle_housekeeping_command(args) == 1


class TestTelemetry:
    @pytest.fixture
    def seeded(self, database_url):
        with DatabaseManager(database_url) as db:
            extraction_logger = ExtractionLogger(db)
            ok = ExtractionAttemptMetrics(URL, "mirror-b", 1)
            ok.record_result(AttemptStatus.SUCCESS, 5000, 87)
            failed = ExtractionAttemptMetrics(URL, "mirror-a", 1)
            failed.record_error(TimeoutError("Timed out after 25s"))
            extraction_logger.record(failed)
            extraction_logger.record(ok)

            tracker = ReliabilityTracker(db)
            tracker.record_attempt("medium.com", "mirror-a", False, 25000.0)
            tracker.record_attempt("medium.com", "mirror-b", True, 1500.0)
        return database_url

    def _args(self, database_url, command, **extra):
        values = {"limit": 10, "hours": 24, "csv_path": None}
        values.update(extra)
        return argparse.Namespace(
            database_url=database_url, telemetry_command=command, **values
        )

    def test_missing_subcommand(self, database_url, capsys):
        assert handle_telemetry_command(self._args(database_url, None)) == 1
        assert "Please specify" in capsys.readouterr().out

    def test_logs(self, seeded, capsys):
        assert handle_telemetry_command(self._args(seeded, "logs")) == 0

        out = capsys.readouterr().out
        assert "mirror-a" in out
        assert "Timed out after 25s" in out
        assert "Total log entries shown: 2" in out

    def test_reliability(self, seeded, capsys):
        assert handle_telemetry_command(self._args(seeded, "reliability")) == 0

        out = capsys.readouterr().out
        assert "medium.com" in out
        assert "mirror-b" in out

    def test_summary_csv_export(self, seeded, tmp_path, capsys):
        csv_path = tmp_path / "summary.csv"

        assert (
            handle_telemetry_command(self._args(seeded, "summary", csv_path=str(csv_path)))
            == 0
        )

        frame = pd.read_csv(csv_path)
        assert sorted(frame["method"]) == ["mirror-a", "mirror-b"]
        assert set(frame.columns) >= {"attempts", "success", "failed", "success_rate"}
        assert "Wrote 2 rows" in capsys.readouterr().out

    def test_empty_database(self, database_url, capsys):
        assert handle_telemetry_command(self._args(database_url, "summary")) == 0
        assert "No extraction attempts" in capsys.readouterr().out
