"""Tests for loguru setup."""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest
from loguru import logger

from sports_sync.core.logging import setup_logging


@pytest.fixture(autouse=True)
def _restore_default_sink() -> Generator[None]:
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestSetupLogging:
    def test_default_job_id_is_dash(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO")
        logger.info("hello")

        err = capsys.readouterr().err
        assert "job=- |" in err
        assert "hello" in err

    def test_contextualized_job_id(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO")
        with logger.contextualize(job_id="abc"):
            logger.info("inside")

        assert "job=abc |" in capsys.readouterr().err

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("warning")
        logger.info("quiet")
        logger.warning("loud")

        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err

    def test_log_dir_creates_file(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))

        assert (log_dir / "sports-sync.log").exists()
