import logging
from datetime import date

import pytest

from logger import (
    INTEGRITY_LOG_FILENAME,
    daily_log_path,
    get_logger,
    reset_handlers,
    setup_logging,
)


@pytest.fixture
def catalog_logger():
    logger = get_logger()
    level = logger.level
    yield logger
    reset_handlers(logger)
    logger.setLevel(level)


def _flush(logger):
    for handler in logger.handlers:
        handler.flush()


class TestSetupLogging:
    """Tests for the catalog logger's handlers."""

    def test_daily_log_path_uses_iso_date(self, tmp_path):
        assert daily_log_path(tmp_path, date(2024, 3, 9)) == (
            tmp_path / "catalog-2024-03-09.log"
        )

    def test_critical_records_reach_integrity_log(self, test_config, catalog_logger):
        setup_logging(test_config)

        catalog_logger.info("Created category 4 'Brakes'")
        catalog_logger.critical("Category 7 has a broken ancestor chain")
        _flush(catalog_logger)

        daily = daily_log_path(test_config.log_dir).read_text()
        integrity = (test_config.log_dir / INTEGRITY_LOG_FILENAME).read_text()

        assert "Created category 4" in daily
        assert "broken ancestor chain" in daily
        assert "broken ancestor chain" in integrity
        assert "Created category 4" not in integrity

    def test_setup_twice_replaces_handlers(self, test_config, catalog_logger):
        setup_logging(test_config)
        first = list(catalog_logger.handlers)

        setup_logging(test_config)

        assert len(catalog_logger.handlers) == len(first) == 3
        assert not set(first) & set(catalog_logger.handlers)

    def test_level_comes_from_config(self, test_config, catalog_logger):
        test_config.log_level = "WARNING"

        setup_logging(test_config)

        assert catalog_logger.level == logging.WARNING
