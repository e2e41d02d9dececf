from argparse import Namespace

import pytest

from cli import categories as categories_cli
from cli.exit_codes import EXIT_FAILURE, EXIT_RETRY, exit_code_for
from services.errors import (
    CircularReferenceError,
    ConcurrentModificationError,
    StructuralCorruptionError,
)


class TestExitCodes:
    """Tests for mapping taxonomy errors to process exit codes."""

    def test_retryable_error_exits_with_retry_code(self):
        assert exit_code_for(ConcurrentModificationError("locked")) == EXIT_RETRY

    def test_rejection_exits_with_failure(self):
        assert exit_code_for(CircularReferenceError("cycle", 3)) == EXIT_FAILURE
        assert exit_code_for(StructuralCorruptionError("broken", 3)) == EXIT_FAILURE

    def test_report_exits_with_retry_code_when_busy(self, caplog):
        with caplog.at_level("INFO", logger="catalog"):
            with pytest.raises(SystemExit) as exc_info:
                categories_cli._report(ConcurrentModificationError("locked"))

        assert exc_info.value.code == EXIT_RETRY
        assert "run the command again" in caplog.text

    def test_create_under_missing_parent_exits_with_failure(self, services):
        args = Namespace(name="Turbochargers", parent=999)

        with pytest.raises(SystemExit) as exc_info:
            categories_cli.cmd_create(args, services)

        assert exc_info.value.code == EXIT_FAILURE

    def test_move_during_lock_contention_exits_with_retry_code(
        self, services, monkeypatch
    ):
        def locked(*args, **kwargs):
            raise ConcurrentModificationError("Taxonomy is locked by another writer")

        monkeypatch.setattr(services.categories, "reparent", locked)

        with pytest.raises(SystemExit) as exc_info:
            categories_cli.cmd_move(Namespace(category_id=1, parent=None), services)

        assert exc_info.value.code == EXIT_RETRY
