"""Unit tests for structured logging setup."""

import logging
from collections.abc import Iterator
from decimal import Decimal
from uuid import UUID

import pytest
import structlog

from account_ledger.domain.account import AccountStatus
from account_ledger.domain.money import Money
from account_ledger.logging import configure_logging, render_ledger_values


class TestRenderLedgerValues:
    """Tests for the ledger value processor."""

    def test_renders_domain_values(self) -> None:
        event_dict = {
            "event": "transaction_completed",
            "amount": Money.usd("12.5"),
            "account_id": UUID(int=1),
            "limit": Decimal("100"),
            "status": AccountStatus.FROZEN,
            "attempt": 2,
        }

        rendered = render_ledger_values(None, "info", event_dict)

        assert rendered == {
            "event": "transaction_completed",
            "amount": "12.50 USD",
            "account_id": "00000000-0000-0000-0000-000000000001",
            "limit": "100",
            "status": "FROZEN",
            "attempt": 2,
        }


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_logging(self) -> Iterator[None]:
        """Undo global logging changes after each test."""
        root_logger = logging.getLogger()
        handlers, level = list(root_logger.handlers), root_logger.level
        yield
        root_logger.handlers[:] = handlers
        root_logger.setLevel(level)
        structlog.reset_defaults()

    def test_configures_root_logger(self) -> None:
        configure_logging(level="DEBUG", log_format="console")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_quiets_driver_loggers(self) -> None:
        configure_logging(level="INFO", log_format="json")

        assert logging.getLogger("sqlalchemy").level == logging.WARNING
        assert logging.getLogger("asyncpg").level == logging.WARNING
