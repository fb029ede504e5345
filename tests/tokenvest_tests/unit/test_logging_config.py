"""
Tests for structured logging setup.
"""

import json
import logging

import pytest
import yaml

from tokenvest.core.config_manager import ConfigManager
from tokenvest.core.logging_config import (
    CustomJsonFormatter,
    get_logger,
    setup_ledger_logging,
    setup_logging,
)


def make_record(msg="Vesting created", **extra):
    record = logging.LogRecord(
        name="tokenvest.vesting",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="create_vesting",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_adds_ledger_context():
    formatter = CustomJsonFormatter(environment="testnet")
    payload = json.loads(formatter.format(make_record(event="vesting.created", amount=900)))

    assert payload["message"] == "Vesting created"
    assert payload["event"] == "vesting.created"
    assert payload["amount"] == 900
    assert payload["environment"] == "testnet"
    assert payload["service"] == "tokenvest"
    assert payload["level"] == "info"
    assert payload["source"]["function"] == "create_vesting"
    assert "timestamp" in payload


def test_setup_logging_replaces_handlers():
    logger = setup_logging(name="tokenvest.test_setup", level="DEBUG")
    setup_logging(name="tokenvest.test_setup", level="DEBUG")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, CustomJsonFormatter)


def test_setup_logging_plain_text():
    logger = setup_logging(name="tokenvest.test_plain", json_format=False)
    assert not isinstance(logger.handlers[0].formatter, CustomJsonFormatter)


def test_setup_logging_without_console():
    logger = setup_logging(name="tokenvest.test_quiet", enable_console=False)
    assert logger.handlers == []


def test_setup_logging_writes_json_file(tmp_path):
    log_file = tmp_path / "logs" / "tokenvest.json"
    logger = setup_logging(
        name="tokenvest.test_file",
        log_file=str(log_file),
        enable_console=False,
    )
    logger.info("Claimed", extra={"event": "vesting.claimed", "amount": 300})
    for handler in logger.handlers:
        handler.flush()

    entry = json.loads(log_file.read_text().splitlines()[-1])
    assert entry["event"] == "vesting.claimed"
    assert entry["amount"] == 300


def test_invalid_level_rejected():
    with pytest.raises(ValueError):
        setup_logging(name="tokenvest.test_bad", level="VERBOSE")


def test_get_logger_reuses_configured_logger():
    configured = setup_logging(name="tokenvest.test_reuse", enable_console=True)
    handlers = list(configured.handlers)
    assert get_logger("tokenvest.test_reuse") is configured
    assert configured.handlers == handlers


@pytest.fixture
def ledger_logger():
    yield logging.getLogger("tokenvest")
    logger = logging.getLogger("tokenvest")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def test_ledger_logging_follows_configuration(tmp_path, monkeypatch, ledger_logger):
    monkeypatch.delenv("TOKENVEST_LOGGING_LEVEL", raising=False)
    log_file = tmp_path / "logs" / "ledger.json"
    (tmp_path / "default.yaml").write_text(yaml.safe_dump({
        "logging": {"level": "WARNING", "log_file": str(log_file), "json_format": True},
    }))
    manager = ConfigManager(environment="staging", config_dir=str(tmp_path))

    logger = setup_ledger_logging(manager)
    logger.info("dropped")
    logger.warning("Clock moved backwards", extra={"event": "vesting.clock_regression"})
    for handler in logger.handlers:
        handler.flush()

    assert logger is ledger_logger
    assert logger.level == logging.WARNING
    entries = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert [entry["event"] for entry in entries] == ["vesting.clock_regression"]
    assert entries[0]["environment"] == "staging"

    assert setup_ledger_logging(manager, level="DEBUG").level == logging.DEBUG
