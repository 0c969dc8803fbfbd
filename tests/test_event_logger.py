from tests._user_config_tests import UserConfig as cfg_module
from tests._sim_params_tests import SimParams as sparams_module

from wifisweep.utils.event_logger import (
    LOGGER_CACHE,
    LOGS_RECORDING_FILENAME,
    ConsoleFormatter,
    ExclusionFilter,
    get_logger,
    set_log_context,
    update_loggers_environment,
)

import logging
import simpy
import json
import os

import pytest


def make_record(name: str, level: int, message: str = "msg") -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 0, message, None, None)


@pytest.fixture
def recording_cfg(tmp_path):
    class RecordingConfig(cfg_module):
        ENABLE_CONSOLE_LOGGING = False
        ENABLE_LOGS_RECORDING = True
        LOGS_RECORDING_PATH = str(tmp_path)
        EXCLUDED_LOGS = {"RECORDED": ["DEBUG"]}

    yield RecordingConfig
    logger = LOGGER_CACHE.pop("RECORDED", None)
    if logger is not None:
        for handler in logger.handlers:
            handler.close()
    set_log_context(None)


def test_exclusion_filter():
    log_filter = ExclusionFilter(cfg_module)

    assert not log_filter.filter(make_record("BUILDER", logging.DEBUG))
    assert log_filter.filter(make_record("BUILDER", logging.INFO))
    assert not log_filter.filter(make_record("MEDIUM", logging.WARNING))
    assert log_filter.filter(make_record("SWEEP", logging.DEBUG))


def test_console_formatter_plain_and_sim_time():
    formatter = ConsoleFormatter(cfg_module)

    assert formatter.format(make_record("SWEEP", logging.INFO, "hello")) == "INFO: hello"

    env = simpy.Environment(initial_time=1_500_000)
    formatter.env = env
    set_log_context("distance1=120 distance2=1000")
    try:
        line = formatter.format(make_record("MEDIUM", logging.INFO, "busy"))
    finally:
        set_log_context(None)

    assert line.startswith("[distance1=120 distance2=1000] [t =     1.500000 s]")
    assert line.endswith("busy")


def test_critical_record_exits():
    formatter = ConsoleFormatter(cfg_module)

    with pytest.raises(SystemExit):
        formatter.format(make_record("MAIN", logging.CRITICAL, "boom"))


def test_custom_levels():
    logger = get_logger("TEST", cfg_module, sparams_module)

    assert logging.getLevelName(5) == "HEADER"
    assert logging.getLevelName(15) == "DEFAULT"
    assert logging.getLevelName(25) == "SUCCESS"
    for method in ("header", "default", "success"):
        assert callable(getattr(logger, method))


def test_logs_recording_appends_json_lines(recording_cfg):
    logger = get_logger("RECORDED", recording_cfg, sparams_module)
    assert get_logger("RECORDED", recording_cfg, sparams_module) is logger

    env = simpy.Environment(initial_time=42)
    update_loggers_environment(env)
    set_log_context("distance1=120")
    try:
        logger.debug("dropped")
        logger.success("kept")
        logger.warning("also kept")
    finally:
        update_loggers_environment(None)

    for handler in logger.handlers:
        handler.flush()

    path = os.path.join(recording_cfg.LOGS_RECORDING_PATH, LOGS_RECORDING_FILENAME)
    with open(path) as file:
        entries = [json.loads(line) for line in file]

    assert [entry["message"] for entry in entries] == ["kept", "also kept"]
    assert entries[0]["level"] == "SUCCESS"
    assert entries[0]["module"] == "RECORDED"
    assert entries[0]["sim_time_us"] == 42
    assert entries[0]["configuration"] == "distance1=120"
