import logging

import pytest

from sessionstore.logging_config import ComponentFilter, get_logging_config, mask_session_id


def make_record(name: str, message: str = "msg") -> logging.LogRecord:
    return logging.LogRecord(name, logging.INFO, __file__, 1, message, None, None)


@pytest.mark.parametrize(
    "name, component",
    [
        ("sessionstore.modules.pool.pool", "pool"),
        ("sessionstore.modules.session.manager", "session"),
        ("sessionstore.main", "main"),
        ("uvicorn.error", "uvicorn.error"),
    ],
)
def test_component_filter_names_the_emitting_module(name, component):
    record = make_record(name)

    assert ComponentFilter().filter(record)
    assert record.component == component


def test_uvicorn_levels_follow_engine_level():
    loggers = get_logging_config("debug")["loggers"]

    assert loggers["sessionstore"]["level"] == "DEBUG"
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        assert loggers[name]["level"] == "DEBUG"


def test_component_level_override():
    """Test one component can log at DEBUG while the engine stays at INFO."""
    loggers = get_logging_config("INFO", component_levels={"pool": "debug"})["loggers"]

    assert loggers["sessionstore"]["level"] == "INFO"
    assert loggers["sessionstore.modules.pool"]["level"] == "DEBUG"
    assert "sessionstore.modules.session" not in loggers


def test_access_log_disabled():
    loggers = get_logging_config("INFO", access_log=False)["loggers"]

    assert loggers["uvicorn.access"]["level"] == "WARNING"
    assert loggers["uvicorn.error"]["level"] == "INFO"


def test_unknown_component_is_rejected():
    with pytest.raises(ValueError, match="Unknown logging component"):
        get_logging_config("INFO", component_levels={"cache": "DEBUG"})


def test_engine_handler_carries_component_filter():
    config = get_logging_config()

    assert config["handlers"]["engine"]["filters"] == ["component"]
    assert "%(component)s" in config["formatters"]["engine"]["format"]


def test_mask_session_id():
    session_id = "3f2b8c1e-9d4a-4b7e-a1c2-5e6f7a8b9c0d"

    assert mask_session_id(session_id) == "3f2b8c1e..."
    assert mask_session_id("short") == "***"
    assert mask_session_id("") == "***"
