from loguru import logger

from keel import logging_utils
from keel.logging_utils import configure_logging


def test_session_is_injected_into_every_record(monkeypatch) -> None:
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", None)
    configure_logging(profile="default", level="DEBUG")

    sessions: list[str] = []
    sink_id = logger.add(lambda message: sessions.append(message.record["extra"]["session"]), level="DEBUG")
    try:
        logger.info("outside")
        with logger.contextualize(session="abc12345"):
            logger.info("inside")
    finally:
        logger.remove(sink_id)

    assert sessions == ["-", "abc12345"]


def test_configure_is_idempotent_per_profile(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(logging_utils, "_CONFIGURED_PROFILE", "cli")
    monkeypatch.setattr(logging_utils.logger, "remove", lambda *args: calls.append("remove"))

    configure_logging(profile="cli")

    assert calls == []
