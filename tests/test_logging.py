import json
import logging

from app.core.logging import DevelopmentFormatter, LogContext, StructuredFormatter, get_logger


def make_record(message="Routing document"):
    return logging.getLogger("sol.test").makeRecord("sol.test", logging.INFO, __file__, 1, message, (), None)


def test_context_is_attached_and_removed():
    with LogContext(email="kai@example.com", doc_type="visioning"):
        record = make_record()
    after = make_record()

    assert record.email == "kai@example.com"
    assert record.doc_type == "visioning"
    assert not hasattr(after, "email")


def test_nested_context_inner_wins():
    with LogContext(email="kai@example.com", doc_type="general"):
        with LogContext(doc_type="visioning", table=None):
            record = make_record()

    assert record.email == "kai@example.com"
    assert record.doc_type == "visioning"
    assert not hasattr(record, "table")


def test_structured_output_carries_context():
    with LogContext(email="kai@example.com"):
        record = make_record("Visioning stored")

    data = json.loads(StructuredFormatter().format(record))

    assert data["message"] == "Visioning stored"
    assert data["email"] == "kai@example.com"
    assert data["timestamp"].endswith("+00:00")


def test_development_output_lists_context():
    with LogContext(email="kai@example.com", doc_type="business-plan"):
        line = DevelopmentFormatter().format(make_record())

    assert "[email=kai@example.com, doc_type=business-plan]" in line


def test_loggers_share_namespace():
    assert get_logger("app.services.chat_service").name == "sol.app.services.chat_service"
