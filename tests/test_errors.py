import logging

from fortress.core import errors


def test_log_exception_includes_context(caplog):
    logger = logging.getLogger("test_errors")
    caplog.set_level(logging.ERROR)

    errors.log_exception(logger, "Automation pass aborted", extra={"org": "org-1", "item": None}, exc=RuntimeError("boom"))

    record = caplog.records[-1]
    assert record.getMessage() == "Automation pass aborted org=org-1: boom"
    assert record.exc_info is not None


def test_log_exception_without_exception_uses_current(caplog):
    logger = logging.getLogger("test_errors")
    caplog.set_level(logging.ERROR)

    try:
        raise ValueError("bad config")
    except ValueError:
        errors.log_exception(logger, "Startup step failed")

    record = caplog.records[-1]
    assert record.getMessage() == "Startup step failed"
    assert record.exc_info[0] is ValueError
