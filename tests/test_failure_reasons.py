from clockify_auto.constants.failure_reasons import FailureReason, explain_failure


def test_explain_failure_fills_context():
    message = explain_failure(FailureReason.VALIDATION, {"entry_date": "2025-01-07", "error_detail": "Project is archived"})
    assert message == "Clockify rejected the entry for 2025-01-07: Project is archived."


def test_explain_failure_uses_service_name():
    message = explain_failure(FailureReason.AUTHENTICATION, {"service": "Jira", "error_detail": "HTTP 401"})
    assert message.startswith("Jira authentication failed: HTTP 401")


def test_unknown_existence_message():
    message = explain_failure(FailureReason.UNKNOWN_EXISTENCE, {"entry_date": "2025-01-08", "error_detail": "timeout"})
    assert "2025-01-08" in message
    assert "left untouched" in message
