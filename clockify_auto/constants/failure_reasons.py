from enum import Enum
from typing import Dict

class FailureReason(Enum):
    AUTHENTICATION = "AUTHENTICATION"
    VALIDATION = "VALIDATION"
    TRANSIENT = "TRANSIENT"
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_EXISTENCE = "UNKNOWN_EXISTENCE"
    OTHER = "OTHER"

def explain_failure(code: FailureReason, context: Dict) -> str:
    templates = {
        FailureReason.AUTHENTICATION: "{service} authentication failed: {error_detail}. Check your API credentials.",
        FailureReason.VALIDATION: "{service} rejected the entry for {entry_date}: {error_detail}.",
        FailureReason.TRANSIENT: "{service} temporarily unavailable while processing {entry_date}: {error_detail}.",
        FailureReason.NOT_FOUND: "{service} resource not found while processing {entry_date}: {error_detail}.",
        FailureReason.UNKNOWN_EXISTENCE: "Could not verify whether {entry_date} already has an entry: {error_detail}. Date left untouched.",
        FailureReason.OTHER: "Unexpected error for {entry_date}: {error_detail}.",
    }
    template = templates.get(code, templates[FailureReason.OTHER])
    values = {"service": "Clockify", "entry_date": "unknown date", "error_detail": ""}
    values.update(context)
    return template.format(**values)
