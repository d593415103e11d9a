from __future__ import annotations

import re

from .errors import MalformedFieldError, MissingFieldError
from .models import Submission, ValidatedFields

REQUIRED_FIELDS = ("from", "subject", "via", "report")

# report is the message body and may span lines
MULTILINE_FIELDS = frozenset({"report"})

_NEWLINE_RE = re.compile(r"[\r\n]")


def validate_submission(submission: Submission) -> ValidatedFields:
    """Check the four text fields in order; the first failure is raised."""
    for name in REQUIRED_FIELDS:
        value = submission.get(name)
        if value is None or not len(value):
            raise MissingFieldError(name)
        if name in MULTILINE_FIELDS:
            continue
        if _NEWLINE_RE.search(value):
            raise MalformedFieldError(name)

    return ValidatedFields(
        from_addr=submission.from_addr,  # type: ignore[arg-type]
        subject=submission.subject,  # type: ignore[arg-type]
        via=submission.via,  # type: ignore[arg-type]
        report=submission.report,  # type: ignore[arg-type]
    )
