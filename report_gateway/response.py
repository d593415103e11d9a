from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .models import Outcome

SUCCESS_MESSAGE = "Report sent."
FAILURE_PREFIX = "Report not sent: "
DEFAULT_FAILURE_STATUS = 500
DEFAULT_FAILURE_MESSAGE = "internal error"

_STATUS_RE = re.compile(r"\A\d{3}\Z")


@dataclass(frozen=True)
class Response:
    status: int
    body: str
    content_type: str = "text/plain"

    def status_line(self) -> str:
        return f"Status: {self.status}"

    def to_cgi(self) -> str:
        return f"{self.status_line()}\nContent-type: {self.content_type}\n\n{self.body}"


def respond(status: int, message: str) -> Response:
    return Response(status=status, body=f"{message}\n")


def normalize_status(status: Any) -> int:
    if isinstance(status, bool) or status is None:
        return DEFAULT_FAILURE_STATUS
    if _STATUS_RE.match(str(status)):
        return int(status)
    return DEFAULT_FAILURE_STATUS


def render_outcome(outcome: Outcome) -> Response:
    if outcome.is_success():
        return respond(200, SUCCESS_MESSAGE)
    message = outcome.message or DEFAULT_FAILURE_MESSAGE
    return respond(normalize_status(outcome.status), f"{FAILURE_PREFIX}{message}")
