from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

FIELDS = ("from", "subject", "via", "report", "key")


@dataclass(frozen=True)
class Submission:
    from_addr: Optional[str] = None
    subject: Optional[str] = None
    via: Optional[str] = None
    report: Optional[str] = None
    key: Optional[str] = None

    def get(self, name: str) -> Optional[str]:
        if name == "from":
            return self.from_addr
        if name not in FIELDS:
            raise KeyError(name)
        return getattr(self, name)

    @staticmethod
    def from_form(form: Mapping[str, Any]) -> "Submission":
        values = {name: _scalar(form.get(name)) for name in FIELDS}
        return Submission(
            from_addr=values["from"],
            subject=values["subject"],
            via=values["via"],
            report=values["report"],
            key=values["key"],
        )


def _scalar(value: Any) -> Optional[str]:
    # Repeated form fields arrive as lists; the first value wins.
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    # File uploads and other non-text parts count as absent.
    if not isinstance(value, str):
        return None
    return value


@dataclass(frozen=True)
class ValidatedFields:
    from_addr: str
    subject: str
    via: str
    report: str


@dataclass(frozen=True)
class OutboundMessage:
    to: str
    from_addr: str
    subject: str
    body: str
    reported_via: str

    def headers(self) -> List[Tuple[str, str]]:
        return [
            ("To", self.to),
            ("From", self.from_addr),
            ("Subject", self.subject),
            ("X-Reported-Via", self.reported_via),
        ]

    def as_bytes(self) -> bytes:
        """Render the message as sent: raw header lines, a blank line, the body untouched."""
        head = "".join(f"{name}: {value}\r\n" for name, value in self.headers())
        return (head + "\r\n" + self.body).encode("utf-8", errors="surrogateescape")


@dataclass(frozen=True)
class Outcome:
    status: int = 200
    message: Optional[str] = None
    success: bool = True

    def is_success(self) -> bool:
        return self.success

    @staticmethod
    def ok() -> "Outcome":
        return Outcome()

    @staticmethod
    def failure(status: Any, message: Optional[str]) -> "Outcome":
        return Outcome(status=status, message=message, success=False)
