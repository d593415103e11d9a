from __future__ import annotations

from typing import List

import pytest

from report_gateway.config import Settings
from report_gateway.mailer import MailError
from report_gateway.models import OutboundMessage


class FakeMailer:
    provider = "fake"

    def __init__(self, error: str | None = None):
        self.error = error
        self.sent: List[OutboundMessage] = []
        self.transports: List[str] = []

    def factory(self, transport: str, settings: Settings) -> "FakeMailer":
        self.transports.append(transport)
        return self

    def send(self, message: OutboundMessage) -> None:
        if self.error is not None:
            raise MailError(self.error)
        self.sent.append(message)


@pytest.fixture
def settings() -> Settings:
    return Settings.from_env({})


@pytest.fixture
def fake_mailer() -> FakeMailer:
    return FakeMailer()


def _valid_form(**overrides):
    form = {
        "from": "a@b.com",
        "subject": "ok",
        "via": "tester/1.0",
        "report": "line1\nline2",
        "key": "",
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


@pytest.fixture
def valid_form():
    return _valid_form


@pytest.fixture
def failing_mailer():
    def make(error: str) -> FakeMailer:
        return FakeMailer(error=error)

    return make
