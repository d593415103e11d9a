from __future__ import annotations

import json
import smtplib

import httpx
import pytest
from botocore.exceptions import ClientError

from report_gateway import mailer as mailer_module
from report_gateway.config import Settings
from report_gateway.errors import DeliveryError
from report_gateway.gateway import HTTPGateway
from report_gateway.mailer import BrevoMailer, MailError, SendGridMailer, SESMailer, SMTPMailer, deliver
from report_gateway.models import OutboundMessage


def _message() -> OutboundMessage:
    return OutboundMessage(
        to="cpan-testers@perl.org",
        from_addr="a@b.com",
        subject="PASS Foo-1.0",
        body="line1\nline2\n",
        reported_via="Relay 0.001 relayed from tester/1.0",
    )


class FakeSMTP:
    instances: list = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls: list = []
        self.sent: list = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))

    def sendmail(self, from_addr, to_addrs, msg):
        self.sent.append((from_addr, to_addrs, msg))
        return {}


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_smtp_mailer_sends_message(fake_smtp):
    settings = Settings.from_env(
        {
            "SMTP_HOST": "mail.example.org",
            "SMTP_PORT": "587",
            "SMTP_STARTTLS": "true",
            "SMTP_USERNAME": "relay",
            "SMTP_PASSWORD": "pw",
        }
    )
    SMTPMailer(settings).send(_message())
    [server] = fake_smtp.instances
    assert (server.host, server.port) == ("mail.example.org", 587)
    assert server.calls == ["starttls", ("login", "relay", "pw")]
    [(envelope_from, envelope_to, raw)] = server.sent
    assert envelope_from == "a@b.com"
    assert envelope_to == ["cpan-testers@perl.org"]
    assert raw == _message().as_bytes()


def test_smtp_mailer_skips_login_without_credentials(fake_smtp):
    SMTPMailer(Settings.from_env({})).send(_message())
    assert fake_smtp.instances[0].calls == []


def test_smtp_errors_become_mail_error(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(mailer_module.smtplib, "SMTP", refuse)
    with pytest.raises(MailError):
        SMTPMailer(Settings.from_env({})).send(_message())


def test_smtp_refused_recipients_become_mail_error(fake_smtp, monkeypatch):
    monkeypatch.setattr(FakeSMTP, "sendmail", lambda self, f, t, msg: {"cpan-testers@perl.org": (550, b"no")})
    with pytest.raises(MailError):
        SMTPMailer(Settings.from_env({})).send(_message())


def test_brevo_mailer_posts_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["api-key"]
        seen["payload"] = json.loads(request.content)
        return httpx.Response(201, json={"messageId": "<1@brevo>"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    BrevoMailer("brevo-key", client=client).send(_message())
    assert seen["key"] == "brevo-key"
    assert seen["payload"]["to"] == [{"email": "cpan-testers@perl.org"}]
    assert seen["payload"]["textContent"] == "line1\nline2\n"
    assert seen["payload"]["headers"] == {"X-Reported-Via": "Relay 0.001 relayed from tester/1.0"}


def test_brevo_error_status_becomes_mail_error():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(401)))
    with pytest.raises(MailError):
        BrevoMailer("bad-key", client=client).send(_message())


def test_deliver_wraps_mail_error():
    class Failing:
        provider = "failing"

        def send(self, message):
            raise MailError("boom")

    with pytest.raises(DeliveryError) as info:
        deliver(_message(), "SMTP", settings=Settings.from_env({}), mailer_factory=lambda t, s: Failing())
    assert info.value.status == 500
    assert info.value.message == "internal error"
    assert isinstance(info.value.cause, MailError)


def test_deliver_does_not_retry():
    calls = []

    class Failing:
        provider = "failing"

        def send(self, message):
            calls.append(message)
            raise MailError(str(smtplib.SMTPServerDisconnected("gone")))

    with pytest.raises(DeliveryError):
        deliver(_message(), "SMTP", settings=Settings.from_env({}), mailer_factory=lambda t, s: Failing())
    assert len(calls) == 1


@pytest.mark.parametrize("from_addr", ['"', "<", "a@[b"])
def test_gateway_relays_odd_from_and_body_verbatim_over_smtp(fake_smtp, from_addr):
    report = "x" * 200 + "\r\nend"
    gateway = HTTPGateway(Settings.from_env({}))
    response = gateway.handle(
        {"from": from_addr, "subject": "PASS Foo-1.0", "via": "tester/1.0", "report": report}
    )
    assert response.status == 200
    [(envelope_from, _, raw)] = fake_smtp.instances[0].sent
    assert envelope_from == from_addr
    assert f"From: {from_addr}\r\n".encode() in raw
    assert raw.endswith(b"\r\n\r\n" + report.encode())


class FakeSESClient:
    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.requests: list = []

    def send_email(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return {"MessageId": "1", "ResponseMetadata": {"HTTPStatusCode": self.status_code}}


def _ses_mailer(monkeypatch, client: FakeSESClient) -> SESMailer:
    regions = []

    def fake_client(service, region_name=None):
        regions.append((service, region_name))
        return client

    monkeypatch.setattr(mailer_module.boto3, "client", fake_client)
    mailer = SESMailer(aws_region="eu-west-1")
    assert regions == [("sesv2", "eu-west-1")]
    return mailer


def test_ses_mailer_sends_raw_message(monkeypatch):
    client = FakeSESClient()
    _ses_mailer(monkeypatch, client).send(_message())
    [request] = client.requests
    assert request["FromEmailAddress"] == "a@b.com"
    assert request["Destination"] == {"ToAddresses": ["cpan-testers@perl.org"]}
    assert request["Content"] == {"Raw": {"Data": _message().as_bytes()}}
    assert b"X-Reported-Via: Relay 0.001 relayed from tester/1.0\r\n" in request["Content"]["Raw"]["Data"]


def test_ses_error_status_becomes_mail_error(monkeypatch):
    with pytest.raises(MailError):
        _ses_mailer(monkeypatch, FakeSESClient(status_code=500)).send(_message())


def test_ses_client_error_becomes_mail_error(monkeypatch):
    error = ClientError({"Error": {"Code": "MessageRejected", "Message": "no"}}, "SendEmail")
    with pytest.raises(MailError):
        _ses_mailer(monkeypatch, FakeSESClient(error=error)).send(_message())


class FakeSendGridClient:
    status_code = 202
    sent: list = []

    def __init__(self, api_key):
        self.api_key = api_key

    def send(self, mail):
        FakeSendGridClient.sent.append(mail)
        return type("Response", (), {"status_code": FakeSendGridClient.status_code})()


@pytest.fixture
def fake_sendgrid(monkeypatch):
    FakeSendGridClient.sent = []
    FakeSendGridClient.status_code = 202
    monkeypatch.setattr(mailer_module, "SendGridAPIClient", FakeSendGridClient)
    return FakeSendGridClient


def test_sendgrid_mailer_sets_reported_via_header(fake_sendgrid):
    SendGridMailer("sendgrid-key").send(_message())
    [mail] = fake_sendgrid.sent
    payload = mail.get()
    assert payload["headers"] == {"X-Reported-Via": "Relay 0.001 relayed from tester/1.0"}
    assert payload["from"]["email"] == "a@b.com"
    assert payload["subject"] == "PASS Foo-1.0"
    assert payload["content"][0]["value"] == "line1\nline2\n"


def test_sendgrid_error_status_becomes_mail_error(fake_sendgrid):
    fake_sendgrid.status_code = 400
    with pytest.raises(MailError):
        SendGridMailer("sendgrid-key").send(_message())
