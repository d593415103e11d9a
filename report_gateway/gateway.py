"""Relay test reports received over HTTP to the report collector by mail.

Some reporting clients sit behind firewalls that only let HTTP out, while the
report collector only accepts mail. ``HTTPGateway.handle`` takes one form
submission with the fields

  from    - the email address of the user filing the report
  key     - the user key of the user filing the report
  subject - the subject of the report
  via     - the generator of the test report
  report  - the content of the report itself

and returns exactly one plain-text ``Response``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from .config import VERSION, Settings
from .errors import GatewayError, UnauthorizedError
from .mailer import MailerFactory, build_mailer, deliver
from .message_builder import build_message
from .models import Outcome, Submission
from .policy import DefaultPolicy, GatewayPolicy
from .response import Response, render_outcome
from .validator import validate_submission

logger = logging.getLogger(__name__)


class HTTPGateway:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        policy: Optional[GatewayPolicy] = None,
        mailer_factory: MailerFactory = build_mailer,
    ):
        self.settings = settings if settings is not None else Settings.from_env()
        if policy is None:
            policy = DefaultPolicy(self.settings, default_identity=self.class_identity())
        self.policy = policy
        self._mailer_factory = mailer_factory

    @classmethod
    def class_identity(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    def handle(self, form: Union[Submission, Mapping[str, Any]]) -> Response:
        try:
            submission = form if isinstance(form, Submission) else Submission.from_form(form)
            self._relay(submission)
        except GatewayError as exc:
            logger.info("Report not sent (status=%s): %s", exc.status, exc.message)
            outcome = Outcome.failure(exc.status, exc.message)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure while relaying report: %s", exc)
            outcome = Outcome.failure(500, None)
        else:
            outcome = Outcome.ok()
        return render_outcome(outcome)

    def _relay(self, submission: Submission) -> None:
        fields = validate_submission(submission)

        if not self.policy.authorize(submission.key):
            raise UnauthorizedError()

        message = build_message(
            fields,
            destination=self.policy.destination(),
            identity=self.policy.identity(),
            version=VERSION,
        )
        deliver(
            message,
            self.policy.transport(),
            settings=self.settings,
            mailer_factory=self._mailer_factory,
        )
