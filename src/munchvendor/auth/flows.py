"""Login and signup flows with OTP verification.

Both flows end in the same OTP step: the server emails a 6-digit code, the
user may resend it under an exponential cooldown, and a correct code yields
the access/refresh credential pair.

Failures never raise. Each call returns a ``FormOutcome`` carrying the
inline error text a form would show.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from pydantic import ValidationError

from munchvendor.auth.forms import LoginForm, SignupForm, field_errors
from munchvendor.session.cooldown import ResendCooldown
from munchvendor.session.manager import SessionManager

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please try again."
UNEXPECTED_ERROR = "An unexpected error occurred."

_OTP_RE = re.compile(r"^\d{6}$")


class FlowStep(str, Enum):
    CREDENTIALS = "credentials"
    OTP = "otp"
    DONE = "done"


@dataclass
class FormOutcome:
    ok: bool
    step: FlowStep
    root_error: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)


def _server_message(resp: httpx.Response, default: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return default


class AuthFlows:
    """Stateful login/signup wizard bound to one ``SessionManager``."""

    def __init__(self, session: SessionManager, cooldown: ResendCooldown | None = None):
        self.session = session
        settings = session.settings
        self.cooldown = cooldown or ResendCooldown(
            initial_wait=settings.otp_initial_wait, factor=settings.otp_backoff_factor
        )
        self.step = FlowStep.CREDENTIALS
        self.identifier: str | None = None
        self.purpose: str | None = None  # "login" | "signup"

    def _begin_otp(self, identifier: str, purpose: str) -> FormOutcome:
        self.identifier = identifier
        self.purpose = purpose
        self.step = FlowStep.OTP
        self.cooldown.start()
        logger.info("OTP sent to %s", identifier)
        return FormOutcome(ok=True, step=self.step, data={"cooldown": self.cooldown.remaining})

    def _fail(self, root_error: str | None = None, **errors: str) -> FormOutcome:
        return FormOutcome(ok=False, step=self.step, root_error=root_error, field_errors=errors)

    # -- step 1 --

    async def login(self, email: str, password: str) -> FormOutcome:
        try:
            form = LoginForm(email=email, password=password)
        except ValidationError as e:
            return FormOutcome(ok=False, step=self.step, field_errors=field_errors(e))

        try:
            resp = await self.session.public_post(
                "/auth/login", {"email": form.email, "password": form.password}
            )
        except httpx.HTTPError as e:
            logger.warning("Login request failed: %s", e)
            return self._fail(NETWORK_ERROR)

        if resp.status_code == 200:
            return self._begin_otp(form.email, "login")
        if resp.status_code == 401:
            return self._fail("Invalid email or password.")
        return self._fail(_server_message(resp, UNEXPECTED_ERROR))

    async def signup(self, **values: str) -> FormOutcome:
        try:
            form = SignupForm(**values)
        except ValidationError as e:
            return FormOutcome(ok=False, step=self.step, field_errors=field_errors(e))

        try:
            resp = await self.session.public_post("/auth/signup", form.to_payload())
        except httpx.HTTPError as e:
            logger.warning("Signup request failed: %s", e)
            return self._fail(NETWORK_ERROR)

        status = resp.status_code
        if status == 201:
            return self._begin_otp(form.email, "signup")
        if status == 400:
            return self._fail(_server_message(resp, "Invalid input data."))
        if status == 401:
            return self._fail("Invalid or missing API key.")
        if status == 409:
            return self._fail(email="User already exists.")
        return self._fail(_server_message(resp, UNEXPECTED_ERROR))

    # -- step 2 --

    def _require_otp_step(self) -> str:
        if self.step is not FlowStep.OTP or not self.identifier:
            raise ValueError("No OTP verification in progress")
        return self.identifier

    async def resend_otp(self) -> FormOutcome:
        """Request a fresh code. A no-op while the cooldown is running."""
        identifier = self._require_otp_step()
        if not self.cooldown.ready:
            return FormOutcome(ok=False, step=self.step, data={"cooldown": self.cooldown.remaining})

        try:
            resp = await self.session.public_post("/auth/otp/request", {"identifier": identifier})
        except httpx.HTTPError as e:
            logger.warning("OTP resend failed: %s", e)
            return self._fail(NETWORK_ERROR)

        if not resp.is_success:
            return self._fail(_server_message(resp, "Failed to resend OTP. Please try again."))

        wait = self.cooldown.register_resend()
        logger.info("OTP resent to %s, next resend in %ss", identifier, wait)
        return FormOutcome(ok=True, step=self.step, data={"cooldown": wait})

    async def verify_otp(self, code: str) -> FormOutcome:
        identifier = self._require_otp_step()
        code = code.strip()
        if not _OTP_RE.match(code):
            return self._fail(otp="Enter the 6-digit code.")

        try:
            resp = await self.session.public_post(
                "/auth/otp/verify", {"identifier": identifier, "otp": code}
            )
        except httpx.HTTPError as e:
            logger.warning("OTP verification failed: %s", e)
            return self._fail(NETWORK_ERROR)

        if resp.status_code == 401:
            return self._fail("Invalid or expired OTP.")
        if resp.status_code != 200:
            return self._fail("An error occurred during verification.")

        try:
            data = resp.json()["data"]
            access_token = data["accessToken"]
            refresh_token = data["refreshToken"]
            for token in (access_token, refresh_token):
                if not isinstance(token, str) or not token:
                    raise ValueError("credential is not a non-empty string")
        except (TypeError, KeyError, ValueError) as e:
            logger.warning("OTP verification returned an unexpected body: %s", e)
            return self._fail("An error occurred during verification.")

        self.session.store_credentials(access_token, refresh_token)
        self.step = FlowStep.DONE
        logger.info("Verified %s (%s)", identifier, self.purpose)

        if self.purpose == "login":
            self.session.navigator.hard_redirect(self.session.settings.dashboard_path)
        return FormOutcome(ok=True, step=self.step)
