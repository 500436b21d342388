# Tests for auth/forms.py and auth/flows.py
# Created: 2026-10-16

import httpx
import pytest
from pydantic import ValidationError

from conftest import request_json
from munchvendor.auth.flows import NETWORK_ERROR, AuthFlows, FlowStep
from munchvendor.auth.forms import LoginForm, SignupForm, field_errors, password_strength
from munchvendor.session.cooldown import CountingDown, ResendCooldown

SIGNUP = {
    "first_name": "Ada",
    "last_name": "Obi",
    "email": "ada@example.com",
    "phone": "+2348012345678",
    "password": "Str0ng!pass",
    "confirm_password": "Str0ng!pass",
}

TOKENS = {"data": {"accessToken": "acc-1", "refreshToken": "ref-1"}}


@pytest.fixture
def flows(session, clock):
    return AuthFlows(session, cooldown=ResendCooldown(60, 2, clock=clock))


async def _at_otp_step(flows, api):
    api.add("POST", "/auth/login", 200, {"message": "OTP sent"})
    outcome = await flows.login("ada@example.com", "password123")
    assert outcome.ok
    return outcome


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


class TestPasswordStrength:
    @pytest.mark.parametrize(
        "password, score, label",
        [
            ("", 0, "Too Weak"),
            ("abcdefgh", 1, "Weak"),
            ("Abcdefgh", 2, "Fair"),
            ("Abcdefg1", 3, "Good"),
            ("Abcdef1!", 4, "Strong"),
        ],
    )
    def test_scores(self, password, score, label):
        assert password_strength(password) == (score, label)


class TestForms:
    def test_login_valid(self):
        form = LoginForm(email=" ada@example.com ", password="12345678")
        assert form.email == "ada@example.com"

    def test_login_errors(self):
        with pytest.raises(ValidationError) as exc:
            LoginForm(email="nope", password="short")
        assert field_errors(exc.value) == {
            "email": "Please enter a valid email address.",
            "password": "Password must be at least 8 characters.",
        }

    def test_signup_payload(self):
        assert SignupForm(**SIGNUP).to_payload() == {
            "firstName": "Ada",
            "lastName": "Obi",
            "email": "ada@example.com",
            "phone": "+2348012345678",
            "password": "Str0ng!pass",
        }

    @pytest.mark.parametrize(
        "field, value, message",
        [
            ("first_name", " ", "First name is required."),
            ("phone", "12345", "Phone number must be at least 10 characters."),
            ("phone", "0801-234-5678", "Invalid phone number format."),
            ("password", "str0ng!pass", "Must contain at least one uppercase letter (A-Z)."),
            ("password", "Strong!pass", "Must contain at least one number (0-9)."),
            ("password", "Str0ngpass", "Must contain at least one special character (not a letter or number)."),
        ],
    )
    def test_signup_field_errors(self, field, value, message):
        values = {**SIGNUP, field: value}
        if field == "password":
            values["confirm_password"] = value
        with pytest.raises(ValidationError) as exc:
            SignupForm(**values)
        assert field_errors(exc.value)[field] == message

    def test_signup_password_mismatch(self):
        with pytest.raises(ValidationError) as exc:
            SignupForm(**{**SIGNUP, "confirm_password": "Other1!pass"})
        assert field_errors(exc.value) == {"confirm_password": "Passwords do not match."}


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    async def test_success_moves_to_otp(self, flows, api):
        api.add("POST", "/auth/login", 200, {})

        outcome = await flows.login("ada@example.com", "password123")

        assert outcome.ok
        assert outcome.step is FlowStep.OTP
        assert outcome.data == {"cooldown": 60}
        assert flows.cooldown.state == CountingDown(60)
        assert request_json(api.calls("/auth/login")[0]) == {
            "email": "ada@example.com",
            "password": "password123",
        }

    async def test_invalid_credentials(self, flows, api):
        api.add("POST", "/auth/login", 401)

        outcome = await flows.login("ada@example.com", "password123")

        assert not outcome.ok
        assert outcome.step is FlowStep.CREDENTIALS
        assert outcome.root_error == "Invalid email or password."

    async def test_server_message_used(self, flows, api):
        api.add("POST", "/auth/login", 423, {"message": "Account locked."})
        outcome = await flows.login("ada@example.com", "password123")
        assert outcome.root_error == "Account locked."

    async def test_unexpected_body_generic_error(self, flows, api):
        api.add("POST", "/auth/login", 500, "<html>oops</html>")
        outcome = await flows.login("ada@example.com", "password123")
        assert outcome.root_error == "An unexpected error occurred."

    async def test_network_error(self, flows, api):
        api.add("POST", "/auth/login", exc=httpx.ConnectError("down"))
        outcome = await flows.login("ada@example.com", "password123")
        assert outcome.root_error == NETWORK_ERROR

    async def test_validation_blocks_request(self, flows, api):
        outcome = await flows.login("not-an-email", "x")
        assert set(outcome.field_errors) == {"email", "password"}
        assert api.requests == []


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


class TestSignup:
    async def test_created_moves_to_otp(self, flows, api):
        api.add("POST", "/auth/signup", 201, {})

        outcome = await flows.signup(**SIGNUP)

        assert outcome.ok
        assert flows.step is FlowStep.OTP
        assert flows.identifier == "ada@example.com"
        assert request_json(api.calls("/auth/signup")[0])["firstName"] == "Ada"

    @pytest.mark.parametrize(
        "status, body, root_error, fields",
        [
            (400, {"message": "Phone already used."}, "Phone already used.", {}),
            (400, {}, "Invalid input data.", {}),
            (401, {}, "Invalid or missing API key.", {}),
            (409, {}, None, {"email": "User already exists."}),
            (502, None, "An unexpected error occurred.", {}),
        ],
    )
    async def test_error_statuses(self, flows, api, status, body, root_error, fields):
        api.add("POST", "/auth/signup", status, body)

        outcome = await flows.signup(**SIGNUP)

        assert not outcome.ok
        assert outcome.root_error == root_error
        assert outcome.field_errors == fields
        assert flows.step is FlowStep.CREDENTIALS

    async def test_verify_signup_does_not_navigate(self, flows, api):
        api.add("POST", "/auth/signup", 201, {})
        api.add("POST", "/auth/otp/verify", 200, TOKENS)
        await flows.signup(**SIGNUP)

        outcome = await flows.verify_otp("123456")

        assert outcome.ok
        assert outcome.step is FlowStep.DONE
        assert flows.session.get_access_token() == "acc-1"
        assert flows.session.navigator.history == []


# ---------------------------------------------------------------------------
# OTP
# ---------------------------------------------------------------------------


class TestResendOtp:
    async def test_requires_otp_step(self, flows):
        with pytest.raises(ValueError):
            await flows.resend_otp()

    async def test_noop_during_cooldown(self, flows, api):
        await _at_otp_step(flows, api)

        outcome = await flows.resend_otp()

        assert not outcome.ok
        assert outcome.root_error is None
        assert outcome.data == {"cooldown": 60}
        assert api.calls("/auth/otp/request") == []

    async def test_resend_doubles_cooldown(self, flows, api, clock):
        await _at_otp_step(flows, api)
        api.add("POST", "/auth/otp/request", 200, {})

        clock.advance(60)
        first = await flows.resend_otp()
        clock.advance(120)
        second = await flows.resend_otp()

        assert first.data == {"cooldown": 120}
        assert second.data == {"cooldown": 240}
        reqs = api.calls("/auth/otp/request")
        assert len(reqs) == 2
        assert request_json(reqs[0]) == {"identifier": "ada@example.com"}

    async def test_failed_resend_keeps_wait(self, flows, api, clock):
        await _at_otp_step(flows, api)
        api.add("POST", "/auth/otp/request", 429, {"message": "Slow down."})
        clock.advance(60)

        outcome = await flows.resend_otp()

        assert outcome.root_error == "Slow down."
        assert flows.cooldown.current_wait == 60
        assert flows.cooldown.ready

    async def test_resend_network_error(self, flows, api, clock):
        await _at_otp_step(flows, api)
        api.add("POST", "/auth/otp/request", exc=httpx.ReadTimeout("slow"))
        clock.advance(60)

        outcome = await flows.resend_otp()

        assert outcome.root_error == NETWORK_ERROR


class TestVerifyOtp:
    @pytest.mark.parametrize("code", ["12345", "1234567", "12a456", ""])
    async def test_bad_code_no_request(self, flows, api, code):
        await _at_otp_step(flows, api)
        outcome = await flows.verify_otp(code)
        assert outcome.field_errors == {"otp": "Enter the 6-digit code."}
        assert api.calls("/auth/otp/verify") == []

    async def test_invalid_code(self, flows, api):
        await _at_otp_step(flows, api)
        api.add("POST", "/auth/otp/verify", 401)

        outcome = await flows.verify_otp("000000")

        assert outcome.root_error == "Invalid or expired OTP."
        assert flows.step is FlowStep.OTP
        assert flows.session.get_access_token() is None

    async def test_other_status(self, flows, api):
        await _at_otp_step(flows, api)
        api.add("POST", "/auth/otp/verify", 500)
        outcome = await flows.verify_otp("000000")
        assert outcome.root_error == "An error occurred during verification."

    @pytest.mark.parametrize(
        "body",
        [
            {"accessToken": "flat"},
            {"data": {"accessToken": None, "refreshToken": "ref-1"}},
            {"data": {"accessToken": "", "refreshToken": "ref-1"}},
            {"data": {"accessToken": 42, "refreshToken": "ref-1"}},
            {"data": {"accessToken": "acc-1"}},
            {"data": {"accessToken": "acc-1", "refreshToken": None}},
        ],
    )
    async def test_malformed_body(self, flows, api, body):
        await _at_otp_step(flows, api)
        api.add("POST", "/auth/otp/verify", 200, body)

        outcome = await flows.verify_otp("123456")

        assert not outcome.ok
        assert outcome.root_error == "An error occurred during verification."
        assert flows.step is FlowStep.OTP
        assert flows.session.get_access_token() is None
        assert not flows.session.is_authenticated
        assert flows.session.navigator.history == []


class TestLoginScenario:
    async def test_login_resend_verify(self, flows, api, clock, settings):
        session = flows.session
        api.add("POST", "/auth/login", 200, {})
        api.add("POST", "/auth/otp/request", 200, {})
        api.add("POST", "/auth/otp/verify", 200, TOKENS)

        outcome = await flows.login("ada@example.com", "password123")
        assert outcome.step is FlowStep.OTP
        assert flows.cooldown.remaining == 60

        clock.advance(60)
        assert flows.cooldown.remaining == 0
        resent = await flows.resend_otp()
        assert resent.ok
        assert flows.cooldown.remaining == 120

        done = await flows.verify_otp("123456")

        assert done.ok
        assert request_json(api.calls("/auth/otp/verify")[0]) == {
            "identifier": "ada@example.com",
            "otp": "123456",
        }
        assert session.get_access_token() == "acc-1"
        assert session.refresh_token == "ref-1"
        assert session.is_authenticated
        assert session.navigator.location == settings.dashboard_path
