"""Tests for the phone OTP challenge state machine."""

import pytest

from conftest import provider_error

from studio.errors import ErrorKind
from studio.otp import OtpChallenge, OtpStep


@pytest.fixture
def challenge(manager, notifier):
    return OtpChallenge(notifier, manager)


class TestSend:
    async def test_rejects_phone_without_plus(self, challenge, provider, notifier):
        challenge.set_phone("5551234567")
        assert not challenge.can_send

        result = await challenge.send()

        assert result.error.kind is ErrorKind.VALIDATION
        assert provider.count("sign_in_with_otp") == 0
        assert notifier.last["title"] == "Invalid Phone Number"
        assert challenge.step is OtpStep.IDLE

    async def test_rejects_empty_phone(self, challenge, provider):
        result = await challenge.send()
        assert result.error.kind is ErrorKind.VALIDATION
        assert provider.calls == [("get_session",)]

    async def test_success_moves_to_code_sent(self, challenge, provider):
        challenge.set_phone(" +15551234567 ")
        result = await challenge.send()

        assert result.ok
        assert challenge.step is OtpStep.CODE_SENT
        assert ("sign_in_with_otp", "+15551234567", "sms") in provider.calls
        assert not challenge.is_sending

    async def test_provider_failure_stays_idle(self, challenge, provider):
        provider.script("sign_in_with_otp", provider_error("SMS provider unavailable", 500))
        challenge.set_phone("+15551234567")
        result = await challenge.send()

        assert not result.ok
        assert challenge.step is OtpStep.IDLE
        assert not challenge.is_sending

    async def test_resend_clears_code(self, challenge):
        challenge.set_phone("+15551234567")
        await challenge.send()
        challenge.set_code("12")
        await challenge.send()
        assert challenge.code == ""
        assert challenge.step is OtpStep.CODE_SENT


class TestVerify:
    async def test_before_send_rejected(self, challenge, provider, notifier):
        challenge.set_code("123456")
        assert not challenge.can_verify

        result = await challenge.verify()

        assert result.error.kind is ErrorKind.VALIDATION
        assert notifier.last["title"] == "No Code Sent"
        assert provider.count("verify_otp") == 0

    @pytest.mark.parametrize("code", ["", "12345", "1234567"])
    async def test_wrong_length_rejected(self, challenge, provider, notifier, code):
        challenge.set_phone("+15551234567")
        await challenge.send()
        challenge.set_code(code)

        result = await challenge.verify()

        assert result.error.kind is ErrorKind.VALIDATION
        assert notifier.last["title"] == "Invalid Code"
        assert provider.count("verify_otp") == 0
        assert challenge.step is OtpStep.CODE_SENT

    async def test_success_returns_to_idle(self, challenge, manager, provider):
        challenge.set_phone("+15551234567")
        await challenge.send()
        challenge.set_code("123456")
        assert challenge.can_verify

        result = await challenge.verify()

        assert result.ok
        assert ("verify_otp", "+15551234567", "123456", "sms") in provider.calls
        assert challenge.step is OtpStep.IDLE
        assert challenge.code == ""
        assert manager.is_authenticated

    async def test_failure_keeps_code_sent(self, challenge, provider):
        challenge.set_phone("+15551234567")
        await challenge.send()
        provider.script("verify_otp", provider_error("Token has expired or is invalid", 403))
        challenge.set_code("000000")

        result = await challenge.verify()

        assert result.error.kind is ErrorKind.INVALID_CREDENTIALS
        assert challenge.step is OtpStep.CODE_SENT
        assert not challenge.is_verifying

    async def test_reset_abandons_attempt(self, challenge):
        challenge.set_phone("+15551234567")
        await challenge.send()
        challenge.set_code("123456")
        challenge.reset()
        assert challenge.step is OtpStep.IDLE
        assert challenge.code == ""
        assert challenge.phone == "+15551234567"
