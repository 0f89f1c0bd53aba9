"""Phone verification sub-flow.

    idle --send ok--> codeSent --verify ok--> idle
      ^                   |
      +----- reset -------+

This class only decides *when* the SessionManager's OTP calls may fire.
Provider errors are reported by the manager; local rejections are
reported here and never reach the network.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from studio.errors import ErrorKind, Result
from studio.notifications import Notifier
from studio.session import SessionManager, current_session_manager, redact_pii
from studio.validation import OTP_CODE_LENGTH, is_complete_otp_code, is_international_phone

log = logging.getLogger("studio.otp")


class OtpStep(str, Enum):
    IDLE = "idle"
    CODE_SENT = "codeSent"


class OtpChallenge:
    """One in-flight phone verification attempt, owned by one form."""

    def __init__(
        self,
        notifier: Notifier,
        manager: Optional[SessionManager] = None,
    ) -> None:
        self._notifier = notifier
        self._manager = manager
        self.phone = ""
        self.code = ""
        self.step = OtpStep.IDLE
        self.is_sending = False
        self.is_verifying = False

    @property
    def manager(self) -> SessionManager:
        return self._manager or current_session_manager()

    @property
    def can_send(self) -> bool:
        return not self.is_sending and is_international_phone(self.phone)

    @property
    def can_verify(self) -> bool:
        return (
            self.step is OtpStep.CODE_SENT
            and not self.is_verifying
            and is_complete_otp_code(self.code)
        )

    def set_phone(self, phone: str) -> None:
        self.phone = phone.strip()

    def set_code(self, code: str) -> None:
        self.code = code.strip()

    def reset(self) -> None:
        """Abandon the attempt."""
        self.code = ""
        self.step = OtpStep.IDLE
        self.is_sending = False
        self.is_verifying = False

    def _reject(self, kind: ErrorKind, title: str, message: str) -> Result:
        self._notifier.failure(title, message)
        return Result.failure(kind, message, title=title)

    async def send(self) -> Result:
        if self.is_sending:
            return Result.failure(ErrorKind.BUSY, "A code is already being sent.")
        if not is_international_phone(self.phone):
            return self._reject(
                ErrorKind.VALIDATION,
                "Invalid Phone Number",
                "Enter your phone number in international format, starting with +.",
            )

        self.is_sending = True
        try:
            result = await self.manager.send_phone_otp(self.phone)
        finally:
            self.is_sending = False

        if result.ok:
            self.step = OtpStep.CODE_SENT
            self.code = ""
            log.info("OTP sent to %s", redact_pii(self.phone))
        return result

    async def verify(self) -> Result:
        if self.step is not OtpStep.CODE_SENT:
            return self._reject(
                ErrorKind.VALIDATION, "No Code Sent", "Request a verification code first."
            )
        if self.is_verifying:
            return Result.failure(ErrorKind.BUSY, "Verification already in progress.")
        if not is_complete_otp_code(self.code):
            return self._reject(
                ErrorKind.VALIDATION,
                "Invalid Code",
                f"Enter the {OTP_CODE_LENGTH}-digit code we sent you.",
            )

        self.is_verifying = True
        try:
            result = await self.manager.verify_phone_otp(self.phone, self.code)
        finally:
            self.is_verifying = False

        if result.ok:
            self.reset()
        return result
