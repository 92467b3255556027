"""
Device-side login client.

Wraps POST /auth/login with the device lockout: submissions are refused
locally while the device is locked, credential failures feed the lockout
counter, and a success clears it.
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx

from client.lockout import LockoutGuard, format_lockout_time
from client.messages import ErrorCategory, classify_error, counts_toward_lockout, friendly_message


@dataclass
class LoginOutcome:
    success: bool
    message: str = ""
    category: Optional[ErrorCategory] = None
    payload: dict = field(default_factory=dict)
    # Seconds the device is now locked for, when this attempt triggered a lockout
    locked_for: Optional[int] = None


class LoginClient:
    def __init__(
        self,
        base_url: str,
        guard: Optional[LockoutGuard] = None,
        device_info: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.guard = guard or LockoutGuard()
        self.device_info = device_info
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(base_url=base_url, timeout=httpx.Timeout(timeout_seconds))

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "LoginClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def login(self, username: str, password: str, panel: str = "client") -> LoginOutcome:
        remaining = self.guard.tick()
        if remaining > 0:
            return LoginOutcome(
                success=False,
                category=ErrorCategory.LOCKED,
                message=f"Conta bloqueada. Aguarde {format_lockout_time(remaining)}.",
            )

        username, password = username.strip(), password.strip()
        if not username or not password:
            return LoginOutcome(success=False, category=ErrorCategory.GENERIC,
                                message="Preencha todos os campos para continuar")

        body = {"username": username, "password": password, "panelType": panel}
        if self.device_info:
            body["deviceInfo"] = self.device_info

        try:
            response = self.client.post("/auth/login", json=body)
            payload = response.json()
        except httpx.HTTPError:
            return LoginOutcome(success=False, category=ErrorCategory.NETWORK,
                                message=friendly_message(ErrorCategory.NETWORK))
        except ValueError:
            return LoginOutcome(success=False, category=ErrorCategory.GENERIC,
                                message=friendly_message(ErrorCategory.GENERIC))

        if payload.get("success"):
            self.guard.register_success()
            return LoginOutcome(success=True, message="Login realizado", payload=payload)

        error = payload.get("error", "")
        category = classify_error(error)
        if not counts_toward_lockout(category):
            return LoginOutcome(success=False, category=category, payload=payload,
                                message=friendly_message(category, error))

        message = friendly_message(category, error, attempts_left=self.guard.attempts_left() - 1)
        locked_for = self.guard.register_failure()
        if locked_for:
            message = f"Muitas tentativas incorretas. Aguarde {format_lockout_time(locked_for)}."
        return LoginOutcome(success=False, category=category, payload=payload,
                            message=message, locked_for=locked_for)

    def validate_session(self, access_token: str, session_token: str) -> bool:
        """False once another device has logged into the same account."""
        try:
            response = self.client.post(
                "/auth/session/validate",
                json={"session_token": session_token},
                headers={"Authorization": f"Bearer {access_token}"},
            )
            if response.status_code != 200:
                return False
            return bool(response.json().get("valid"))
        except (httpx.HTTPError, ValueError):
            return False
