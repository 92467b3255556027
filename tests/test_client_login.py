from __future__ import annotations

import json

import httpx
import pytest

from client.lockout import LockoutGuard
from client.login import LoginClient
from client.messages import ErrorCategory, classify_error, counts_toward_lockout, friendly_message
from core.errors import (
    AccountNotFound,
    InvalidCredential,
    LicenseBlocked,
    LicenseExpired,
    LicenseRevoked,
    PanelAccessDenied,
)


class FakeTime:
    def __init__(self):
        self.now = 5_000.0

    def __call__(self):
        return self.now


def _client(handler, clock=None):
    transport = httpx.MockTransport(handler)
    http = httpx.Client(transport=transport, base_url="http://gym.test")
    return LoginClient("http://gym.test", guard=LockoutGuard(clock=clock or FakeTime()), http_client=http)


def _failure(error):
    def handler(request):
        return httpx.Response(401, json={"success": False, "error": error})

    return handler


@pytest.mark.parametrize(
    "error,category",
    [
        (InvalidCredential().message, ErrorCategory.PASSWORD),
        ("Chave de licença inválida. Verifique se digitou corretamente.", ErrorCategory.PASSWORD),
        (AccountNotFound().message, ErrorCategory.NOT_FOUND),
        (LicenseExpired().message, ErrorCategory.LICENSE_EXPIRED),
        ("Período de demonstração expirado. Entre em contato.", ErrorCategory.LICENSE_EXPIRED),
        ("Período de teste expirado. Entre em contato.", ErrorCategory.LICENSE_EXPIRED),
        (LicenseRevoked().message, ErrorCategory.LICENSE_REVOKED),
        (LicenseBlocked().message, ErrorCategory.BLOCKED),
        (PanelAccessDenied("client").message, ErrorCategory.PANEL_DENIED),
        ("Esta conta já está em uso", ErrorCategory.IN_USE),
        ("Erro interno do servidor", ErrorCategory.GENERIC),
        ("Requisição de login inválida. Verifique os campos enviados.", ErrorCategory.GENERIC),
    ],
)
def test_classify_server_errors(error, category):
    assert classify_error(error) is category


def test_only_credential_errors_count_toward_lockout():
    counted = [c for c in ErrorCategory if counts_toward_lockout(c)]
    assert counted == [ErrorCategory.PASSWORD]


def test_password_message_counts_down_attempts():
    assert friendly_message(ErrorCategory.PASSWORD, attempts_left=2) == "Senha incorreta. Você ainda tem 2 tentativas."
    assert friendly_message(ErrorCategory.PASSWORD, attempts_left=1) == "Senha incorreta. Você ainda tem 1 tentativa."
    assert friendly_message(ErrorCategory.PASSWORD, attempts_left=0) == "Senha incorreta. Última tentativa!"


def test_successful_login_sends_panel_and_device():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "user": {"role": "client"}})

    with _client(handler) as client:
        client.device_info = "Pixel 8"
        outcome = client.login(" teste ", "2026", panel="client")

    assert outcome.success
    assert seen == {"username": "teste", "password": "2026", "panelType": "client", "deviceInfo": "Pixel 8"}


def test_empty_fields_never_reach_the_server():
    def handler(request):
        raise AssertionError("request should not be sent")

    outcome = _client(handler).login("  ", "2026")
    assert not outcome.success
    assert outcome.message == "Preencha todos os campos para continuar"


def test_three_wrong_passwords_lock_the_device():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, json={"success": False, "error": InvalidCredential().message})

    client = _client(handler)
    first = client.login("maria", "x")
    assert first.message == "Senha incorreta. Você ainda tem 2 tentativas."
    second = client.login("maria", "x")
    assert second.message == "Senha incorreta. Você ainda tem 1 tentativa."
    third = client.login("maria", "x")
    assert third.locked_for == 30
    assert third.message == "Muitas tentativas incorretas. Aguarde 30s."

    locked = client.login("maria", "x")
    assert locked.category is ErrorCategory.LOCKED
    assert len(calls) == 3


def test_lockout_expires_and_escalates():
    clock = FakeTime()
    client = _client(_failure(InvalidCredential().message), clock=clock)
    for _ in range(3):
        client.login("maria", "x")

    clock.now += 30
    for _ in range(2):
        assert client.login("maria", "x").locked_for is None
    assert client.login("maria", "x").locked_for == 60


def test_success_clears_the_lockout_counter():
    responses = iter([
        httpx.Response(401, json={"success": False, "error": InvalidCredential().message}),
        httpx.Response(401, json={"success": False, "error": InvalidCredential().message}),
        httpx.Response(200, json={"success": True}),
    ])
    client = _client(lambda request: next(responses))
    client.login("maria", "x")
    client.login("maria", "x")
    assert client.login("maria", "certa").success
    assert client.guard.attempts_left() == 3


@pytest.mark.parametrize(
    "error",
    [AccountNotFound().message, LicenseExpired().message, PanelAccessDenied("admin").message, LicenseBlocked().message],
)
def test_non_credential_errors_do_not_lock(error):
    client = _client(_failure(error))
    for _ in range(5):
        outcome = client.login("maria", "x")
        assert outcome.locked_for is None
    assert client.guard.attempts_left() == 3


def test_network_failure_is_reported_and_not_counted():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    outcome = client.login("maria", "x")
    assert outcome.category is ErrorCategory.NETWORK
    assert client.guard.attempts_left() == 3


def test_validate_session():
    def handler(request):
        assert request.headers["Authorization"] == "Bearer access"
        token = json.loads(request.content)["session_token"]
        return httpx.Response(200, json={"valid": token == "live"})

    client = _client(handler)
    assert client.validate_session("access", "live") is True
    assert client.validate_session("access", "stale") is False


def test_validate_session_is_false_when_the_server_is_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    assert _client(handler).validate_session("access", "live") is False


def test_validate_session_is_false_on_a_non_json_body():
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))
    assert client.validate_session("access", "live") is False


# -- against the real endpoint -------------------------------------------------


def test_wrong_pre_generated_key_counts_toward_the_lockout(api, make_pre_generated):
    make_pre_generated("FULL30-0001", "F30-AAAA-BBBB-CCCC", account_type="client")
    client = LoginClient("http://testserver", guard=LockoutGuard(clock=FakeTime()), http_client=api)

    first = client.login("FULL30-0001", "F30-AAAA-BBBB-XXXX")
    assert first.category is ErrorCategory.PASSWORD
    assert first.message == "Senha incorreta. Você ainda tem 2 tentativas."

    client.login("FULL30-0001", "F30-AAAA-BBBB-XXXX")
    third = client.login("FULL30-0001", "F30-AAAA-BBBB-XXXX")
    assert third.locked_for == 30

    locked = client.login("FULL30-0001", "F30-AAAA-BBBB-CCCC")
    assert locked.category is ErrorCategory.LOCKED


def test_unknown_username_against_the_endpoint_does_not_count(api):
    client = LoginClient("http://testserver", guard=LockoutGuard(clock=FakeTime()), http_client=api)
    for _ in range(4):
        outcome = client.login("FULL30-9999", "F30-AAAA-BBBB-XXXX")
        assert outcome.category is ErrorCategory.NOT_FOUND
    assert client.guard.attempts_left() == 3
