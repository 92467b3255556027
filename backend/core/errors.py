"""
Login error taxonomy.

Every failure the login pipeline can produce is a subclass of
:class:`LoginError`.  Each carries the HTTP status it maps to and the
Portuguese message shown to the end user.  Messages never contain internal
identifiers; the detail needed for troubleshooting is logged server-side.
"""

from typing import Optional

from fastapi import status

PANEL_LABELS = {
    "client": "Cliente",
    "instructor": "Instrutor",
    "admin": "Gerente",
}


class LoginError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Erro interno do servidor"

    def __init__(self, message: Optional[str] = None, license: Optional[dict] = None):
        self.message = message or self.default_message
        self.license = license
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.message}
        if self.license is not None:
            payload["license"] = self.license
        return payload


# -- 401 ---------------------------------------------------------------------


class AccountNotFound(LoginError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = (
        "Usuário não cadastrado no sistema. Você precisa de uma licença válida "
        "para acessar. Entre em contato com a administração da academia."
    )


class InvalidCredential(LoginError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Senha incorreta. Verifique e tente novamente."


# -- 403 ---------------------------------------------------------------------


class LicenseExpired(LoginError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Sua licença expirou. Procure o Master para renovar."


class LicenseBlocked(LoginError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Sua licença está bloqueada. Procure o Master para reativar."


class LicenseRevoked(LoginError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Sua licença foi removida. Procure o Master para renovar/reativar."


class PanelAccessDenied(LoginError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, allowed_panel: str):
        self.allowed_panel = allowed_panel
        label = PANEL_LABELS.get(allowed_panel, allowed_panel)
        super().__init__(
            f"Acesso negado. Suas credenciais são válidas apenas para o painel de {label}. "
            "Cada credencial só pode acessar seu próprio painel."
        )


# -- 500 ---------------------------------------------------------------------


class IdentityProviderError(LoginError):
    """The backing identity provider refused to create or sign in the user."""

    default_message = "Erro ao autenticar"


class InternalError(LoginError):
    default_message = "Erro interno do servidor"
