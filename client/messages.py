"""
Classification of server login errors into what the login screen shows.

Only credential errors (wrong password or license key) count toward the
device lockout; license, panel and lookup errors never do.
"""

from enum import Enum


class ErrorCategory(str, Enum):
    PASSWORD = "password"
    NOT_FOUND = "not_found"
    LICENSE_EXPIRED = "license_expired"
    LICENSE_REVOKED = "license_revoked"
    PANEL_DENIED = "panel_denied"
    BLOCKED = "blocked"
    IN_USE = "in_use"
    LOCKED = "locked"
    NETWORK = "network"
    GENERIC = "generic"


def classify_error(error: str) -> ErrorCategory:
    text = (error or "").lower()

    if any(word in text for word in ("expirou", "expirada", "expirado", "demonstração", "teste")):
        return ErrorCategory.LICENSE_EXPIRED
    if ("senha" in text and ("incorreta" in text or "inválid" in text)) or "chave de licença inválida" in text:
        return ErrorCategory.PASSWORD
    if "não encontrado" in text or "não cadastrado" in text or "usuário" in text:
        return ErrorCategory.NOT_FOUND
    if "acesso negado" in text or "painel" in text:
        return ErrorCategory.PANEL_DENIED
    if "removida" in text:
        return ErrorCategory.LICENSE_REVOKED
    if "bloquead" in text:
        return ErrorCategory.BLOCKED
    if "em uso" in text or "outro dispositivo" in text:
        return ErrorCategory.IN_USE
    return ErrorCategory.GENERIC


def counts_toward_lockout(category: ErrorCategory) -> bool:
    return category is ErrorCategory.PASSWORD


def friendly_message(category: ErrorCategory, error: str = "", attempts_left: int = 0) -> str:
    if category is ErrorCategory.LICENSE_EXPIRED:
        text = (error or "").lower()
        if "demonstração" in text:
            return "Seu período de demonstração terminou. Entre em contato para continuar usando o sistema."
        if "teste" in text:
            return "Seu período de teste terminou. Entre em contato para adquirir uma licença."
        return "Sua licença expirou. Entre em contato para renovar seu acesso."
    if category is ErrorCategory.PASSWORD:
        if attempts_left > 0:
            plural = "s" if attempts_left > 1 else ""
            return f"Senha incorreta. Você ainda tem {attempts_left} tentativa{plural}."
        return "Senha incorreta. Última tentativa!"
    return {
        ErrorCategory.NOT_FOUND: "Usuário não encontrado. Verifique se digitou corretamente.",
        ErrorCategory.PANEL_DENIED: "Você não tem permissão para acessar este painel. Tente outro painel.",
        ErrorCategory.LICENSE_REVOKED: "Sua licença foi removida. Procure o Master para reativar.",
        ErrorCategory.BLOCKED: "Sua licença está bloqueada. Procure o Master para reativar.",
        ErrorCategory.IN_USE: "Esta conta já está em uso em outro dispositivo.",
        ErrorCategory.NETWORK: "Sem conexão com o servidor. Tente novamente em instantes.",
    }.get(category, "Não foi possível entrar. Verifique seus dados e tente novamente.")
