# =====================================
# backend/services/exceptions.py - Domain Errors
# =====================================


class BetError(Exception):
    """Base para erros de regra de negócio das apostas"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BetError):
    """Dados de criação ou voto malformados"""


class NotFound(BetError):
    """Aposta ou voto inexistente"""

    status_code = 404


class BetDeleted(NotFound):
    """Aposta excluída (soft-delete) acessada por link direto"""

    status_code = 410


class Forbidden(BetError):
    """Ação restrita ao criador da aposta"""

    status_code = 403


class BetClosed(BetError):
    """Aposta finalizada ou com prazo encerrado"""


class AlreadyFinalized(BetError):
    status_code = 409


class InvalidOption(BetError):
    pass


class LoginRequired(BetError):
    status_code = 401


class PersistenceError(BetError):
    """Backend indisponível ou escrita rejeitada"""

    status_code = 500
