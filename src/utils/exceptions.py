# utils/exceptions.py

"""
Taxonomia de erros do domínio.

Cada erro carrega o status HTTP com que deve ser devolvido e uma mensagem
estável; os handlers registrados em ``server.main`` fazem a tradução.
"""


class ControleCartoesError(Exception):
    status_code = 500

    def __init__(self, mensagem: str):
        super().__init__(mensagem)
        self.mensagem = mensagem


class AuthenticationError(ControleCartoesError):
    """Token ausente, malformado ou com assinatura inválida."""
    status_code = 401


class TokenInvalidoError(AuthenticationError):
    status_code = 403


class SessionError(ControleCartoesError):
    """Não existe sessão ativa e não expirada para o token."""
    status_code = 401


class ValidationError(ControleCartoesError):
    status_code = 400


class NotFoundError(ControleCartoesError):
    status_code = 404


class ConflictError(ControleCartoesError):
    status_code = 409


class SyncIntegrityError(ControleCartoesError):
    """Violação de ordem/integridade referencial durante uma sincronização."""
    status_code = 409
