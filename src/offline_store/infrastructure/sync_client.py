#offline_store/infrastructure/sync_client.py

from typing import Optional

import httpx

from utils.exceptions import (
    AuthenticationError,
    ConflictError,
    ControleCartoesError,
    NotFoundError,
    SessionError,
    SyncIntegrityError,
    TokenInvalidoError,
    ValidationError,
)
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("sync_client")

ERROS_POR_STATUS = {
    400: ValidationError,
    401: SessionError,
    403: TokenInvalidoError,
    404: NotFoundError,
    409: ConflictError,
}

ERROS_POR_NOME = {
    erro.__name__: erro
    for erro in (
        AuthenticationError, TokenInvalidoError, SessionError,
        ValidationError, NotFoundError, ConflictError, SyncIntegrityError,
    )
}


def _erro(resposta: httpx.Response) -> tuple[type[ControleCartoesError], str]:
    try:
        corpo = resposta.json()
    except ValueError:
        corpo = None
    if not isinstance(corpo, dict):
        return ERROS_POR_STATUS.get(resposta.status_code, ControleCartoesError), resposta.text
    classe = ERROS_POR_NOME.get(corpo.get("error")) or ERROS_POR_STATUS.get(resposta.status_code, ControleCartoesError)
    return classe, str(corpo.get("detail", resposta.text))


class SyncClient:
    """Cliente HTTP do servidor de sincronização."""

    def __init__(self, base_url: str = "", client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.token: Optional[str] = None

    def _requisitar(self, metodo: str, caminho: str, **kwargs) -> dict:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            resposta = self.client.request(metodo, caminho, headers=headers, **kwargs)
            resposta.raise_for_status()
        except httpx.HTTPStatusError as e:
            classe, detalhe = _erro(e.response)
            logger.warning(f"⚠️ {metodo} {caminho} respondeu {e.response.status_code}: {detalhe}")
            raise classe(detalhe)
        except httpx.RequestError as e:
            raise ControleCartoesError(f"Falha de comunicação com o servidor: {e}")
        return resposta.json()

    def login(self, email: str, senha: str) -> dict:
        resposta = self._requisitar("POST", "/auth/login", json={"email": email, "password": senha})
        self.token = resposta["token"]
        logger.info(f"✅ Login remoto como {email}.")
        return resposta

    def enviar(self, snapshot: dict, full_replace: bool = False) -> dict:
        params = {"fullReplace": "true" if full_replace else "false"}
        return self._requisitar("POST", "/data/sync", params=params, json=snapshot)

    def baixar(self) -> dict:
        return self._requisitar("GET", "/data/sync")

    def logout(self) -> None:
        if not self.token:
            return
        try:
            self._requisitar("POST", "/auth/logout")
        finally:
            self.token = None

    def fechar(self) -> None:
        self.client.close()
