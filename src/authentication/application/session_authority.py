# authentication/application/session_authority.py

"""
Autoridade de sessões.

O ``exp`` do JWT não é confiável sozinho: um token só é aceito quando existe
uma linha ativa e não expirada em ``sessions`` para o hash do token. Logout
e expiração são estados terminais; uma sessão nunca volta a ficar ativa.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional

from authentication.domain.entities import Identidade, Sessao
from authentication.infrastructure.session_repository import SessionRepository
from authentication.infrastructure.token_service import hash_token, verificar_token
from utils.config import Settings, settings
from utils.database import Banco, CursorBanco
from utils.datas import agora_utc, de_iso, para_iso
from utils.exceptions import SessionError
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("session_authority")


class SessionAuthority:
    def __init__(self, banco: Banco, config: Settings = settings, relogio: Callable[[], datetime] = agora_utc):
        self.banco = banco
        self.config = config
        self.relogio = relogio

    @contextmanager
    def _transacao(self, cur: Optional[CursorBanco]) -> Iterator[CursorBanco]:
        if cur is not None:
            yield cur
            return
        with self.banco.transacao() as novo:
            yield novo

    def emitir(
        self,
        usuario_id: str,
        token: str,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None,
        cur: Optional[CursorBanco] = None,
    ) -> str:
        agora = self.relogio()
        sessao = Sessao(
            id=str(uuid.uuid4()),
            usuario_id=usuario_id,
            token_hash=hash_token(token),
            device_info=device_info or "Dispositivo desconhecido",
            ip_address=ip_address or "IP desconhecido",
            criado_em=para_iso(agora),
            ultima_atividade=para_iso(agora),
            expira_em=para_iso(agora + timedelta(minutes=self.config.SESSAO_MINUTOS)),
            ativa=True,
        )
        with self._transacao(cur) as tx:
            SessionRepository(tx).criar(sessao)
        logger.info(f"✅ Sessão {sessao.id} emitida para usuário {usuario_id}.")
        return sessao.id

    def validar(self, token: str) -> Identidade:
        payload = verificar_token(token, self.config)
        agora = self.relogio()
        expirou = False

        with self.banco.transacao() as cur:
            repo = SessionRepository(cur)
            encontrado = repo.buscar_por_token_hash(hash_token(token))
            if encontrado is None:
                raise SessionError("Sessão inválida ou expirada")

            sessao, usuario = encontrado
            if not sessao.ativa or sessao.usuario_id != payload["sub"]:
                raise SessionError("Sessão inválida ou expirada")

            if agora >= de_iso(sessao.expira_em):
                # ⚠️ a desativação precisa ser gravada antes do erro subir
                repo.desativar(sessao.id)
                expirou = True
            else:
                sessao.ultima_atividade = para_iso(agora)
                repo.registrar_atividade(sessao.id, sessao.ultima_atividade)

        if expirou:
            logger.info(f"⚠️ Sessão {sessao.id} expirada e desativada.")
            raise SessionError("Sessão expirada")

        return Identidade(usuario=usuario, sessao=sessao)

    def revogar(self, token: str) -> bool:
        """Logout. Idempotente: revogar duas vezes não é erro."""
        with self.banco.transacao() as cur:
            alteradas = SessionRepository(cur).desativar_por_token_hash(hash_token(token))
        if alteradas:
            logger.info("✅ Sessão revogada.")
        return alteradas > 0

    def revogar_todas(self, usuario_id: str) -> int:
        with self.banco.transacao() as cur:
            alteradas = SessionRepository(cur).desativar_do_usuario(usuario_id)
        logger.info(f"✅ {alteradas} sessão(ões) revogada(s) para usuário {usuario_id}.")
        return alteradas

    def listar_sessoes(self, usuario_id: str) -> list[Sessao]:
        with self.banco.transacao(somente_leitura=True) as cur:
            return SessionRepository(cur).listar_do_usuario(usuario_id)

    def esta_valida(self, sessao: Sessao) -> bool:
        return sessao.ativa and self.relogio() < de_iso(sessao.expira_em)

    @staticmethod
    def descrever(identidade: Identidade) -> dict:
        return {
            "valid": True,
            "user": identidade.usuario.publico(),
            "session": identidade.sessao.publica(),
        }
