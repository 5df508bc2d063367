#offline_store/application/offline_client.py

from datetime import date, datetime
from typing import Callable, Optional

from data_sync.application.sync_engine import SyncEngine
from data_sync.domain.entities import LoteSync, ModoSync, ResultadoSync
from ledger.application.ledger_use_case import LedgerUseCase
from ledger.domain.entities import Cartao
from ledger.domain.ledger_engine import LedgerEngine
from offline_store.infrastructure.embedded_store import EmbeddedStore
from offline_store.infrastructure.sync_client import SyncClient
from recurrence.application.recurrence_use_case import RecurrenceUseCase
from recurrence.domain.entities import Gasto
from utils.config import Settings, settings
from utils.datas import agora_utc, para_iso
from utils.exceptions import AuthenticationError, ValidationError
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("offline_client")


class ClienteOffline:
    """
    Aplicação do lado do cliente: as mesmas regras do servidor rodando sobre
    o banco embarcado, mais envio/recebimento de snapshots.
    """

    def __init__(
        self,
        store: EmbeddedStore,
        sync_client: Optional[SyncClient] = None,
        config: Settings = settings,
        relogio: Callable[[], datetime] = agora_utc,
    ):
        self.store = store
        self.sync_client = sync_client
        self.relogio = relogio
        engine = LedgerEngine(config.DIA_VENCIMENTO_PADRAO)
        self.ledger = LedgerUseCase(store.banco, engine, relogio)
        self.recurrence = RecurrenceUseCase(store.banco, relogio=relogio)
        self.sync = SyncEngine(store.banco, engine, relogio)
        self.usuario_id: Optional[str] = None

    def _exigir_usuario(self) -> str:
        if not self.usuario_id:
            raise AuthenticationError("Nenhum usuário local definido")
        return self.usuario_id

    def _exigir_servidor(self) -> SyncClient:
        if self.sync_client is None or not self.sync_client.token:
            raise AuthenticationError("Cliente não conectado ao servidor")
        return self.sync_client

    def garantir_usuario_local(self, usuario: dict) -> str:
        """Cria (se preciso) a linha do usuário no banco embarcado com o id do servidor."""
        agora = para_iso(self.relogio())
        with self.store.banco.transacao() as cur:
            existente = cur.execute("SELECT id FROM users WHERE id = %s", (usuario["id"],)).fetchone()
            if not existente:
                cur.execute(
                    """
                    INSERT INTO users (id, email, password_hash, name, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    # senha nunca é guardada no cliente
                    (usuario["id"], usuario["email"].lower(), "", usuario.get("name") or "", agora, agora),
                )
        self.usuario_id = usuario["id"]
        return self.usuario_id

    def entrar(self, email: str, senha: str) -> dict:
        if self.sync_client is None:
            raise ValidationError("Cliente sem servidor configurado")
        resposta = self.sync_client.login(email, senha)
        self.garantir_usuario_local(resposta["user"])
        return resposta

    def sair(self) -> None:
        if self.sync_client is not None:
            self.sync_client.logout()

    # --------
    # Operações locais
    # --------
    def registrar(self, lote: LoteSync) -> ResultadoSync:
        """Grava registros simples (pessoas, gastos, ...) no banco local via upsert."""
        resultado = self.sync.push(self._exigir_usuario(), lote, ModoSync.MERGE)
        self.store.salvar()
        return resultado

    def criar_cartao(self, **campos) -> Cartao:
        cartao = self.ledger.criar_cartao(self._exigir_usuario(), **campos)
        self.store.salvar()
        return cartao

    def pagar_parcela(self, cartao_id: str, numero: int) -> Cartao:
        cartao = self.ledger.pagar_parcela(self._exigir_usuario(), cartao_id, numero)
        self.store.salvar()
        return cartao

    def desfazer_pagamento(self, cartao_id: str, numero: int) -> Cartao:
        cartao = self.ledger.desfazer_pagamento(self._exigir_usuario(), cartao_id, numero)
        self.store.salvar()
        return cartao

    def atualizar(self, hoje: Optional[date] = None) -> list[Gasto]:
        """Ciclo de atualização do app: uma passada do agendador de recorrências."""
        gastos = self.recurrence.processar(self._exigir_usuario(), hoje)
        if gastos:
            self.store.salvar()
        return gastos

    def snapshot(self) -> dict:
        return self.sync.pull(self._exigir_usuario())["data"]

    # --------
    # Sincronização com o servidor
    # --------
    def enviar_para_servidor(self, full_replace: bool = False) -> dict:
        servidor = self._exigir_servidor()
        resposta = servidor.enviar(self.snapshot(), full_replace=full_replace)
        logger.info(f"✅ Dados locais enviados ({'fullReplace' if full_replace else 'merge'}).")
        return resposta

    def baixar_do_servidor(self) -> ResultadoSync:
        servidor = self._exigir_servidor()
        dados = servidor.baixar()["data"]
        resultado = self.sync.push(self._exigir_usuario(), LoteSync.de_snapshot(dados), ModoSync.FULL_REPLACE)
        self.store.salvar()
        logger.info("✅ Snapshot do servidor aplicado localmente.")
        return resultado
