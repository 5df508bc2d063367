#offline_store/infrastructure/embedded_store.py

"""
Banco embarcado do cliente offline.

SQLite em memória com o mesmo schema do servidor. O conteúdo é exportado
como bytes (``serialize``) e guardado num ``BlobStore``; na abertura o
último snapshot é restaurado. Salvamento explícito e autosave periódico
compartilham um lock, então dois snapshots nunca se intercalam.
"""

import threading
from typing import Optional

from offline_store.infrastructure.blob_store import BlobStore
from utils.database import Banco, criar_tabelas
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("offline_store")

CHAVE_PADRAO = "controle-cartoes.sqlite"


class EmbeddedStore:
    def __init__(self, blob_store: BlobStore, chave: str = CHAVE_PADRAO):
        self.blob_store = blob_store
        self.chave = chave
        self.banco = Banco.sqlite(":memory:")
        self._lock_salvar = threading.Lock()
        self._parar = threading.Event()
        self._autosave: Optional[threading.Thread] = None

    def abrir(self) -> "EmbeddedStore":
        dados = self.blob_store.ler(self.chave)
        if dados:
            self.banco.restaurar(dados)
            logger.info(f"✅ Banco offline restaurado ({len(dados)} bytes).")
        else:
            logger.info("⚠️ Nenhum snapshot salvo; iniciando banco offline vazio.")
        criar_tabelas(self.banco)
        return self

    def serializar(self) -> bytes:
        return self.banco.serializar()

    def restaurar(self, dados: bytes) -> None:
        with self._lock_salvar:
            self.banco.restaurar(dados)
        criar_tabelas(self.banco)

    def salvar(self) -> int:
        with self._lock_salvar:
            dados = self.banco.serializar()
            self.blob_store.gravar(self.chave, dados)
        return len(dados)

    # --------
    # Autosave
    # --------
    def iniciar_autosave(self, intervalo_segundos: float) -> None:
        if self._autosave is not None:
            return
        self._parar.clear()
        self._autosave = threading.Thread(
            target=self._loop_autosave, args=(intervalo_segundos,), name="autosave-offline", daemon=True
        )
        self._autosave.start()
        logger.info(f"✅ Autosave iniciado a cada {intervalo_segundos}s.")

    def _loop_autosave(self, intervalo_segundos: float) -> None:
        while not self._parar.wait(intervalo_segundos):
            try:
                self.salvar()
            except Exception as e:
                # o loop continua; o próximo ciclo tenta de novo
                logger.error(f"❌ Falha no autosave: {e}", exc_info=True)

    def parar_autosave(self) -> None:
        if self._autosave is None:
            return
        self._parar.set()
        self._autosave.join()
        self._autosave = None

    def fechar(self) -> None:
        self.parar_autosave()
        self.salvar()
        self.banco.fechar()

    def __enter__(self) -> "EmbeddedStore":
        return self.abrir()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.fechar()
