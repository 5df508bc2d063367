#offline_store/infrastructure/blob_store.py

import os
import tempfile
import threading
from typing import Optional


class BlobStore:
    """Armazenamento chave -> bytes onde o banco embarcado é persistido."""

    def ler(self, chave: str) -> Optional[bytes]:
        raise NotImplementedError

    def gravar(self, chave: str, dados: bytes) -> None:
        raise NotImplementedError

    def remover(self, chave: str) -> None:
        raise NotImplementedError


class MemoriaBlobStore(BlobStore):
    def __init__(self):
        self._dados: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def ler(self, chave: str) -> Optional[bytes]:
        with self._lock:
            return self._dados.get(chave)

    def gravar(self, chave: str, dados: bytes) -> None:
        with self._lock:
            self._dados[chave] = bytes(dados)

    def remover(self, chave: str) -> None:
        with self._lock:
            self._dados.pop(chave, None)


class ArquivoBlobStore(BlobStore):
    def __init__(self, diretorio: str):
        self.diretorio = diretorio
        os.makedirs(diretorio, exist_ok=True)

    def _caminho(self, chave: str) -> str:
        if os.path.basename(chave) != chave or chave in ("", ".", ".."):
            raise ValueError(f"Chave de blob inválida: {chave!r}")
        return os.path.join(self.diretorio, chave)

    def ler(self, chave: str) -> Optional[bytes]:
        caminho = self._caminho(chave)
        if not os.path.exists(caminho):
            return None
        with open(caminho, "rb") as f:
            return f.read()

    def gravar(self, chave: str, dados: bytes) -> None:
        # grava num temporário e troca: um snapshot nunca fica pela metade
        fd, temporario = tempfile.mkstemp(dir=self.diretorio, prefix=f".{chave}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(dados)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temporario, self._caminho(chave))
        except BaseException:
            if os.path.exists(temporario):
                os.remove(temporario)
            raise

    def remover(self, chave: str) -> None:
        caminho = self._caminho(chave)
        if os.path.exists(caminho):
            os.remove(caminho)
