# utils/database.py

import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Callable, Iterator

import psycopg2
import psycopg2.errors
from psycopg2.extras import RealDictCursor

from utils.config import Settings, settings as settings_padrao
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("database")

ERROS_INTEGRIDADE = (sqlite3.IntegrityError, psycopg2.IntegrityError)


def violacao_unicidade(erro: Exception) -> bool:
    """True quando o erro de integridade é de chave primária ou UNIQUE duplicada."""
    if isinstance(erro, psycopg2.errors.UniqueViolation):
        return True
    return isinstance(erro, sqlite3.IntegrityError) and "UNIQUE constraint failed" in str(erro)


# DDL comum aos dois motores (PostgreSQL e SQLite)
SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        token_hash TEXT UNIQUE NOT NULL,
        device_info TEXT,
        ip_address TEXT,
        created_at TEXT NOT NULL,
        last_activity TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pessoas (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        nome TEXT NOT NULL,
        telefone TEXT,
        observacoes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cartoes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        pessoa_id TEXT NOT NULL REFERENCES pessoas (id) ON DELETE CASCADE,
        descricao TEXT NOT NULL,
        valor_total DOUBLE PRECISION NOT NULL,
        parcelas_totais INTEGER NOT NULL CHECK (parcelas_totais >= 1),
        parcelas_pagas INTEGER NOT NULL DEFAULT 0
            CHECK (parcelas_pagas >= 0 AND parcelas_pagas <= parcelas_totais),
        valor_pago DOUBLE PRECISION NOT NULL DEFAULT 0,
        data_compra TEXT NOT NULL,
        dia_vencimento INTEGER CHECK (dia_vencimento BETWEEN 1 AND 31),
        observacoes TEXT,
        tipo_cartao TEXT NOT NULL DEFAULT 'credito',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS parcelas (
        id TEXT PRIMARY KEY,
        cartao_id TEXT NOT NULL REFERENCES cartoes (id) ON DELETE CASCADE,
        number INTEGER NOT NULL,
        amount DOUBLE PRECISION NOT NULL,
        due_date TEXT NOT NULL,
        is_paid BOOLEAN NOT NULL DEFAULT FALSE,
        paid_date TEXT,
        UNIQUE (cartao_id, number)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS gastos (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        descricao TEXT NOT NULL,
        valor DOUBLE PRECISION NOT NULL,
        data TEXT NOT NULL,
        categoria TEXT NOT NULL,
        metodo_pagamento TEXT NOT NULL,
        observacoes TEXT,
        recorrente_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS recorrencias (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        descricao TEXT NOT NULL,
        valor DOUBLE PRECISION NOT NULL,
        categoria TEXT NOT NULL,
        metodo_pagamento TEXT NOT NULL,
        frequencia TEXT NOT NULL CHECK (frequencia IN ('Semanal', 'Mensal', 'Anual')),
        data_inicio TEXT NOT NULL,
        ultima_execucao TEXT,
        ativo BOOLEAN NOT NULL DEFAULT TRUE,
        observacoes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        user_id TEXT PRIMARY KEY REFERENCES users (id) ON DELETE CASCADE,
        settings TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_pessoas_user_id ON pessoas (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_cartoes_user_id ON cartoes (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_cartoes_pessoa_id ON cartoes (pessoa_id)",
    "CREATE INDEX IF NOT EXISTS idx_parcelas_cartao_id ON parcelas (cartao_id)",
    "CREATE INDEX IF NOT EXISTS idx_gastos_user_data ON gastos (user_id, data)",
    "CREATE INDEX IF NOT EXISTS idx_recorrencias_user_ativo ON recorrencias (user_id, ativo)",
]


class CursorBanco:
    """Cursor com placeholders ``%s`` e linhas como ``dict`` nos dois motores."""

    def __init__(self, cursor, dialeto: str):
        self._cursor = cursor
        self.dialeto = dialeto

    def execute(self, query: str, params=()) -> "CursorBanco":
        if self.dialeto == "sqlite":
            query = query.replace("%s", "?")
        self._cursor.execute(query, tuple(params))
        return self

    def fetchone(self) -> dict | None:
        row = self._cursor.fetchone()
        return dict(row) if row is not None else None

    def fetchall(self) -> list[dict]:
        return [dict(row) for row in self._cursor.fetchall()]

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def para_update(self) -> str:
        # SQLite não tem lock de linha: a transação já é BEGIN IMMEDIATE
        return " FOR UPDATE" if self.dialeto == "postgres" else ""

    def bloquear_usuario(self, usuario_id: str, exclusivo: bool = False) -> None:
        """
        Escopo de transação por usuário.

        ``exclusivo=True`` (fullReplace) conflita com qualquer outro lock na
        linha do usuário; mutações comuns usam ``FOR SHARE`` e só esperam pelo
        replace.
        """
        if self.dialeto != "postgres":
            return
        modo = "UPDATE" if exclusivo else "SHARE"
        self.execute(f"SELECT id FROM users WHERE id = %s FOR {modo}", (usuario_id,))


class Banco:
    def __init__(self, dialeto: str, conectar: Callable | None = None, conexao_sqlite: sqlite3.Connection | None = None):
        if dialeto not in ("postgres", "sqlite"):
            raise ValueError(f"Dialeto de banco desconhecido: {dialeto}")
        self.dialeto = dialeto
        self._conectar = conectar
        self._conexao = conexao_sqlite
        self._lock = threading.RLock()

    @classmethod
    def sqlite(cls, caminho: str = ":memory:") -> "Banco":
        conexao = sqlite3.connect(caminho, check_same_thread=False, isolation_level=None, timeout=30)
        conexao.row_factory = sqlite3.Row
        conexao.execute("PRAGMA foreign_keys = ON")
        return cls("sqlite", conexao_sqlite=conexao)

    @classmethod
    def postgres(cls, **parametros) -> "Banco":
        return cls("postgres", conectar=lambda: psycopg2.connect(**parametros))

    @contextmanager
    def transacao(self, somente_leitura: bool = False) -> Iterator[CursorBanco]:
        """Abre uma transação; commit ao sair, rollback em qualquer exceção."""
        if self.dialeto == "sqlite":
            with self._transacao_sqlite(somente_leitura) as cur:
                yield cur
            return

        conexao = self._conectar()
        try:
            if somente_leitura:
                conexao.set_session(isolation_level="REPEATABLE READ", readonly=True)
            with conexao.cursor(cursor_factory=RealDictCursor) as cursor:
                yield CursorBanco(cursor, "postgres")
            conexao.commit()
        except BaseException:
            conexao.rollback()
            raise
        finally:
            conexao.close()

    @contextmanager
    def _transacao_sqlite(self, somente_leitura: bool) -> Iterator[CursorBanco]:
        with self._lock:
            cursor = self._conexao.cursor()
            cursor.execute("BEGIN" if somente_leitura else "BEGIN IMMEDIATE")
            try:
                yield CursorBanco(cursor, "sqlite")
            except BaseException:
                if self._conexao.in_transaction:
                    self._conexao.execute("ROLLBACK")
                raise
            else:
                self._conexao.execute("COMMIT")
            finally:
                cursor.close()

    # Só o motor embarcado sabe virar bytes
    def serializar(self) -> bytes:
        self._exigir_sqlite()
        with self._lock:
            return self._conexao.serialize()

    def restaurar(self, dados: bytes) -> None:
        self._exigir_sqlite()
        with self._lock:
            self._conexao.deserialize(dados)
            self._conexao.execute("PRAGMA foreign_keys = ON")

    def fechar(self) -> None:
        if self._conexao is not None:
            with self._lock:
                self._conexao.close()

    def _exigir_sqlite(self) -> None:
        if self.dialeto != "sqlite":
            raise ValueError("Serialização disponível apenas para o banco embarcado (SQLite)")


def criar_tabelas(banco: Banco) -> None:
    with banco.transacao() as cur:
        for ddl in SCHEMA:
            cur.execute(ddl)
    logger.info(f"✅ Schema verificado ({banco.dialeto}).")


def conectar_banco(config: Settings | None = None) -> Banco:
    config = config or settings_padrao
    if config.DB_ENGINE == "sqlite":
        diretorio = os.path.dirname(config.SQLITE_PATH)
        if diretorio:
            os.makedirs(diretorio, exist_ok=True)
        banco = Banco.sqlite(config.SQLITE_PATH)
        logger.info(f"✅ Banco SQLite aberto em {config.SQLITE_PATH}.")
        return banco

    banco = Banco.postgres(
        dbname=config.DB_DATABASE,
        user=config.DB_USER,
        password=config.DB_PASS,
        host=config.DB_HOST,
        port=config.DB_PORT,
    )
    logger.info(f"✅ Banco PostgreSQL configurado ({config.DB_HOST}:{config.DB_PORT}/{config.DB_DATABASE}).")
    return banco
