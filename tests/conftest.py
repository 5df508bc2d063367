import os

# sem arquivos de log e sem PostgreSQL durante os testes
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("DB_ENGINE", "sqlite")
os.environ.setdefault("SQLITE_PATH", ":memory:")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from authentication.application.auth_service import AuthService
from authentication.application.session_authority import SessionAuthority
from ledger.domain.ledger_engine import LedgerEngine
from server.main import criar_app
from utils.config import Settings
from utils.database import Banco, criar_tabelas
from utils.datas import para_iso


class RelogioFixo:
    """Relógio controlável injetado nos serviços."""

    def __init__(self, inicio: datetime):
        self.agora = inicio

    def __call__(self) -> datetime:
        return self.agora

    def avancar(self, **delta) -> None:
        self.agora += timedelta(**delta)


class FabricaDados:
    """Insere linhas mínimas direto no banco para montar cenários."""

    def __init__(self, banco: Banco, relogio: RelogioFixo):
        self.banco = banco
        self.relogio = relogio

    def usuario(self, usuario_id: str, email: str | None = None, nome: str = "Usuário") -> str:
        agora = para_iso(self.relogio())
        with self.banco.transacao() as cur:
            cur.execute(
                "INSERT INTO users (id, email, password_hash, name, created_at, updated_at) VALUES (%s, %s, %s, %s, %s, %s)",
                (usuario_id, email or f"{usuario_id}@exemplo.com", "x", nome, agora, agora),
            )
        return usuario_id

    def pessoa(self, usuario_id: str, pessoa_id: str, nome: str = "Maria") -> str:
        agora = para_iso(self.relogio())
        with self.banco.transacao() as cur:
            cur.execute(
                "INSERT INTO pessoas (id, user_id, nome, created_at, updated_at) VALUES (%s, %s, %s, %s, %s)",
                (pessoa_id, usuario_id, nome, agora, agora),
            )
        return pessoa_id

    def contar(self, tabela: str, usuario_id: str) -> int:
        with self.banco.transacao(somente_leitura=True) as cur:
            row = cur.execute(f"SELECT COUNT(*) AS total FROM {tabela} WHERE user_id = %s", (usuario_id,)).fetchone()
        return row["total"]


@pytest.fixture
def relogio() -> RelogioFixo:
    return RelogioFixo(datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def config() -> Settings:
    return Settings(
        JWT_SECRET_KEY="segredo-de-teste",
        SALT_ROUNDS=4,
        LOG_DIR=None,
        DB_ENGINE="sqlite",
        SQLITE_PATH=":memory:",
    )


@pytest.fixture
def banco():
    banco = Banco.sqlite()
    criar_tabelas(banco)
    yield banco
    banco.fechar()


@pytest.fixture
def dados(banco, relogio) -> FabricaDados:
    return FabricaDados(banco, relogio)


@pytest.fixture
def engine() -> LedgerEngine:
    return LedgerEngine()


@pytest.fixture
def authority(banco, config, relogio) -> SessionAuthority:
    return SessionAuthority(banco, config, relogio)


@pytest.fixture
def auth_service(banco, authority, config) -> AuthService:
    return AuthService(banco, authority, config)


@pytest.fixture
def app(config, banco, relogio):
    return criar_app(config, banco, relogio)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def registrar(client):
    """Registra um usuário pela API e devolve (token, user_id)."""

    def _registrar(email: str = "ana@exemplo.com", senha: str = "senha123", nome: str = "Ana"):
        resposta = client.post("/auth/register", json={"email": email, "password": senha, "name": nome})
        assert resposta.status_code == 201, resposta.text
        corpo = resposta.json()
        return corpo["token"], corpo["user"]["id"]

    return _registrar
