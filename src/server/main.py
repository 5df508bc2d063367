# server/main.py

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from authentication.api.routes import router as auth_router
from authentication.application.auth_service import AuthService
from authentication.application.session_authority import SessionAuthority
from data_sync.api.routes import router as sync_router
from data_sync.application.sync_engine import SyncEngine
from ledger.api.routes import router as ledger_router
from ledger.application.ledger_use_case import LedgerUseCase
from ledger.domain.ledger_engine import LedgerEngine
from recurrence.api.routes import router as recurrence_router
from recurrence.application.recurrence_use_case import RecurrenceUseCase
from utils.config import Settings
from utils.database import Banco, conectar_banco, criar_tabelas
from utils.datas import agora_utc
from utils.exceptions import ControleCartoesError
from utils.logging_factory import LoggerFactory

# Carregar variáveis de ambiente do .env da raiz
load_dotenv()

logger = LoggerFactory.get_logger("server")


def _registrar_handlers(app: FastAPI) -> None:
    @app.exception_handler(ControleCartoesError)
    async def erro_dominio(request: Request, exc: ControleCartoesError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code in (401, 403) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.mensagem, "error": type(exc).__name__},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def erro_validacao(request: Request, exc: RequestValidationError):
        erros = [
            {"campo": ".".join(str(parte) for parte in e.get("loc", ())), "mensagem": e.get("msg")}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"detail": "Dados inválidos", "error": "ValidationError", "errors": erros},
        )

    @app.exception_handler(Exception)
    async def erro_inesperado(request: Request, exc: Exception):
        logger.error(f"❌ Erro inesperado em {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Erro interno do servidor"})


def criar_app(config: Optional[Settings] = None, banco: Optional[Banco] = None, relogio=agora_utc) -> FastAPI:
    config = config or Settings()
    banco = banco or conectar_banco(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        criar_tabelas(banco)
        logger.info("✅ Controle de Cartões API pronta.")
        yield
        banco.fechar()

    app = FastAPI(
        title="Controle de Cartões API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={"persistAuthorization": True},
        lifespan=lifespan,
    )

    # 🔹 serviços por aplicação, acessados pelas dependências via request.app.state
    engine = LedgerEngine(config.DIA_VENCIMENTO_PADRAO)
    authority = SessionAuthority(banco, config, relogio)
    app.state.settings = config
    app.state.banco = banco
    app.state.session_authority = authority
    app.state.auth_service = AuthService(banco, authority, config)
    app.state.ledger = LedgerUseCase(banco, engine, relogio)
    app.state.sync_engine = SyncEngine(banco, engine, relogio)
    app.state.recurrence = RecurrenceUseCase(banco, relogio=relogio)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _registrar_handlers(app)

    app.include_router(auth_router, prefix="/auth", tags=["Autenticação"])
    app.include_router(sync_router, prefix="/data", tags=["Sincronização"])
    app.include_router(ledger_router, tags=["Cartões"])
    app.include_router(recurrence_router, tags=["Recorrências"])

    @app.get("/health", tags=["Health"])
    def healthcheck():
        """Verifica se a API está ativa."""
        return {"status": "ok", "service": "controle-cartoes", "database": banco.dialeto}

    return app


app = criar_app()

if __name__ == "__main__":
    uvicorn.run(
        "server.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False
    )
