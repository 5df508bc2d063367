# utils/config.py

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # 🔐 Tokens e sessões
    JWT_SECRET_KEY: str = "changeme"
    JWT_ALGORITHM: str = "HS256"
    TOKEN_MINUTOS: int = 30
    SESSAO_MINUTOS: int = 30
    SALT_ROUNDS: int = 12

    # 🗄️ Banco de dados
    DB_ENGINE: Literal["postgres", "sqlite"] = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_DATABASE: str = "controle_cartoes"
    DB_USER: str = "postgres"
    DB_PASS: str = ""
    SQLITE_PATH: str = "data/controle-cartoes.db"

    # 💳 Regras de negócio
    DIA_VENCIMENTO_PADRAO: int = 5

    # 🌐 Aplicação
    CORS_ORIGINS: list[str] = ["*"]
    LOG_DIR: str | None = "logs"
    AUTOSAVE_SEGUNDOS: float = 10.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
