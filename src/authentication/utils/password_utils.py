# authentication/utils/password_utils.py

import bcrypt

from utils.config import settings


def gerar_hash_senha(senha: str, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.SALT_ROUNDS)
    return bcrypt.hashpw(senha.encode("utf-8"), salt).decode("utf-8")


def verificar_senha(senha: str, senha_hash: str) -> bool:
    return bcrypt.checkpw(senha.encode("utf-8"), senha_hash.encode("utf-8"))
