# authentication/infrastructure/token_service.py
import hashlib
import uuid
from datetime import datetime, timedelta

import jwt

from utils.config import Settings, settings
from utils.datas import agora_utc
from utils.exceptions import AuthenticationError, TokenInvalidoError


def gerar_token(usuario_id: str, email: str, config: Settings = settings, agora: datetime | None = None) -> str:
    agora = agora or agora_utc()
    payload = {
        "sub": usuario_id,
        "email": email,
        "jti": str(uuid.uuid4()),  # 🔹 dois logins no mesmo segundo geram tokens distintos
        "exp": agora + timedelta(minutes=config.TOKEN_MINUTOS),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def verificar_token(token: str, config: Settings = settings) -> dict:
    """
    Confere a assinatura mas NÃO o ``exp``: quem decide a validade é a
    sessão registrada no banco.
    """
    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET_KEY,
            algorithms=[config.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except jwt.InvalidSignatureError:
        raise TokenInvalidoError("Token inválido")
    except jwt.PyJWTError:
        raise AuthenticationError("Token malformado")

    if not payload.get("sub"):
        raise AuthenticationError("Token sem identificação de usuário")
    return payload


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
