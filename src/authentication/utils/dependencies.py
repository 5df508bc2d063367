# authentication/utils/dependencies.py

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from authentication.application.auth_service import AuthService
from authentication.application.session_authority import SessionAuthority
from utils.exceptions import AuthenticationError

# Instância global de HTTPBearer; ausência de token vira AuthenticationError (401)
bearer_scheme = HTTPBearer(auto_error=False)


def get_session_authority(request: Request) -> SessionAuthority:
    return request.app.state.session_authority


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def obter_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """Extrai o token bruto do header ``Authorization: Bearer <token>``."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Token de acesso ausente")
    return credentials.credentials
