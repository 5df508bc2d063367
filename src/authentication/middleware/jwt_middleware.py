# authentication/middleware/jwt_middleware.py

from fastapi import Depends

from authentication.application.session_authority import SessionAuthority
from authentication.domain.entities import Identidade
from authentication.utils.dependencies import get_session_authority, obter_token


def get_current_user(
    token: str = Depends(obter_token),
    authority: SessionAuthority = Depends(get_session_authority),
) -> Identidade:
    # Assinatura do token + sessão viva no banco; o exp do token é ignorado
    return authority.validar(token)


def get_current_user_id(identidade: Identidade = Depends(get_current_user)) -> str:
    return identidade.usuario_id
