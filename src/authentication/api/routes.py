# authentication/api/routes.py

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from authentication.application.auth_service import AuthService
from authentication.application.session_authority import SessionAuthority
from authentication.domain.entities import Identidade
from authentication.middleware.jwt_middleware import get_current_user
from authentication.utils.dependencies import get_auth_service, get_session_authority, obter_token

router = APIRouter(tags=["Authentication"])


# --------
# Models
# --------
class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str


class UpdateProfileRequest(BaseModel):
    name: str


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    senha_atual: str = Field(alias="currentPassword")
    nova_senha: str = Field(alias="newPassword")


def _origem(request: Request) -> tuple[str, str]:
    device_info = request.headers.get("user-agent") or "Dispositivo desconhecido"
    ip_address = request.client.host if request.client else "IP desconhecido"
    return device_info, ip_address


# --------
# Endpoints
# --------
@router.post("/register", status_code=201, summary="Registrar novo usuário")
def register(body: RegisterRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    device_info, ip_address = _origem(request)
    return service.registrar(body.email, body.password, body.name, device_info, ip_address)


@router.post("/login", summary="Realizar login e obter token JWT")
def login(body: LoginRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    device_info, ip_address = _origem(request)
    return service.login(body.email, body.password, device_info, ip_address)


@router.get("/validate", summary="Validar sessão atual")
def validate(identidade: Identidade = Depends(get_current_user)):
    return SessionAuthority.descrever(identidade)


@router.post("/logout", summary="Encerrar sessão atual")
def logout(
    token: str = Depends(obter_token),
    identidade: Identidade = Depends(get_current_user),
    authority: SessionAuthority = Depends(get_session_authority),
):
    authority.revogar(token)
    return {"message": "Logout realizado com sucesso"}


@router.get("/profile", summary="Obter perfil do usuário autenticado")
def get_profile(identidade: Identidade = Depends(get_current_user), service: AuthService = Depends(get_auth_service)):
    return {"user": service.perfil(identidade.usuario_id)}


@router.put("/profile", summary="Atualizar perfil")
def update_profile(
    body: UpdateProfileRequest,
    identidade: Identidade = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    usuario = service.atualizar_perfil(identidade.usuario_id, body.name)
    return {"message": "Perfil atualizado com sucesso", "user": usuario}


@router.put("/change-password", summary="Alterar senha")
def change_password(
    body: ChangePasswordRequest,
    identidade: Identidade = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.alterar_senha(identidade.usuario_id, body.senha_atual, body.nova_senha)
    return {"message": "Senha alterada com sucesso"}


@router.get("/sessions", summary="Listar sessões do usuário")
def list_sessions(
    identidade: Identidade = Depends(get_current_user),
    authority: SessionAuthority = Depends(get_session_authority),
):
    sessoes = authority.listar_sessoes(identidade.usuario_id)
    return {
        "sessions": [
            {
                "id": s.id,
                "device_info": s.device_info,
                "ip_address": s.ip_address,
                "created_at": s.criado_em,
                "last_activity": s.ultima_atividade,
                "expires_at": s.expira_em,
                "is_active": authority.esta_valida(s),
            }
            for s in sessoes
        ]
    }
