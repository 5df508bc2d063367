# authentication/application/auth_service.py

import uuid
from typing import Optional

from authentication.application.session_authority import SessionAuthority
from authentication.domain.entities import Usuario
from authentication.infrastructure.auth_repository import AuthRepository
from authentication.infrastructure.token_service import gerar_token
from authentication.utils.password_utils import gerar_hash_senha, verificar_senha
from utils.config import Settings, settings
from utils.database import ERROS_INTEGRIDADE, Banco
from utils.datas import para_iso
from utils.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("auth_service")

TAMANHO_MINIMO_SENHA = 6


class AuthService:
    def __init__(self, banco: Banco, authority: SessionAuthority, config: Settings = settings):
        self.banco = banco
        self.authority = authority
        self.config = config

    def _validar_senha(self, senha: str) -> None:
        if len(senha) < TAMANHO_MINIMO_SENHA:
            raise ValidationError(f"A senha deve ter pelo menos {TAMANHO_MINIMO_SENHA} caracteres")

    def _resposta_login(self, mensagem: str, usuario: Usuario, token: str, sessao_id: str) -> dict:
        return {
            "message": mensagem,
            "token": token,
            "sessionId": sessao_id,
            "user": usuario.publico(),
        }

    def registrar(
        self,
        email: str,
        senha: str,
        nome: str,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        if not email or not senha or not nome:
            raise ValidationError("Email, senha e nome são obrigatórios")
        self._validar_senha(senha)

        agora = self.authority.relogio()
        usuario = Usuario(
            id=str(uuid.uuid4()),
            email=email.lower(),
            nome=nome,
            senha_hash=gerar_hash_senha(senha, self.config.SALT_ROUNDS),
            criado_em=para_iso(agora),
            atualizado_em=para_iso(agora),
        )

        try:
            with self.banco.transacao() as cur:
                repo = AuthRepository(cur)
                if repo.buscar_usuario_por_email(usuario.email):
                    raise ConflictError("Já existe um usuário com este email")
                repo.criar_usuario(usuario)
                token = gerar_token(usuario.id, usuario.email, self.config, agora)
                sessao_id = self.authority.emitir(usuario.id, token, device_info, ip_address, cur=cur)
        except ERROS_INTEGRIDADE:
            # cadastro concorrente com o mesmo email
            raise ConflictError("Já existe um usuário com este email")

        logger.info(f"✅ Usuário {usuario.email} registrado. ID={usuario.id}")
        return self._resposta_login("Usuário criado com sucesso", usuario, token, sessao_id)

    def login(
        self,
        email: str,
        senha: str,
        device_info: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> dict:
        if not email or not senha:
            raise ValidationError("Email e senha são obrigatórios")

        with self.banco.transacao() as cur:
            usuario = AuthRepository(cur).buscar_usuario_por_email(email)
            if not usuario or not verificar_senha(senha, usuario.senha_hash):
                logger.warning(f"⚠️ Tentativa de login inválida para {email.lower()}.")
                raise AuthenticationError("Email ou senha inválidos")

            token = gerar_token(usuario.id, usuario.email, self.config, self.authority.relogio())
            sessao_id = self.authority.emitir(usuario.id, token, device_info, ip_address, cur=cur)

        return self._resposta_login("Login realizado com sucesso", usuario, token, sessao_id)

    def perfil(self, usuario_id: str) -> dict:
        with self.banco.transacao(somente_leitura=True) as cur:
            usuario = AuthRepository(cur).buscar_usuario_por_id(usuario_id)
        if not usuario:
            raise NotFoundError("Usuário não encontrado")
        return {
            "id": usuario.id,
            "email": usuario.email,
            "name": usuario.nome,
            "created_at": usuario.criado_em,
            "updated_at": usuario.atualizado_em,
        }

    def atualizar_perfil(self, usuario_id: str, nome: str) -> dict:
        if not nome:
            raise ValidationError("Nome é obrigatório")
        with self.banco.transacao() as cur:
            AuthRepository(cur).atualizar_nome(usuario_id, nome, para_iso(self.authority.relogio()))
        return self.perfil(usuario_id)

    def alterar_senha(self, usuario_id: str, senha_atual: str, nova_senha: str) -> None:
        if not senha_atual or not nova_senha:
            raise ValidationError("Senha atual e nova senha são obrigatórias")
        self._validar_senha(nova_senha)

        with self.banco.transacao() as cur:
            repo = AuthRepository(cur)
            usuario = repo.buscar_usuario_por_id(usuario_id)
            if not usuario:
                raise NotFoundError("Usuário não encontrado")
            if not verificar_senha(senha_atual, usuario.senha_hash):
                raise AuthenticationError("Senha atual incorreta")
            repo.atualizar_senha(
                usuario_id,
                gerar_hash_senha(nova_senha, self.config.SALT_ROUNDS),
                para_iso(self.authority.relogio()),
            )
        logger.info(f"✅ Senha alterada para usuário {usuario_id}.")
