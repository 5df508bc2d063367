#authentication/domain/entities.py

from dataclasses import dataclass
from typing import Optional


@dataclass
class Usuario:
    id: str
    email: str
    nome: str
    senha_hash: str
    criado_em: str
    atualizado_em: str

    def publico(self) -> dict:
        return {"id": self.id, "email": self.email, "name": self.nome}


@dataclass
class Sessao:
    id: str
    usuario_id: str
    token_hash: str
    device_info: Optional[str]
    ip_address: Optional[str]
    criado_em: str
    ultima_atividade: str
    expira_em: str
    ativa: bool

    def publica(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.criado_em,
            "lastActivity": self.ultima_atividade,
            "expiresAt": self.expira_em,
            "deviceInfo": self.device_info,
        }


@dataclass
class Identidade:
    """Usuário autenticado: claims do token confirmadas por uma sessão viva."""
    usuario: Usuario
    sessao: Sessao

    @property
    def usuario_id(self) -> str:
        return self.usuario.id
