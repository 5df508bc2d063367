# authentication/infrastructure/session_repository.py

from typing import Optional

from authentication.domain.entities import Sessao, Usuario
from utils.database import CursorBanco


class SessionRepository:
    def __init__(self, cur: CursorBanco):
        self.cur = cur

    @staticmethod
    def _para_sessao(row: dict) -> Sessao:
        return Sessao(
            id=row["id"],
            usuario_id=row["user_id"],
            token_hash=row["token_hash"],
            device_info=row["device_info"],
            ip_address=row["ip_address"],
            criado_em=row["created_at"],
            ultima_atividade=row["last_activity"],
            expira_em=row["expires_at"],
            ativa=bool(row["is_active"]),
        )

    def criar(self, sessao: Sessao) -> None:
        self.cur.execute("""
            INSERT INTO sessions (
                id, user_id, token_hash, device_info, ip_address,
                created_at, last_activity, expires_at, is_active
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """, (
            sessao.id,
            sessao.usuario_id,
            sessao.token_hash,
            sessao.device_info,
            sessao.ip_address,
            sessao.criado_em,
            sessao.ultima_atividade,
            sessao.expira_em,
            sessao.ativa,
        ))

    def buscar_por_token_hash(self, token_hash: str) -> Optional[tuple[Sessao, Usuario]]:
        row = self.cur.execute("""
            SELECT s.id, s.user_id, s.token_hash, s.device_info, s.ip_address,
                   s.created_at, s.last_activity, s.expires_at, s.is_active,
                   u.email AS u_email, u.name AS u_name, u.password_hash AS u_password_hash,
                   u.created_at AS u_created_at, u.updated_at AS u_updated_at
            FROM sessions s
            JOIN users u ON u.id = s.user_id
            WHERE s.token_hash = %s
        """, (token_hash,)).fetchone()
        if not row:
            return None

        usuario = Usuario(
            id=row["user_id"],
            email=row["u_email"],
            nome=row["u_name"],
            senha_hash=row["u_password_hash"],
            criado_em=row["u_created_at"],
            atualizado_em=row["u_updated_at"],
        )
        return self._para_sessao(row), usuario

    def registrar_atividade(self, sessao_id: str, agora: str) -> None:
        self.cur.execute(
            "UPDATE sessions SET last_activity = %s WHERE id = %s AND is_active = %s",
            (agora, sessao_id, True),
        )

    def desativar(self, sessao_id: str) -> None:
        self.cur.execute("UPDATE sessions SET is_active = %s WHERE id = %s", (False, sessao_id))

    def desativar_por_token_hash(self, token_hash: str) -> int:
        self.cur.execute(
            "UPDATE sessions SET is_active = %s WHERE token_hash = %s AND is_active = %s",
            (False, token_hash, True),
        )
        return self.cur.rowcount

    def desativar_do_usuario(self, usuario_id: str) -> int:
        self.cur.execute(
            "UPDATE sessions SET is_active = %s WHERE user_id = %s AND is_active = %s",
            (False, usuario_id, True),
        )
        return self.cur.rowcount

    def listar_do_usuario(self, usuario_id: str) -> list[Sessao]:
        rows = self.cur.execute("""
            SELECT id, user_id, token_hash, device_info, ip_address,
                   created_at, last_activity, expires_at, is_active
            FROM sessions
            WHERE user_id = %s
            ORDER BY last_activity DESC
        """, (usuario_id,)).fetchall()
        return [self._para_sessao(r) for r in rows]
