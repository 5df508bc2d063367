# authentication/infrastructure/auth_repository.py

from typing import Optional

from authentication.domain.entities import Usuario
from utils.database import CursorBanco


class AuthRepository:
    def __init__(self, cur: CursorBanco):
        if cur is None:
            raise ValueError("❌ Cursor do banco de dados é None.")
        self.cur = cur

    @staticmethod
    def _para_usuario(row: dict) -> Usuario:
        return Usuario(
            id=row["id"],
            email=row["email"],
            nome=row["name"],
            senha_hash=row["password_hash"],
            criado_em=row["created_at"],
            atualizado_em=row["updated_at"],
        )

    def buscar_usuario_por_email(self, email: str) -> Optional[Usuario]:
        query = """
        SELECT id, email, name, password_hash, created_at, updated_at
        FROM users
        WHERE email = %s
        LIMIT 1
        """
        row = self.cur.execute(query, (email.lower(),)).fetchone()
        return self._para_usuario(row) if row else None

    def buscar_usuario_por_id(self, usuario_id: str) -> Optional[Usuario]:
        query = """
        SELECT id, email, name, password_hash, created_at, updated_at
        FROM users
        WHERE id = %s
        """
        row = self.cur.execute(query, (usuario_id,)).fetchone()
        return self._para_usuario(row) if row else None

    def criar_usuario(self, usuario: Usuario) -> None:
        query = """
        INSERT INTO users (id, email, password_hash, name, created_at, updated_at)
        VALUES (%s, %s, %s, %s, %s, %s)
        """
        self.cur.execute(query, (
            usuario.id,
            usuario.email,
            usuario.senha_hash,
            usuario.nome,
            usuario.criado_em,
            usuario.atualizado_em,
        ))

    def atualizar_nome(self, usuario_id: str, nome: str, agora: str) -> None:
        self.cur.execute(
            "UPDATE users SET name = %s, updated_at = %s WHERE id = %s",
            (nome, agora, usuario_id),
        )

    def atualizar_senha(self, usuario_id: str, senha_hash: str, agora: str) -> None:
        self.cur.execute(
            "UPDATE users SET password_hash = %s, updated_at = %s WHERE id = %s",
            (senha_hash, agora, usuario_id),
        )

    def listar_usuarios(self) -> list[Usuario]:
        rows = self.cur.execute("""
            SELECT id, email, name, password_hash, created_at, updated_at
            FROM users
            ORDER BY created_at DESC
        """).fetchall()
        return [self._para_usuario(r) for r in rows]
