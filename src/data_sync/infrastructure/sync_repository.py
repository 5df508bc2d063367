#data_sync/infrastructure/sync_repository.py

import json
from typing import Optional

from ledger.infrastructure.ledger_repository import COLUNAS_CARTAO
from utils.database import CursorBanco

COLUNAS = {
    "pessoas": ["id", "user_id", "nome", "telefone", "observacoes", "created_at", "updated_at"],
    "cartoes": COLUNAS_CARTAO,
    "gastos": [
        "id", "user_id", "descricao", "valor", "data", "categoria", "metodo_pagamento",
        "observacoes", "recorrente_id", "created_at", "updated_at",
    ],
    "recorrencias": [
        "id", "user_id", "descricao", "valor", "categoria", "metodo_pagamento", "frequencia",
        "data_inicio", "ultima_execucao", "ativo", "observacoes", "created_at", "updated_at",
    ],
}

ORDENACAO = {
    "pessoas": "nome, id",
    "cartoes": "data_compra, id",
    "gastos": "data DESC, id",
    "recorrencias": "created_at, id",
}

# filhos antes dos pais (parcelas caem junto com cartoes)
ORDEM_REMOCAO = ["gastos", "recorrencias", "cartoes", "pessoas", "user_settings"]


class SyncRepository:
    def __init__(self, cur: CursorBanco):
        self.cur = cur

    def buscar(self, tabela: str, registro_id: str) -> Optional[dict]:
        colunas = COLUNAS[tabela]
        query = f"SELECT {', '.join(colunas)} FROM {tabela} WHERE id = %s" + self.cur.para_update
        return self.cur.execute(query, (registro_id,)).fetchone()

    def inserir(self, tabela: str, linha: dict) -> None:
        colunas = COLUNAS[tabela]
        self.cur.execute(
            f"INSERT INTO {tabela} ({', '.join(colunas)}) VALUES ({', '.join(['%s'] * len(colunas))})",
            [linha.get(c) for c in colunas],
        )

    def atualizar(self, tabela: str, linha: dict) -> None:
        colunas = [c for c in COLUNAS[tabela] if c not in ("id", "user_id")]
        self.cur.execute(
            f"UPDATE {tabela} SET {', '.join(f'{c} = %s' for c in colunas)} WHERE id = %s AND user_id = %s",
            [linha.get(c) for c in colunas] + [linha["id"], linha["user_id"]],
        )

    def listar(self, tabela: str, user_id: str) -> list[dict]:
        return self.cur.execute(
            f"SELECT {', '.join(COLUNAS[tabela])} FROM {tabela} WHERE user_id = %s ORDER BY {ORDENACAO[tabela]}",
            (user_id,),
        ).fetchall()

    def apagar_do_usuario(self, user_id: str) -> dict[str, int]:
        removidos = {}
        for tabela in ORDEM_REMOCAO:
            self.cur.execute(f"DELETE FROM {tabela} WHERE user_id = %s", (user_id,))
            removidos[tabela] = self.cur.rowcount
        return removidos

    # --------
    # Settings
    # --------
    def buscar_settings(self, user_id: str, bloquear: bool = False) -> Optional[dict]:
        query = "SELECT settings FROM user_settings WHERE user_id = %s"
        if bloquear:
            query += self.cur.para_update
        row = self.cur.execute(query, (user_id,)).fetchone()
        return json.loads(row["settings"]) if row else None

    def inserir_settings(self, user_id: str, settings: dict, agora: str) -> None:
        self.cur.execute(
            "INSERT INTO user_settings (user_id, settings, created_at, updated_at) VALUES (%s, %s, %s, %s)",
            (user_id, json.dumps(settings, sort_keys=True), agora, agora),
        )

    def atualizar_settings(self, user_id: str, settings: dict, agora: str) -> None:
        self.cur.execute(
            "UPDATE user_settings SET settings = %s, updated_at = %s WHERE user_id = %s",
            (json.dumps(settings, sort_keys=True), agora, user_id),
        )
