#ledger/infrastructure/ledger_repository.py

from typing import Optional

from ledger.domain.entities import Cartao, Parcela
from utils.database import CursorBanco

COLUNAS_CARTAO = [
    "id", "user_id", "pessoa_id", "descricao", "valor_total", "parcelas_totais",
    "parcelas_pagas", "valor_pago", "data_compra", "dia_vencimento", "observacoes",
    "tipo_cartao", "created_at", "updated_at",
]

COLUNAS_PARCELA = ["id", "cartao_id", "number", "amount", "due_date", "is_paid", "paid_date"]


def linha_para_parcela(row: dict) -> Parcela:
    return Parcela(
        id=row["id"],
        cartao_id=row["cartao_id"],
        number=int(row["number"]),
        amount=float(row["amount"]),
        due_date=row["due_date"],
        is_paid=bool(row["is_paid"]),
        paid_date=row["paid_date"],
    )


def linha_para_cartao(row: dict) -> Cartao:
    return Cartao(
        id=row["id"],
        user_id=row["user_id"],
        pessoa_id=row["pessoa_id"],
        descricao=row["descricao"],
        valor_total=float(row["valor_total"]),
        parcelas_totais=int(row["parcelas_totais"]),
        parcelas_pagas=int(row["parcelas_pagas"]),
        valor_pago=float(row["valor_pago"]),
        data_compra=row["data_compra"],
        dia_vencimento=row["dia_vencimento"],
        observacoes=row["observacoes"],
        tipo_cartao=row["tipo_cartao"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class LedgerRepository:
    def __init__(self, cur: CursorBanco):
        self.cur = cur

    # --------
    # Cartões
    # --------
    def buscar_cartao(self, user_id: str, cartao_id: str, bloquear: bool = False) -> Optional[Cartao]:
        query = f"""
            SELECT {", ".join(COLUNAS_CARTAO)}
            FROM cartoes
            WHERE id = %s AND user_id = %s
        """
        if bloquear:
            query += self.cur.para_update
        row = self.cur.execute(query, (cartao_id, user_id)).fetchone()
        if not row:
            return None
        cartao = linha_para_cartao(row)
        cartao.parcelas = self.listar_parcelas(cartao.id)
        return cartao

    def listar_cartoes(self, user_id: str, pessoa_id: Optional[str] = None) -> list[Cartao]:
        query = f"SELECT {', '.join(COLUNAS_CARTAO)} FROM cartoes WHERE user_id = %s"
        params: list = [user_id]
        if pessoa_id:
            query += " AND pessoa_id = %s"
            params.append(pessoa_id)
        query += " ORDER BY created_at DESC, id"
        cartoes = [linha_para_cartao(r) for r in self.cur.execute(query, params).fetchall()]

        if cartoes:
            parcelas = self._parcelas_do_usuario(user_id)
            for cartao in cartoes:
                cartao.parcelas = parcelas.get(cartao.id, [])
        return cartoes

    def inserir_cartao(self, cartao: Cartao) -> None:
        dados = cartao.to_dict(com_parcelas=False)
        self.cur.execute(
            f"INSERT INTO cartoes ({', '.join(COLUNAS_CARTAO)}) VALUES ({', '.join(['%s'] * len(COLUNAS_CARTAO))})",
            [dados[c] for c in COLUNAS_CARTAO],
        )

    def atualizar_cartao(self, cartao: Cartao) -> None:
        colunas = [c for c in COLUNAS_CARTAO if c not in ("id", "user_id", "created_at")]
        dados = cartao.to_dict(com_parcelas=False)
        self.cur.execute(
            f"UPDATE cartoes SET {', '.join(f'{c} = %s' for c in colunas)} WHERE id = %s AND user_id = %s",
            [dados[c] for c in colunas] + [cartao.id, cartao.user_id],
        )

    def remover_cartao(self, user_id: str, cartao_id: str) -> int:
        self.cur.execute("DELETE FROM cartoes WHERE id = %s AND user_id = %s", (cartao_id, user_id))
        return self.cur.rowcount

    # --------
    # Parcelas
    # --------
    def listar_parcelas(self, cartao_id: str) -> list[Parcela]:
        rows = self.cur.execute(
            f"SELECT {', '.join(COLUNAS_PARCELA)} FROM parcelas WHERE cartao_id = %s ORDER BY number",
            (cartao_id,),
        ).fetchall()
        return [linha_para_parcela(r) for r in rows]

    def _parcelas_do_usuario(self, user_id: str) -> dict[str, list[Parcela]]:
        rows = self.cur.execute(f"""
            SELECT {", ".join("p." + c for c in COLUNAS_PARCELA)}
            FROM parcelas p
            JOIN cartoes c ON c.id = p.cartao_id
            WHERE c.user_id = %s
            ORDER BY p.cartao_id, p.number
        """, (user_id,)).fetchall()
        agrupadas: dict[str, list[Parcela]] = {}
        for row in rows:
            agrupadas.setdefault(row["cartao_id"], []).append(linha_para_parcela(row))
        return agrupadas

    def inserir_parcelas(self, parcelas: list[Parcela]) -> None:
        query = f"INSERT INTO parcelas ({', '.join(COLUNAS_PARCELA)}) VALUES ({', '.join(['%s'] * len(COLUNAS_PARCELA))})"
        for parcela in parcelas:
            dados = parcela.to_dict()
            self.cur.execute(query, [dados[c] for c in COLUNAS_PARCELA])

    def atualizar_parcela(self, parcela: Parcela) -> None:
        self.cur.execute(
            "UPDATE parcelas SET is_paid = %s, paid_date = %s WHERE id = %s",
            (parcela.is_paid, parcela.paid_date, parcela.id),
        )

    def remover_parcelas(self, cartao_id: str) -> None:
        self.cur.execute("DELETE FROM parcelas WHERE cartao_id = %s", (cartao_id,))

    # --------
    # Pessoas
    # --------
    def pessoa_existe(self, user_id: str, pessoa_id: str) -> bool:
        row = self.cur.execute(
            "SELECT id FROM pessoas WHERE id = %s AND user_id = %s", (pessoa_id, user_id)
        ).fetchone()
        return row is not None

    def listar_pessoas(self, user_id: str) -> list[dict]:
        return self.cur.execute(
            "SELECT id, nome FROM pessoas WHERE user_id = %s ORDER BY nome", (user_id,)
        ).fetchall()
