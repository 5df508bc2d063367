#data_sync/application/sync_engine.py

"""
Motor de sincronização entre o armazenamento offline do cliente e o servidor.

Um push inteiro (merge ou fullReplace) roda em UMA transação: qualquer erro
desfaz tudo, inclusive as remoções do fullReplace. A ordem de aplicação é
pessoas -> cartões (com parcelas) -> gastos/recorrências -> settings.
"""

import math
from datetime import datetime
from typing import Callable

from data_sync.domain.entities import LoteSync, ModoSync, ResultadoSync
from data_sync.infrastructure.sync_repository import COLUNAS, SyncRepository
from ledger.domain.entities import Cartao, Parcela
from ledger.domain.ledger_engine import LedgerEngine, id_parcela
from ledger.infrastructure.ledger_repository import LedgerRepository
from utils.database import ERROS_INTEGRIDADE, Banco, violacao_unicidade
from utils.datas import agora_utc, normalizar_data, para_data, para_iso
from utils.exceptions import ConflictError, SyncIntegrityError, ValidationError
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("data_sync")

INSERIDO = "inseridos"
ATUALIZADO = "atualizados"
INALTERADO = "inalterados"

CAMPOS_CONTROLE = ("created_at", "updated_at")

# colunas de data por tabela: (obrigatórias, opcionais)
CAMPOS_DATA = {
    "gastos": (("data",), ()),
    "recorrencias": (("data_inicio",), ("ultima_execucao",)),
}


def _iguais(a, b) -> bool:
    if isinstance(a, float) or isinstance(b, float):
        return a is not None and b is not None and math.isclose(float(a), float(b), rel_tol=1e-9, abs_tol=1e-9)
    if isinstance(a, bool) or isinstance(b, bool):
        return a is not None and b is not None and bool(a) == bool(b)
    return a == b


def _linhas_iguais(tabela: str, existente: dict, nova: dict) -> bool:
    return all(
        _iguais(existente.get(c), nova.get(c))
        for c in COLUNAS[tabela]
        if c not in CAMPOS_CONTROLE
    )


class SyncEngine:
    def __init__(self, banco: Banco, engine: LedgerEngine, relogio: Callable[[], datetime] = agora_utc):
        self.banco = banco
        self.engine = engine
        self.relogio = relogio

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------
    def push(self, user_id: str, lote: LoteSync, modo: ModoSync = ModoSync.MERGE) -> ResultadoSync:
        resultado = ResultadoSync(modo=modo)
        agora = para_iso(self.relogio())

        try:
            with self.banco.transacao() as cur:
                # 🔒 fullReplace exclui qualquer outra mutação do mesmo usuário
                cur.bloquear_usuario(user_id, exclusivo=modo == ModoSync.FULL_REPLACE)
                repo = SyncRepository(cur)
                ledger_repo = LedgerRepository(cur)

                if modo == ModoSync.FULL_REPLACE:
                    removidos = repo.apagar_do_usuario(user_id)
                    logger.info(f"⚠️ fullReplace para {user_id}: removidos {removidos}")

                for pessoa in lote.pessoas:
                    resultado.pessoas.registrar(self._upsert(repo, "pessoas", user_id, pessoa, agora))

                pessoas_do_lote = {p["id"] for p in lote.pessoas}
                for cartao in lote.cartoes:
                    resultado.cartoes.registrar(
                        self._upsert_cartao(repo, ledger_repo, user_id, cartao, pessoas_do_lote, agora)
                    )

                for gasto in lote.gastos:
                    resultado.gastos.registrar(self._upsert(repo, "gastos", user_id, gasto, agora))

                for recorrencia in lote.recorrencias:
                    linha = dict(recorrencia, ativo=bool(recorrencia.get("ativo", True)))
                    resultado.recorrencias.registrar(self._upsert(repo, "recorrencias", user_id, linha, agora))

                if lote.settings:
                    resultado.settings.registrar(self._upsert_settings(repo, user_id, lote.settings, agora))
        except ERROS_INTEGRIDADE as e:
            if violacao_unicidade(e):
                # outro push criou o mesmo id entre a busca e o insert
                logger.warning(f"⚠️ Sync de {user_id} desfeito por id duplicado: {e}")
                raise ConflictError(f"Registro duplicado na sincronização: {e}")
            logger.error(f"❌ Sync de {user_id} desfeito por violação de integridade: {e}")
            raise SyncIntegrityError(f"Violação de integridade na sincronização: {e}")

        logger.info(f"✅ Sync ({modo.value}) de {user_id} concluído: {resultado.to_dict()}")
        return resultado

    def _upsert(self, repo: SyncRepository, tabela: str, user_id: str, registro: dict, agora: str) -> str:
        if not registro.get("id"):
            raise ValidationError(f"Registro de {tabela} sem id")

        linha = {c: registro.get(c) for c in COLUNAS[tabela]}
        linha["user_id"] = user_id
        self._normalizar_datas(tabela, linha)

        existente = repo.buscar(tabela, linha["id"])
        if existente is None:
            linha["created_at"] = linha["created_at"] or agora
            linha["updated_at"] = linha["updated_at"] or agora
            repo.inserir(tabela, linha)
            return INSERIDO

        if existente["user_id"] != user_id:
            raise ConflictError(f"Registro {linha['id']} de {tabela} pertence a outro usuário")
        if _linhas_iguais(tabela, existente, linha):
            return INALTERADO

        linha["created_at"] = existente["created_at"]
        linha["updated_at"] = agora
        repo.atualizar(tabela, linha)
        return ATUALIZADO

    @staticmethod
    def _normalizar_datas(tabela: str, linha: dict) -> None:
        obrigatorias, opcionais = CAMPOS_DATA.get(tabela, ((), ()))
        for campo in obrigatorias + opcionais:
            valor = linha.get(campo)
            if valor is None:
                if campo in obrigatorias:
                    raise ValidationError(f"Registro {linha['id']} de {tabela} sem {campo}")
                continue
            try:
                linha[campo] = normalizar_data(valor)
            except ValueError as e:
                raise ValidationError(f"Registro {linha['id']} de {tabela}: {e}")

    def _montar_cartao(self, user_id: str, dados: dict) -> Cartao:
        try:
            cartao = Cartao(
                id=dados["id"],
                user_id=user_id,
                pessoa_id=dados["pessoa_id"],
                descricao=dados["descricao"],
                valor_total=float(dados["valor_total"]),
                parcelas_totais=int(dados["parcelas_totais"]),
                data_compra=para_data(dados["data_compra"]).isoformat(),
                parcelas_pagas=int(dados.get("parcelas_pagas") or 0),
                dia_vencimento=dados.get("dia_vencimento"),
                observacoes=dados.get("observacoes"),
                tipo_cartao=dados.get("tipo_cartao") or "credito",
                created_at=dados.get("created_at"),
                updated_at=dados.get("updated_at"),
            )
            parcelas = dados.get("parcelas")
            if parcelas:
                cartao.parcelas = self._parcelas_do_cliente(cartao, parcelas)
                cartao.parcelas_pagas = sum(1 for p in cartao.parcelas if p.is_paid)
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Cartão inválido na sincronização: {e}")

        self.engine.validar_cartao(cartao)
        # valor_pago do cliente é descartado
        self.engine.recalcular_valor_pago(cartao)
        return cartao

    def _parcelas_do_cliente(self, cartao: Cartao, parcelas: list[dict]) -> list[Parcela]:
        numeros = sorted(int(p["number"]) for p in parcelas)
        if numeros != list(range(1, cartao.parcelas_totais + 1)):
            raise ValidationError(
                f"Cartão {cartao.id}: parcelas devem ser numeradas de 1 a {cartao.parcelas_totais}"
            )
        valor = self.engine.valor_por_parcela(cartao)
        return [
            Parcela(
                id=id_parcela(cartao.id, int(p["number"])),
                cartao_id=cartao.id,
                number=int(p["number"]),
                amount=valor,
                due_date=para_data(p["due_date"]).isoformat(),
                is_paid=bool(p.get("is_paid")),
                paid_date=p.get("paid_date") if p.get("is_paid") else None,
            )
            for p in sorted(parcelas, key=lambda p: int(p["number"]))
        ]

    def _parcelas_consistentes(self, cartao: Cartao, guardadas: list[Parcela]) -> bool:
        previstas = self.engine.prever_parcelas(cartao)
        if len(guardadas) != len(previstas):
            return False
        if sum(1 for p in guardadas if p.is_paid) != cartao.parcelas_pagas:
            return False
        return all(
            g.number == p.number and g.due_date == p.due_date and _iguais(g.amount, p.amount)
            for g, p in zip(sorted(guardadas, key=lambda x: x.number), previstas)
        )

    @staticmethod
    def _parcelas_iguais(a: list[Parcela], b: list[Parcela]) -> bool:
        if len(a) != len(b):
            return False
        return all(
            x.number == y.number
            and x.due_date == y.due_date
            and bool(x.is_paid) == bool(y.is_paid)
            and x.paid_date == y.paid_date
            and _iguais(x.amount, y.amount)
            for x, y in zip(sorted(a, key=lambda p: p.number), sorted(b, key=lambda p: p.number))
        )

    def _upsert_cartao(
        self,
        repo: SyncRepository,
        ledger_repo: LedgerRepository,
        user_id: str,
        dados: dict,
        pessoas_do_lote: set,
        agora: str,
    ) -> str:
        cartao = self._montar_cartao(user_id, dados)

        if cartao.pessoa_id not in pessoas_do_lote and not ledger_repo.pessoa_existe(user_id, cartao.pessoa_id):
            raise SyncIntegrityError(f"Cartão {cartao.id} referencia pessoa inexistente {cartao.pessoa_id}")

        existente = repo.buscar("cartoes", cartao.id)
        if existente is not None and existente["user_id"] != user_id:
            raise ConflictError(f"Cartão {cartao.id} pertence a outro usuário")

        guardadas = ledger_repo.listar_parcelas(cartao.id) if existente else []
        if not cartao.parcelas:
            if guardadas and self._parcelas_consistentes(cartao, guardadas):
                cartao.parcelas = guardadas
            else:
                self.engine.gerar_parcelas(cartao)

        linha = cartao.to_dict(com_parcelas=False)
        if existente is None:
            cartao.created_at = cartao.created_at or agora
            cartao.updated_at = cartao.updated_at or agora
            ledger_repo.inserir_cartao(cartao)
            ledger_repo.inserir_parcelas(cartao.parcelas)
            return INSERIDO

        if _linhas_iguais("cartoes", existente, linha) and self._parcelas_iguais(guardadas, cartao.parcelas):
            return INALTERADO

        cartao.created_at = existente["created_at"]
        cartao.updated_at = agora
        ledger_repo.atualizar_cartao(cartao)
        if not self._parcelas_iguais(guardadas, cartao.parcelas):
            ledger_repo.remover_parcelas(cartao.id)
            ledger_repo.inserir_parcelas(cartao.parcelas)
        return ATUALIZADO

    def _upsert_settings(self, repo: SyncRepository, user_id: str, settings: dict, agora: str) -> str:
        atuais = repo.buscar_settings(user_id, bloquear=True)
        if atuais is None:
            repo.inserir_settings(user_id, settings, agora)
            return INSERIDO
        if atuais == settings:
            return INALTERADO
        repo.atualizar_settings(user_id, settings, agora)
        return ATUALIZADO

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------
    def pull(self, user_id: str) -> dict:
        with self.banco.transacao(somente_leitura=True) as cur:
            repo = SyncRepository(cur)
            cartoes = LedgerRepository(cur).listar_cartoes(user_id)
            dados = {
                "pessoas": repo.listar("pessoas", user_id),
                "cartoes": [c.to_dict() for c in sorted(cartoes, key=lambda c: (c.data_compra, c.id))],
                "gastos": repo.listar("gastos", user_id),
                "recorrencias": [
                    dict(r, ativo=bool(r["ativo"])) for r in repo.listar("recorrencias", user_id)
                ],
                "settings": repo.buscar_settings(user_id) or {},
            }
        return {"data": dados, "timestamp": para_iso(self.relogio())}
