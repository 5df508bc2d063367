#ledger/application/ledger_use_case.py

import uuid
from datetime import date, datetime
from typing import Callable, Optional

from ledger.domain.entities import Cartao
from ledger.domain.finance_service import FinanceService
from ledger.domain.ledger_engine import LedgerEngine
from ledger.infrastructure.ledger_repository import LedgerRepository
from utils.database import Banco
from utils.datas import agora_utc, normalizar_data, para_iso
from utils.exceptions import NotFoundError, ValidationError
from utils.logging_factory import LoggerFactory

logger = LoggerFactory.get_logger("ledger")

# campos que o usuário pode editar diretamente; pagamentos só via pay/unpay
CAMPOS_EDITAVEIS = ("descricao", "observacoes", "dia_vencimento", "tipo_cartao")


class LedgerUseCase:
    def __init__(self, banco: Banco, engine: LedgerEngine, relogio: Callable[[], datetime] = agora_utc):
        self.banco = banco
        self.engine = engine
        self.finance = FinanceService(engine)
        self.relogio = relogio

    def _carregar_para_mutacao(self, repo: LedgerRepository, user_id: str, cartao_id: str) -> Cartao:
        # 🔒 lock compartilhado no usuário (espera um fullReplace) + lock na linha do cartão
        repo.cur.bloquear_usuario(user_id)
        cartao = repo.buscar_cartao(user_id, cartao_id, bloquear=True)
        if cartao is None:
            raise NotFoundError("Cartão não encontrado")

        criadas = self.engine.gerar_parcelas(cartao)
        if criadas:
            repo.inserir_parcelas(criadas)
            logger.info(f"✅ {len(criadas)} parcelas geradas para o cartão {cartao_id}.")
        return cartao

    def pagar_parcela(self, user_id: str, cartao_id: str, numero: int) -> Cartao:
        agora = self.relogio()
        with self.banco.transacao() as cur:
            repo = LedgerRepository(cur)
            cartao = self._carregar_para_mutacao(repo, user_id, cartao_id)
            parcela = self.engine.pagar_parcela(cartao, numero, agora)
            cartao.updated_at = para_iso(agora)
            repo.atualizar_parcela(parcela)
            repo.atualizar_cartao(cartao)

        logger.info(
            f"✅ Parcela {numero} do cartão {cartao_id} paga "
            f"({cartao.parcelas_pagas}/{cartao.parcelas_totais}, pago={cartao.valor_pago:.2f})."
        )
        return cartao

    def desfazer_pagamento(self, user_id: str, cartao_id: str, numero: int) -> Cartao:
        agora = self.relogio()
        with self.banco.transacao() as cur:
            repo = LedgerRepository(cur)
            cartao = self._carregar_para_mutacao(repo, user_id, cartao_id)
            parcela = self.engine.desfazer_pagamento(cartao, numero)
            cartao.updated_at = para_iso(agora)
            repo.atualizar_parcela(parcela)
            repo.atualizar_cartao(cartao)

        logger.info(f"✅ Pagamento da parcela {numero} do cartão {cartao_id} desfeito.")
        return cartao

    def criar_cartao(
        self,
        user_id: str,
        pessoa_id: str,
        descricao: str,
        valor_total: float,
        parcelas_totais: int,
        data_compra: str,
        dia_vencimento: Optional[int] = None,
        observacoes: Optional[str] = None,
        tipo_cartao: str = "credito",
        cartao_id: Optional[str] = None,
    ) -> Cartao:
        try:
            data_compra = normalizar_data(data_compra)
        except ValueError as e:
            raise ValidationError(str(e))

        agora = para_iso(self.relogio())
        cartao = Cartao(
            id=cartao_id or str(uuid.uuid4()),
            user_id=user_id,
            pessoa_id=pessoa_id,
            descricao=descricao,
            valor_total=valor_total,
            parcelas_totais=parcelas_totais,
            data_compra=data_compra,
            dia_vencimento=dia_vencimento,
            observacoes=observacoes,
            tipo_cartao=tipo_cartao,
            created_at=agora,
            updated_at=agora,
        )
        self.engine.validar_cartao(cartao)

        with self.banco.transacao() as cur:
            repo = LedgerRepository(cur)
            cur.bloquear_usuario(user_id)
            if not repo.pessoa_existe(user_id, pessoa_id):
                raise NotFoundError("Pessoa não encontrada")
            repo.inserir_cartao(cartao)
            repo.inserir_parcelas(self.engine.gerar_parcelas(cartao))

        logger.info(f"✅ Cartão {cartao.id} criado com {parcelas_totais} parcelas.")
        return cartao

    def obter_cartao(self, user_id: str, cartao_id: str) -> Cartao:
        with self.banco.transacao(somente_leitura=True) as cur:
            cartao = LedgerRepository(cur).buscar_cartao(user_id, cartao_id)
        if cartao is None:
            raise NotFoundError("Cartão não encontrado")
        return cartao

    def listar_cartoes(self, user_id: str, pessoa_id: Optional[str] = None) -> list[Cartao]:
        with self.banco.transacao(somente_leitura=True) as cur:
            return LedgerRepository(cur).listar_cartoes(user_id, pessoa_id)

    def atualizar_cartao(self, user_id: str, cartao_id: str, campos: dict) -> Cartao:
        proibidos = set(campos) - set(CAMPOS_EDITAVEIS)
        if proibidos:
            raise ValidationError(f"Campos não editáveis: {', '.join(sorted(proibidos))}")
        nulos = [c for c in ("descricao", "tipo_cartao") if c in campos and campos[c] is None]
        if nulos:
            raise ValidationError(f"Campos obrigatórios não podem ser nulos: {', '.join(nulos)}")

        with self.banco.transacao() as cur:
            repo = LedgerRepository(cur)
            cur.bloquear_usuario(user_id)
            cartao = repo.buscar_cartao(user_id, cartao_id, bloquear=True)
            if cartao is None:
                raise NotFoundError("Cartão não encontrado")

            for campo, valor in campos.items():
                setattr(cartao, campo, valor)
            self.engine.validar_cartao(cartao)
            cartao.updated_at = para_iso(self.relogio())
            repo.atualizar_cartao(cartao)

            if "dia_vencimento" in campos and cartao.parcelas:
                # vencimentos seguem o novo dia; estado de pagamento é preservado
                previstas = {p.number: p for p in self.engine.prever_parcelas(cartao)}
                for parcela in cartao.parcelas:
                    parcela.due_date = previstas[parcela.number].due_date
                repo.remover_parcelas(cartao.id)
                repo.inserir_parcelas(cartao.parcelas)
        return cartao

    def remover_cartao(self, user_id: str, cartao_id: str) -> None:
        with self.banco.transacao() as cur:
            cur.bloquear_usuario(user_id)
            if not LedgerRepository(cur).remover_cartao(user_id, cartao_id):
                raise NotFoundError("Cartão não encontrado")
        logger.info(f"✅ Cartão {cartao_id} removido (parcelas em cascata).")

    def migrar_parcelas(self, user_id: str) -> int:
        """Gera as parcelas de todos os cartões do usuário que ainda não têm linhas."""
        total = 0
        with self.banco.transacao() as cur:
            repo = LedgerRepository(cur)
            cur.bloquear_usuario(user_id)
            for cartao in repo.listar_cartoes(user_id):
                criadas = self.engine.gerar_parcelas(cartao)
                if criadas:
                    repo.inserir_parcelas(criadas)
                    total += len(criadas)
        logger.info(f"✅ Migração de parcelas concluída para {user_id}: {total} parcelas criadas.")
        return total

    def resumo(self, user_id: str, hoje: Optional[date] = None) -> dict:
        hoje = hoje or self.relogio().date()
        with self.banco.transacao(somente_leitura=True) as cur:
            repo = LedgerRepository(cur)
            cartoes = repo.listar_cartoes(user_id)
            pessoas = repo.listar_pessoas(user_id)
        return {
            "geral": self.finance.resumo(cartoes, hoje),
            "pessoas": self.finance.resumo_por_pessoa(pessoas, cartoes, hoje),
        }

    def detalhar(self, cartao: Cartao, hoje: Optional[date] = None) -> dict:
        """Cartão serializado com os valores derivados usados pelas telas."""
        hoje = hoje or self.relogio().date()
        proxima = self.engine.proxima_parcela(cartao)
        dados = cartao.to_dict()
        dados.update({
            "valor_por_parcela": self.engine.valor_por_parcela(cartao),
            "saldo": self.finance.saldo(cartao),
            "percentual_pago": self.finance.percentual_pago(cartao),
            "proxima_parcela": proxima.to_dict() if proxima else None,
            "parcelas_atrasadas": self.engine.parcelas_atrasadas(cartao, hoje),
        })
        return dados
