# ledger/api/routes.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from authentication.middleware.jwt_middleware import get_current_user_id
from data_sync.api.schemas import DataISO
from ledger.application.ledger_use_case import LedgerUseCase

router = APIRouter(tags=["Cartões"])


def get_ledger(request: Request) -> LedgerUseCase:
    return request.app.state.ledger


class InstallmentRequest(BaseModel):
    installment_number: int = Field(..., ge=1)


class CriarCartaoRequest(BaseModel):
    id: Optional[str] = None
    pessoa_id: str
    descricao: str
    valor_total: float = Field(..., ge=0)
    parcelas_totais: int = Field(..., ge=1)
    data_compra: DataISO
    dia_vencimento: Optional[int] = Field(None, ge=1, le=31)
    observacoes: Optional[str] = None
    tipo_cartao: str = "credito"


class AtualizarCartaoRequest(BaseModel):
    descricao: Optional[str] = None
    observacoes: Optional[str] = None
    dia_vencimento: Optional[int] = Field(None, ge=1, le=31)
    tipo_cartao: Optional[str] = None


@router.get("/cartoes", summary="Listar cartões")
def listar_cartoes(
    pessoa_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerUseCase = Depends(get_ledger),
):
    return {"cartoes": [ledger.detalhar(c) for c in ledger.listar_cartoes(user_id, pessoa_id)]}


@router.post("/cartoes", status_code=201, summary="Criar cartão")
def criar_cartao(
    body: CriarCartaoRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerUseCase = Depends(get_ledger),
):
    cartao = ledger.criar_cartao(
        user_id,
        pessoa_id=body.pessoa_id,
        descricao=body.descricao,
        valor_total=body.valor_total,
        parcelas_totais=body.parcelas_totais,
        data_compra=body.data_compra,
        dia_vencimento=body.dia_vencimento,
        observacoes=body.observacoes,
        tipo_cartao=body.tipo_cartao,
        cartao_id=body.id,
    )
    return {"message": "Cartão criado com sucesso", "cartao": ledger.detalhar(cartao)}


@router.get("/cartoes/resumo", summary="Resumo financeiro dos cartões")
def resumo(user_id: str = Depends(get_current_user_id), ledger: LedgerUseCase = Depends(get_ledger)):
    return ledger.resumo(user_id)


@router.post("/cartoes/migrar-parcelas", summary="Gerar parcelas de cartões antigos")
def migrar_parcelas(user_id: str = Depends(get_current_user_id), ledger: LedgerUseCase = Depends(get_ledger)):
    criadas = ledger.migrar_parcelas(user_id)
    return {"message": "Migração concluída", "parcelas_criadas": criadas}


@router.get("/cartoes/{cartao_id}", summary="Detalhar cartão")
def obter_cartao(cartao_id: str, user_id: str = Depends(get_current_user_id), ledger: LedgerUseCase = Depends(get_ledger)):
    return {"cartao": ledger.detalhar(ledger.obter_cartao(user_id, cartao_id))}


@router.put("/cartoes/{cartao_id}", summary="Atualizar dados descritivos do cartão")
def atualizar_cartao(
    cartao_id: str,
    body: AtualizarCartaoRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerUseCase = Depends(get_ledger),
):
    cartao = ledger.atualizar_cartao(user_id, cartao_id, body.model_dump(exclude_unset=True))
    return {"message": "Cartão atualizado com sucesso", "cartao": ledger.detalhar(cartao)}


@router.delete("/cartoes/{cartao_id}", summary="Remover cartão")
def remover_cartao(cartao_id: str, user_id: str = Depends(get_current_user_id), ledger: LedgerUseCase = Depends(get_ledger)):
    ledger.remover_cartao(user_id, cartao_id)
    return {"message": "Cartão removido com sucesso"}


@router.post("/cartoes/{cartao_id}/pay-installment", summary="Pagar parcela")
def pagar_parcela(
    cartao_id: str,
    body: InstallmentRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerUseCase = Depends(get_ledger),
):
    cartao = ledger.pagar_parcela(user_id, cartao_id, body.installment_number)
    return {"message": "Parcela paga com sucesso", "cartao": ledger.detalhar(cartao)}


@router.post("/cartoes/{cartao_id}/unpay-installment", summary="Desfazer pagamento de parcela")
def desfazer_pagamento(
    cartao_id: str,
    body: InstallmentRequest,
    user_id: str = Depends(get_current_user_id),
    ledger: LedgerUseCase = Depends(get_ledger),
):
    cartao = ledger.desfazer_pagamento(user_id, cartao_id, body.installment_number)
    return {"message": "Pagamento da parcela desfeito com sucesso", "cartao": ledger.detalhar(cartao)}
