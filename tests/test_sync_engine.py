"""
Testes do motor de sincronização: upsert explícito (merge), fullReplace
atômico e snapshot (pull).
"""

import pytest

from data_sync.application.sync_engine import SyncEngine
from data_sync.domain.entities import LoteSync, ModoSync
from data_sync.infrastructure.sync_repository import SyncRepository
from utils.exceptions import ConflictError, SyncIntegrityError, ValidationError


def pessoa(pessoa_id="p1", nome="Maria", **extra):
    return {"id": pessoa_id, "nome": nome, "telefone": None, "observacoes": None, **extra}


def cartao(cartao_id="c1", pessoa_id="p1", **extra):
    base = {
        "id": cartao_id,
        "pessoa_id": pessoa_id,
        "descricao": "Notebook",
        "valor_total": 1200.0,
        "parcelas_totais": 12,
        "parcelas_pagas": 0,
        "data_compra": "2024-01-15",
    }
    base.update(extra)
    return base


def gasto(gasto_id="g1", **extra):
    base = {
        "id": gasto_id,
        "descricao": "Mercado",
        "valor": 87.5,
        "data": "2024-03-01",
        "categoria": "Alimentação",
        "metodo_pagamento": "Pix",
    }
    base.update(extra)
    return base


def recorrencia(recorrencia_id="r1", **extra):
    base = {
        "id": recorrencia_id,
        "descricao": "Aluguel",
        "valor": 1500.0,
        "categoria": "Moradia",
        "metodo_pagamento": "Boleto",
        "frequencia": "Mensal",
        "data_inicio": "2024-01-01",
        "ativo": True,
    }
    base.update(extra)
    return base


@pytest.fixture
def sync(banco, engine, relogio, dados):
    dados.usuario("u1")
    dados.usuario("u2")
    return SyncEngine(banco, engine, relogio)


class TestMerge:
    def test_insere_tudo(self, sync, dados):
        lote = LoteSync(
            pessoas=[pessoa()],
            cartoes=[cartao()],
            gastos=[gasto()],
            recorrencias=[recorrencia()],
            settings={"tema": "escuro"},
        )

        resultado = sync.push("u1", lote)

        assert resultado.pessoas.inseridos == 1
        assert resultado.cartoes.inseridos == 1
        assert resultado.gastos.inseridos == 1
        assert resultado.recorrencias.inseridos == 1
        assert resultado.settings.inseridos == 1

        snapshot = sync.pull("u1")["data"]
        assert len(snapshot["cartoes"][0]["parcelas"]) == 12
        assert snapshot["settings"] == {"tema": "escuro"}
        assert snapshot["recorrencias"][0]["ativo"] is True

    def test_reenvio_identico_nao_altera_nada(self, sync, relogio):
        lote = LoteSync(pessoas=[pessoa()], cartoes=[cartao()], gastos=[gasto()], settings={"a": 1})
        sync.push("u1", lote)
        antes = sync.pull("u1")["data"]

        relogio.avancar(hours=1)
        resultado = sync.push("u1", lote)

        assert resultado.pessoas.inalterados == 1
        assert resultado.cartoes.inalterados == 1
        assert resultado.gastos.inalterados == 1
        assert resultado.settings.inalterados == 1
        assert sync.pull("u1")["data"] == antes

    def test_pull_seguido_de_push_e_idempotente(self, sync, relogio):
        sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao(parcelas_pagas=3)], recorrencias=[recorrencia()]))
        snapshot = sync.pull("u1")["data"]

        resultado = sync.push("u1", LoteSync.de_snapshot(snapshot))

        assert resultado.pessoas.inalterados == 1
        assert resultado.cartoes.inalterados == 1
        assert resultado.recorrencias.inalterados == 1

    def test_atualiza_registro_alterado(self, sync, relogio):
        sync.push("u1", LoteSync(pessoas=[pessoa()]))
        criado = sync.pull("u1")["data"]["pessoas"][0]

        relogio.avancar(hours=1)
        resultado = sync.push("u1", LoteSync(pessoas=[pessoa(nome="Maria Souza")]))

        atual = sync.pull("u1")["data"]["pessoas"][0]
        assert resultado.pessoas.atualizados == 1
        assert atual["nome"] == "Maria Souza"
        assert atual["created_at"] == criado["created_at"]
        assert atual["updated_at"] != criado["updated_at"]

    def test_valor_pago_do_cliente_e_ignorado(self, sync):
        sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao(parcelas_pagas=3, valor_pago=9999.0)]))

        salvo = sync.pull("u1")["data"]["cartoes"][0]
        assert salvo["valor_pago"] == pytest.approx(300.0)
        assert [p["is_paid"] for p in salvo["parcelas"][:4]] == [True, True, True, False]

    def test_parcelas_enviadas_definem_pagas(self, sync):
        parcelas = [
            {"number": n, "due_date": f"2024-0{n}-10", "is_paid": n in (1, 3), "paid_date": None}
            for n in range(1, 5)
        ]
        sync.push("u1", LoteSync(
            pessoas=[pessoa()],
            cartoes=[cartao(valor_total=400.0, parcelas_totais=4, parcelas_pagas=0, parcelas=parcelas)],
        ))

        salvo = sync.pull("u1")["data"]["cartoes"][0]
        assert salvo["parcelas_pagas"] == 2
        assert salvo["valor_pago"] == pytest.approx(200.0)
        assert [p["number"] for p in salvo["parcelas"] if p["is_paid"]] == [1, 3]

    def test_parcelas_inconsistentes_sao_regeradas(self, sync):
        sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao()]))

        sync.push("u1", LoteSync(cartoes=[cartao(parcelas_totais=6, parcelas_pagas=2)]))

        salvo = sync.pull("u1")["data"]["cartoes"][0]
        assert len(salvo["parcelas"]) == 6
        assert sum(p["is_paid"] for p in salvo["parcelas"]) == 2
        assert salvo["valor_pago"] == pytest.approx(400.0)

    def test_parcelas_pagas_fora_do_intervalo(self, sync, dados):
        with pytest.raises(ValidationError):
            sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao(parcelas_pagas=13)]))
        # a pessoa do mesmo lote também foi desfeita
        assert dados.contar("pessoas", "u1") == 0

    def test_pessoa_inexistente_desfaz_o_push(self, sync, dados):
        lote = LoteSync(pessoas=[pessoa("p1")], cartoes=[cartao(pessoa_id="p-fantasma")], gastos=[gasto()])
        with pytest.raises(SyncIntegrityError):
            sync.push("u1", lote)
        assert dados.contar("pessoas", "u1") == 0
        assert dados.contar("gastos", "u1") == 0

    def test_pessoa_ja_existente_no_servidor(self, sync):
        sync.push("u1", LoteSync(pessoas=[pessoa()]))
        resultado = sync.push("u1", LoteSync(cartoes=[cartao()]))
        assert resultado.cartoes.inseridos == 1

    def test_id_de_outro_usuario(self, sync):
        sync.push("u2", LoteSync(pessoas=[pessoa("p-u2")]))
        with pytest.raises(ConflictError):
            sync.push("u1", LoteSync(pessoas=[pessoa("p-u2", nome="Invasor")]))
        assert sync.pull("u2")["data"]["pessoas"][0]["nome"] == "Maria"


    @pytest.mark.parametrize(
        "registros",
        [
            {"recorrencias": [recorrencia(data_inicio="amanha")]},
            {"recorrencias": [recorrencia(ultima_execucao="2024-13-01")]},
            {"recorrencias": [recorrencia(data_inicio=None)]},
            {"gastos": [gasto(data="01/03/2024")]},
        ],
    )
    def test_data_invalida_desfaz_o_push(self, sync, dados, registros):
        with pytest.raises(ValidationError):
            sync.push("u1", LoteSync(pessoas=[pessoa()], **registros))
        assert dados.contar("pessoas", "u1") == 0
        assert dados.contar("recorrencias", "u1") == 0
        assert dados.contar("gastos", "u1") == 0

    def test_datas_com_horario_sao_guardadas_como_data(self, sync):
        sync.push("u1", LoteSync(
            gastos=[gasto(data="2024-03-01T10:30:00Z")],
            recorrencias=[recorrencia(data_inicio="2024-01-01T00:00:00+00:00")],
        ))

        snapshot = sync.pull("u1")["data"]
        assert snapshot["gastos"][0]["data"] == "2024-03-01"
        assert snapshot["recorrencias"][0]["data_inicio"] == "2024-01-01"

    def test_parcela_com_vencimento_invalido(self, sync, dados):
        parcelas = [{"number": 1, "due_date": "xx", "is_paid": False}]
        with pytest.raises(ValidationError):
            sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao(parcelas_totais=1, parcelas=parcelas)]))
        assert dados.contar("cartoes", "u1") == 0

    def test_id_criado_por_push_simultaneo(self, sync, dados, monkeypatch):
        sync.push("u1", LoteSync(pessoas=[pessoa()]))
        # o outro push inseriu a linha depois da busca deste
        monkeypatch.setattr(SyncRepository, "buscar", lambda self, tabela, registro_id: None)

        with pytest.raises(ConflictError):
            sync.push("u1", LoteSync(pessoas=[pessoa(nome="Maria Souza")], gastos=[gasto()]))
        assert dados.contar("gastos", "u1") == 0
        monkeypatch.undo()
        assert sync.pull("u1")["data"]["pessoas"][0]["nome"] == "Maria"

class TestFullReplace:
    def test_substitui_apenas_dados_do_usuario(self, sync):
        sync.push("u1", LoteSync(
            pessoas=[pessoa("p1"), pessoa("p2", "João")],
            cartoes=[cartao("c1", "p1")],
            gastos=[gasto("g1"), gasto("g2")],
            settings={"tema": "claro"},
        ))
        sync.push("u2", LoteSync(pessoas=[pessoa("q1")], cartoes=[cartao("d1", "q1")], gastos=[gasto("h1")]))
        outro_antes = sync.pull("u2")["data"]

        resultado = sync.push(
            "u1",
            LoteSync(pessoas=[pessoa("p9", "Nova")], gastos=[gasto("g9")]),
            ModoSync.FULL_REPLACE,
        )

        dados_u1 = sync.pull("u1")["data"]
        assert [p["id"] for p in dados_u1["pessoas"]] == ["p9"]
        assert [g["id"] for g in dados_u1["gastos"]] == ["g9"]
        assert dados_u1["cartoes"] == []
        assert dados_u1["settings"] == {}
        assert resultado.pessoas.inseridos == 1
        assert sync.pull("u2")["data"] == outro_antes

    def test_falha_preserva_dados_anteriores(self, sync):
        sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao()], gastos=[gasto()]))
        antes = sync.pull("u1")["data"]

        with pytest.raises(SyncIntegrityError):
            sync.push(
                "u1",
                LoteSync(pessoas=[pessoa("p2")], cartoes=[cartao("c2", pessoa_id="p1")]),
                ModoSync.FULL_REPLACE,
            )

        assert sync.pull("u1")["data"] == antes

    def test_remove_parcelas_em_cascata(self, sync, banco):
        sync.push("u1", LoteSync(pessoas=[pessoa()], cartoes=[cartao()]))
        sync.push("u1", LoteSync(), ModoSync.FULL_REPLACE)

        with banco.transacao(somente_leitura=True) as cur:
            total = cur.execute("SELECT COUNT(*) AS n FROM parcelas").fetchone()["n"]
        assert total == 0


class TestPull:
    def test_snapshot_com_timestamp(self, sync, relogio):
        resposta = sync.pull("u1")
        assert resposta["timestamp"] == "2024-03-10T12:00:00+00:00"
        assert resposta["data"] == {
            "pessoas": [],
            "cartoes": [],
            "gastos": [],
            "recorrencias": [],
            "settings": {},
        }

    def test_resultado_serializavel(self, sync):
        resultado = sync.push("u1", LoteSync(pessoas=[pessoa()]), ModoSync.MERGE).to_dict()
        assert resultado["modo"] == "merge"
        assert resultado["pessoas"] == {"inseridos": 1, "atualizados": 0, "inalterados": 0}
