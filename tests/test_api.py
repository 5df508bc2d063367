"""
Testes de ponta a ponta da API HTTP (FastAPI TestClient sobre SQLite em memória).
"""

import jwt
import pytest


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sessao(registrar):
    token, _ = registrar()
    return token


@pytest.fixture
def cartao_criado(client, sessao):
    snapshot = {"pessoas": [{"id": "p1", "nome": "Maria"}]}
    assert client.post("/data/sync", json=snapshot, headers=auth(sessao)).status_code == 200

    resposta = client.post(
        "/cartoes",
        json={
            "id": "c1",
            "pessoa_id": "p1",
            "descricao": "Geladeira",
            "valor_total": 1200.0,
            "parcelas_totais": 12,
            "data_compra": "2024-01-31",
        },
        headers=auth(sessao),
    )
    assert resposta.status_code == 201, resposta.text
    return resposta.json()["cartao"]


class TestAutenticacao:
    def test_health(self, client):
        resposta = client.get("/health")
        assert resposta.status_code == 200
        assert resposta.json()["database"] == "sqlite"

    def test_registro_e_validacao(self, client, sessao):
        resposta = client.get("/auth/validate", headers=auth(sessao))

        assert resposta.status_code == 200
        corpo = resposta.json()
        assert corpo["valid"] is True
        assert corpo["user"]["email"] == "ana@exemplo.com"

    def test_sem_token(self, client):
        resposta = client.get("/auth/validate")
        assert resposta.status_code == 401
        assert resposta.headers["www-authenticate"] == "Bearer"
        assert resposta.json()["error"] == "AuthenticationError"

    def test_assinatura_invalida(self, client):
        forjado = jwt.encode({"sub": "u1", "email": "a@b.com"}, "outra-chave", algorithm="HS256")
        resposta = client.get("/auth/validate", headers=auth(forjado))
        assert resposta.status_code == 403

    def test_logout_encerra_a_sessao(self, client, sessao):
        assert client.post("/auth/logout", headers=auth(sessao)).status_code == 200

        resposta = client.get("/auth/validate", headers=auth(sessao))
        assert resposta.status_code == 401
        assert resposta.json()["error"] == "SessionError"

    def test_sessao_expira_no_servidor(self, client, sessao, relogio):
        relogio.avancar(minutes=29)
        assert client.get("/auth/validate", headers=auth(sessao)).status_code == 200

        relogio.avancar(minutes=31)
        assert client.get("/auth/validate", headers=auth(sessao)).status_code == 401

    def test_login_credenciais_invalidas(self, client, registrar):
        registrar()
        resposta = client.post("/auth/login", json={"email": "ana@exemplo.com", "password": "errada"})
        assert resposta.status_code == 401

    def test_registro_duplicado(self, client, registrar):
        registrar()
        resposta = client.post(
            "/auth/register", json={"email": "ana@exemplo.com", "password": "senha123", "name": "Ana"}
        )
        assert resposta.status_code == 409

    def test_corpo_invalido(self, client):
        resposta = client.post("/auth/login", json={"email": "ana@exemplo.com"})
        assert resposta.status_code == 400
        assert resposta.json()["errors"][0]["campo"] == "body.password"

    def test_perfil_e_troca_de_senha(self, client, sessao):
        resposta = client.put("/auth/profile", json={"name": "Ana Maria"}, headers=auth(sessao))
        assert resposta.json()["user"]["name"] == "Ana Maria"

        resposta = client.put(
            "/auth/change-password",
            json={"currentPassword": "senha123", "newPassword": "nova-senha"},
            headers=auth(sessao),
        )
        assert resposta.status_code == 200
        assert client.post("/auth/login", json={"email": "ana@exemplo.com", "password": "nova-senha"}).status_code == 200

    def test_listar_sessoes(self, client, sessao):
        client.post("/auth/login", json={"email": "ana@exemplo.com", "password": "senha123"})

        sessoes = client.get("/auth/sessions", headers=auth(sessao)).json()["sessions"]

        assert len(sessoes) == 2
        assert all(s["is_active"] for s in sessoes)


class TestCartoes:
    def test_criacao_gera_parcelas(self, cartao_criado):
        assert len(cartao_criado["parcelas"]) == 12
        # compra em 31/01 com vencimento no dia 5
        assert cartao_criado["parcelas"][0]["due_date"] == "2024-01-05"
        assert cartao_criado["parcelas"][1]["due_date"] == "2024-02-05"
        assert cartao_criado["valor_por_parcela"] == pytest.approx(100.0)

    def test_pagar_e_desfazer(self, client, sessao, cartao_criado):
        pago = client.post("/cartoes/c1/pay-installment", json={"installment_number": 1}, headers=auth(sessao))
        assert pago.status_code == 200
        cartao = pago.json()["cartao"]
        assert cartao["parcelas_pagas"] == 1
        assert cartao["valor_pago"] == pytest.approx(100.0)
        assert cartao["parcelas"][0]["paid_date"] == "2024-03-10T12:00:00+00:00"

        desfeito = client.post("/cartoes/c1/unpay-installment", json={"installment_number": 1}, headers=auth(sessao))
        cartao = desfeito.json()["cartao"]
        assert cartao["parcelas_pagas"] == 0
        assert cartao["valor_pago"] == 0
        assert cartao["parcelas"][0]["paid_date"] is None

    @pytest.mark.parametrize("numero", [0, 13])
    def test_parcela_fora_do_intervalo(self, client, sessao, cartao_criado, numero):
        resposta = client.post("/cartoes/c1/pay-installment", json={"installment_number": numero}, headers=auth(sessao))
        assert resposta.status_code == 400

    def test_pagar_parcela_ja_paga(self, client, sessao, cartao_criado):
        client.post("/cartoes/c1/pay-installment", json={"installment_number": 2}, headers=auth(sessao))
        resposta = client.post("/cartoes/c1/pay-installment", json={"installment_number": 2}, headers=auth(sessao))
        assert resposta.status_code == 400

    def test_cartao_inexistente(self, client, sessao):
        resposta = client.post("/cartoes/nao-existe/pay-installment", json={"installment_number": 1}, headers=auth(sessao))
        assert resposta.status_code == 404

    def test_cartao_de_outro_usuario(self, client, registrar, cartao_criado):
        outro, _ = registrar("bia@exemplo.com", "senha123", "Bia")
        assert client.get("/cartoes/c1", headers=auth(outro)).status_code == 404

    def test_atualizar_dia_de_vencimento(self, client, sessao, cartao_criado):
        client.post("/cartoes/c1/pay-installment", json={"installment_number": 1}, headers=auth(sessao))

        resposta = client.put("/cartoes/c1", json={"dia_vencimento": 31}, headers=auth(sessao))

        parcelas = resposta.json()["cartao"]["parcelas"]
        assert parcelas[1]["due_date"] == "2024-02-29"
        assert parcelas[0]["is_paid"] is True

    def test_resumo(self, client, sessao, cartao_criado):
        client.post("/cartoes/c1/pay-installment", json={"installment_number": 1}, headers=auth(sessao))

        resumo = client.get("/cartoes/resumo", headers=auth(sessao)).json()

        assert resumo["geral"]["totalLent"] == pytest.approx(1200.0)
        assert resumo["geral"]["totalReceived"] == pytest.approx(100.0)
        assert resumo["pessoas"][0]["name"] == "Maria"

    def test_data_de_compra_invalida(self, client, sessao, cartao_criado):
        corpo = {"pessoa_id": "p1", "descricao": "TV", "valor_total": 100.0, "parcelas_totais": 1, "data_compra": "ontem"}
        resposta = client.post("/cartoes", json=corpo, headers=auth(sessao))
        assert resposta.status_code == 400
        assert resposta.json()["errors"][0]["campo"] == "body.data_compra"

    @pytest.mark.parametrize("campo", ["descricao", "tipo_cartao"])
    def test_atualizar_com_campo_obrigatorio_nulo(self, client, sessao, cartao_criado, campo):
        resposta = client.put("/cartoes/c1", json={campo: None}, headers=auth(sessao))
        assert resposta.status_code == 400
        assert client.get("/cartoes/c1", headers=auth(sessao)).json()["cartao"]["descricao"] == "Geladeira"

    def test_remover(self, client, sessao, cartao_criado):
        assert client.delete("/cartoes/c1", headers=auth(sessao)).status_code == 200
        assert client.get("/cartoes", headers=auth(sessao)).json()["cartoes"] == []


class TestSincronizacao:
    def test_push_e_pull(self, client, sessao):
        snapshot = {
            "pessoas": [{"id": "p1", "nome": "Maria"}],
            "cartoes": [
                {
                    "id": "c1",
                    "pessoa_id": "p1",
                    "descricao": "TV",
                    "valor_total": 600.0,
                    "parcelas_totais": 6,
                    "parcelas_pagas": 2,
                    "valor_pago": 1.0,
                    "data_compra": "2024-01-10",
                }
            ],
            "gastos": [{"id": "g1", "descricao": "Mercado", "valor": 50.0, "data": "2024-03-01",
                        "categoria": "Alimentação", "metodo_pagamento": "Pix"}],
            "settings": {"tema": "escuro"},
        }

        resposta = client.post("/data/sync", json=snapshot, headers=auth(sessao))
        assert resposta.status_code == 200
        assert resposta.json()["synced"]["cartoes"]["inseridos"] == 1

        dados = client.get("/data/sync", headers=auth(sessao)).json()["data"]
        assert dados["cartoes"][0]["valor_pago"] == pytest.approx(200.0)
        assert dados["settings"] == {"tema": "escuro"}

    def test_full_replace(self, client, sessao):
        client.post("/data/sync", json={"pessoas": [{"id": "p1", "nome": "Maria"}]}, headers=auth(sessao))

        resposta = client.post(
            "/data/sync",
            params={"fullReplace": "true"},
            json={"pessoas": [{"id": "p2", "nome": "João"}]},
            headers=auth(sessao),
        )

        assert resposta.json()["synced"]["modo"] == "fullReplace"
        pessoas = client.get("/data/sync", headers=auth(sessao)).json()["data"]["pessoas"]
        assert [p["id"] for p in pessoas] == ["p2"]

    def test_pessoa_inexistente_responde_409(self, client, sessao):
        snapshot = {
            "cartoes": [
                {"id": "c1", "pessoa_id": "fantasma", "descricao": "TV", "valor_total": 600.0,
                 "parcelas_totais": 6, "data_compra": "2024-01-10"}
            ]
        }
        resposta = client.post("/data/sync", json=snapshot, headers=auth(sessao))
        assert resposta.status_code == 409
        assert resposta.json()["error"] == "SyncIntegrityError"


    def test_parcela_com_vencimento_invalido(self, client, sessao):
        snapshot = {
            "pessoas": [{"id": "p1", "nome": "Maria"}],
            "cartoes": [
                {"id": "c1", "pessoa_id": "p1", "descricao": "TV", "valor_total": 100.0, "parcelas_totais": 1,
                 "data_compra": "2024-01-10", "parcelas": [{"number": 1, "due_date": "xx", "is_paid": False}]}
            ],
        }
        resposta = client.post("/data/sync", json=snapshot, headers=auth(sessao))
        assert resposta.status_code == 400
        assert client.get("/data/sync", headers=auth(sessao)).json()["data"]["pessoas"] == []

class TestRecorrencias:
    def test_processar(self, client, sessao):
        recorrencia = {
            "id": "r1", "descricao": "Academia", "valor": 99.9, "categoria": "Saúde",
            "metodo_pagamento": "Cartão", "frequencia": "Mensal", "data_inicio": "2024-03-01",
        }
        client.post("/data/sync", json={"recorrencias": [recorrencia]}, headers=auth(sessao))

        primeiro = client.post("/recorrencias/processar", headers=auth(sessao)).json()
        segundo = client.post("/recorrencias/processar", headers=auth(sessao)).json()

        assert primeiro["gerados"] == 1
        assert primeiro["gastos"][0]["descricao"] == "[Recorrente] Academia"
        assert segundo["gerados"] == 0

    def test_frequencia_invalida(self, client, sessao):
        recorrencia = {
            "id": "r1", "descricao": "Academia", "valor": 99.9, "categoria": "Saúde",
            "metodo_pagamento": "Cartão", "frequencia": "Diária", "data_inicio": "2024-03-01",
        }
        resposta = client.post("/data/sync", json={"recorrencias": [recorrencia]}, headers=auth(sessao))
        assert resposta.status_code == 400

    @pytest.mark.parametrize("campo, valor", [("data_inicio", "amanha"), ("ultima_execucao", "2024-02-30")])
    def test_data_invalida_nao_e_gravada(self, client, sessao, campo, valor):
        recorrencia = {
            "id": "r1", "descricao": "Academia", "valor": 99.9, "categoria": "Saúde",
            "metodo_pagamento": "Cartão", "frequencia": "Mensal", "data_inicio": "2024-03-01", campo: valor,
        }
        resposta = client.post("/data/sync", json={"recorrencias": [recorrencia]}, headers=auth(sessao))
        assert resposta.status_code == 400

        processado = client.post("/recorrencias/processar", headers=auth(sessao))
        assert processado.status_code == 200
        assert processado.json()["gerados"] == 0

    def test_data_de_referencia_no_futuro(self, client, sessao):
        resposta = client.post("/recorrencias/processar", params={"hoje": "2024-03-11"}, headers=auth(sessao))
        assert resposta.status_code == 400
        assert resposta.json()["error"] == "ValidationError"
