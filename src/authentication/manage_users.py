# authentication/manage_users.py

import argparse
import sys

from dotenv import load_dotenv

from authentication.application.auth_service import AuthService
from authentication.application.session_authority import SessionAuthority
from authentication.infrastructure.auth_repository import AuthRepository
from ledger.application.ledger_use_case import LedgerUseCase
from ledger.domain.ledger_engine import LedgerEngine
from utils.config import Settings
from utils.database import Banco, conectar_banco, criar_tabelas
from utils.exceptions import ControleCartoesError


def criar_usuario(banco: Banco, config: Settings, nome: str, email: str, senha: str) -> str:
    service = AuthService(banco, SessionAuthority(banco, config), config)
    resposta = service.registrar(email, senha, nome, device_info="manage_users", ip_address="local")
    # a sessão criada pelo registro não é usada pelo operador
    service.authority.revogar(resposta["token"])
    print(f"✅ Usuário {nome} criado com sucesso. ID={resposta['user']['id']}")
    return resposta["user"]["id"]


def _buscar_usuario_id(banco: Banco, email: str) -> str:
    with banco.transacao(somente_leitura=True) as cur:
        usuario = AuthRepository(cur).buscar_usuario_por_email(email)
    if not usuario:
        raise ControleCartoesError(f"Usuário {email} não encontrado")
    return usuario.id


def listar_sessoes(banco: Banco, config: Settings, email: str) -> None:
    authority = SessionAuthority(banco, config)
    sessoes = authority.listar_sessoes(_buscar_usuario_id(banco, email))
    if not sessoes:
        print("⚠️ Nenhuma sessão encontrada.")
    for s in sessoes:
        estado = "ativa" if authority.esta_valida(s) else "encerrada"
        print(f"{s.id}  {estado:<10} última atividade={s.ultima_atividade}  expira={s.expira_em}  {s.device_info}")


def revogar_sessoes(banco: Banco, config: Settings, email: str) -> int:
    total = SessionAuthority(banco, config).revogar_todas(_buscar_usuario_id(banco, email))
    print(f"✅ {total} sessão(ões) revogada(s) para {email}.")
    return total


def migrar_parcelas(banco: Banco, config: Settings, email: str | None) -> int:
    ledger = LedgerUseCase(banco, LedgerEngine(config.DIA_VENCIMENTO_PADRAO))
    if email:
        usuarios = [_buscar_usuario_id(banco, email)]
    else:
        with banco.transacao(somente_leitura=True) as cur:
            usuarios = [u.id for u in AuthRepository(cur).listar_usuarios()]

    total = sum(ledger.migrar_parcelas(usuario_id) for usuario_id in usuarios)
    print(f"✅ Migração concluída: {total} parcelas criadas para {len(usuarios)} usuário(s).")
    return total


def main(argv: list[str] | None = None, banco: Banco | None = None) -> int:
    parser = argparse.ArgumentParser(description="Gerenciamento de usuários do Controle de Cartões")
    subparsers = parser.add_subparsers(dest="command")

    # Criar Usuário
    user_parser = subparsers.add_parser("create-user", help="Criar novo usuário")
    user_parser.add_argument("--nome", required=True, help="Nome do usuário")
    user_parser.add_argument("--email", required=True, help="Email do usuário")
    user_parser.add_argument("--senha", required=True, help="Senha do usuário")

    # Sessões
    list_parser = subparsers.add_parser("list-sessions", help="Listar sessões de um usuário")
    list_parser.add_argument("--email", required=True)

    revoke_parser = subparsers.add_parser("revoke-sessions", help="Revogar todas as sessões de um usuário")
    revoke_parser.add_argument("--email", required=True)

    # Parcelas
    migrate_parser = subparsers.add_parser("migrate-installments", help="Gerar parcelas de cartões antigos")
    migrate_parser.add_argument("--email", required=False, help="Limita a um usuário (padrão: todos)")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    config = Settings()
    banco = banco or conectar_banco(config)
    criar_tabelas(banco)

    try:
        if args.command == "create-user":
            criar_usuario(banco, config, args.nome, args.email, args.senha)
        elif args.command == "list-sessions":
            listar_sessoes(banco, config, args.email)
        elif args.command == "revoke-sessions":
            revogar_sessoes(banco, config, args.email)
        elif args.command == "migrate-installments":
            migrar_parcelas(banco, config, args.email)
    except ControleCartoesError as e:
        print(f"❌ {e.mensagem}")
        return 1
    return 0


if __name__ == "__main__":
    load_dotenv()
    sys.exit(main())
