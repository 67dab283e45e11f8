"""Command line entry point: run the web app or manage the token/stream key."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .auth import DeviceFlow
from .config import Settings
from .context import AppContext
from .errors import ConfigError, RadstreamError, Unauthorized
from .logs import configure_logging, mask_secret

LOGGER = logging.getLogger("radstream.cli")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="radstream", description="Edit and drive a YouTube live broadcast"
    )
    parser.add_argument("--debug", action="store_true", help="Ativa logs DEBUG")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Inicia o servidor web")
    serve.add_argument("--bind", default=None, help="Endereço de bind (default: env ou 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="Porta TCP (default: env ou 3000)")

    sub.add_parser("authorize", help="Autoriza a conta via device code")

    key = sub.add_parser("stream-key", help="Mostra o stream key reutilizável")
    key.add_argument("--peek", action="store_true", help="Não cria stream quando não existe")
    key.add_argument("--show", action="store_true", help="Mostra a chave sem máscara")

    sub.add_parser("logout", help="Remove e revoga o token OAuth")
    return parser.parse_args(argv)


def cmd_serve(context: AppContext, args: argparse.Namespace) -> int:
    import uvicorn

    from .app import create_app

    bind = args.bind or context.settings.bind
    port = args.port or context.settings.port
    LOGGER.info("Iniciando radstream em %s:%s", bind, port)
    uvicorn.run(create_app(context), host=bind, port=port, log_level="info")
    return 0


def cmd_authorize(context: AppContext, _args: argparse.Namespace) -> int:
    store = context.token_store
    if store.load() is not None:
        try:
            store.credentials()
            print(f"[OK] Token válido em {store.path}")
            return 0
        except Unauthorized as exc:
            LOGGER.warning("Token existente inutilizável (%s); iniciando device code.", exc)

    def _announce(url: str, code: str) -> None:
        print("\nAutorize esta aplicação:")
        print(f"  Visite: {url}")
        print(f"  Código: {code}\n")

    flow = DeviceFlow(context.settings.client_id, context.settings.client_secret, store)
    flow.run(_announce)
    print(f"[OK] Token gravado em {store.path}")
    return 0


def cmd_stream_key(context: AppContext, args: argparse.Namespace) -> int:
    resolver = context.stream_keys(context.youtube())
    key = resolver.peek_stream_key() if args.peek else resolver.get_or_create_stream_key()
    if key is None:
        print("Nenhum stream reutilizável encontrado.")
        return 1
    if key.ingest_url:
        print(f"Ingest URL: {key.ingest_url}")
    print(f"Stream key: {key.stream_key if args.show else mask_secret(key.stream_key)}")
    return 0


def cmd_logout(context: AppContext, _args: argparse.Namespace) -> int:
    context.token_store.sign_out()
    print("[OK] Sessão terminada.")
    return 0


COMMANDS = {
    "serve": cmd_serve,
    "authorize": cmd_authorize,
    "stream-key": cmd_stream_key,
    "logout": cmd_logout,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        configure_logging()
        LOGGER.error(str(exc))
        return 2

    configure_logging(settings.log_file, logging.DEBUG if args.debug else logging.INFO)
    context = AppContext.from_settings(settings)
    try:
        return COMMANDS[args.command](context, args)
    except RadstreamError as exc:
        LOGGER.error("%s: %s", type(exc).__name__, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
