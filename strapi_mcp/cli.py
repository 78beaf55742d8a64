"""
strapi-mcp-cli — operator commands for the Strapi MCP server
"""

import argparse
import asyncio
import json
import sys

from strapi_mcp import config
from strapi_mcp._utils import parse_json_option
from strapi_mcp.api import _mask_token
from strapi_mcp.client import StrapiClient
from strapi_mcp.exceptions import AuthError, StrapiError

HELP_TEXT = """\
Usage: strapi-mcp-cli <command> [args...]

Global flags:
  --verbose, -v           Log HTTP/auth events to stderr
  --version               Show version number

Commands:
  serve [--http]          - Run the MCP server (stdio, or streamable-http)
  check                   - Health check plus one authenticated request
  login                   - Perform the admin login and report the result
  rest <endpoint>         - Call an endpoint directly
       --method GET|POST|PUT|DELETE  --params '<json>'  --body '<json>'
  version                 - Show version number
"""

# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _SubcommandParser(argparse.ArgumentParser):
    """Subparser that raises StrapiError instead of printing full help text."""

    def error(self, message):
        raise StrapiError(f"[ERROR] {message}")


def _port(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a port number") from exc
    if not 0 < parsed < 65536:
        raise argparse.ArgumentTypeError("must be a port number")
    return parsed


def build_parser():
    parser = _SubcommandParser(prog="strapi-mcp-cli", add_help=False)
    parser.add_argument("--help", "-h", action="store_true", dest="show_help")
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument("--version", action="store_true", dest="show_version")
    sub = parser.add_subparsers(dest="command", parser_class=_SubcommandParser)

    p = sub.add_parser("serve")
    p.add_argument("--http", action="store_true")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=_port, default=8809)

    sub.add_parser("check")
    sub.add_parser("login")
    sub.add_parser("version")

    p = sub.add_parser("rest")
    p.add_argument("endpoint")
    p.add_argument("--method", default="GET", choices=["GET", "POST", "PUT", "DELETE"],
                   type=str.upper)
    p.add_argument("--params")
    p.add_argument("--body")
    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


async def cmd_check(ns):
    async with StrapiClient() as client:
        health = await client.check_health()
        if health["status"] != "healthy":
            raise StrapiError(f"[ERROR] Strapi is {health['status']}: {health.get('message', '')}")
        result = await client.validate_connection()
    _print_json({**result, "health": health["status"], "url": config.STRAPI_URL})


async def cmd_login(ns):
    async with StrapiClient() as client:
        if not await client.login_to_admin():
            raise AuthError(
                f"[AUTH_FAILED] Admin login failed ({client.authenticator.last_failure}).",
                reason=client.authenticator.last_failure,
            )
        _print_json({"ok": True, "token": _mask_token(client.get_token())})


async def cmd_rest(ns):
    params = parse_json_option(ns.params, "--params")
    body = parse_json_option(ns.body, "--body") if ns.body else None
    async with StrapiClient() as client:
        result = await client.strapi_rest(ns.endpoint, ns.method, params=params or None, body=body)
    _print_json(result)


def cmd_serve(ns):
    from strapi_mcp.mcp_server import mcp

    if ns.http:
        mcp.settings.host = ns.host
        mcp.settings.port = ns.port
        mcp.run(transport="streamable-http")
    else:
        mcp.run()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

_ASYNC_COMMANDS = {"check": cmd_check, "login": cmd_login, "rest": cmd_rest}


def _emit_cli_error(err):
    payload = {
        "ok": False,
        "schema_version": config.CONTRACT_SCHEMA_VERSION,
        "error": {
            "type": getattr(err, "error_type", "error"),
            "message": str(err),
            "exit_code": getattr(err, "exit_code", 1),
        },
    }
    print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(HELP_TEXT)
        sys.exit(0)
    try:
        ns = build_parser().parse_args(argv)
        if ns.show_help or (not ns.command and not ns.show_version):
            print(HELP_TEXT)
            sys.exit(0)
        if ns.show_version or ns.command == "version":
            print(f"strapi-mcp {config.VERSION}")
            sys.exit(0)
        if ns.verbose:
            config.HTTP_LOG_ENABLED = True
        if ns.command == "serve":
            cmd_serve(ns)
            return
        asyncio.run(_ASYNC_COMMANDS[ns.command](ns))
    except StrapiError as e:
        _emit_cli_error(e)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
