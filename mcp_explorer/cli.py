"""CLI argument parsing and main entry point.

Subcommands:

* ``mcp-explorer serve``     : run the bundled tool server.
* ``mcp-explorer tools``     : list the tools of the configured server.
* ``mcp-explorer transcribe``: transcribe an audio file.
* ``mcp-explorer call``      : call any tool by name.
* ``mcp-explorer optimize``  : rewrite text for email/Teams, picking the
  tool explicitly, by heuristic, or by asking an LLM.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from mcp_explorer.bridge import McpTransport
from mcp_explorer.config import ExplorerConfig, connection_to_dict, load_config
from mcp_explorer.constants import (
    CLIENT_NAME,
    CLIENT_VERSION,
    EMAIL_TOOL,
    TEAMS_TOOL,
    TRANSCRIBE_TOOL,
)
from mcp_explorer.display.logging_config import setup_logging
from mcp_explorer.dispatch import (
    DecisionOracle,
    HeuristicSelector,
    InvocationResult,
    OptimizeFlow,
    OracleSelector,
    Selector,
    ToolCatalog,
    ToolInvoker,
)
from mcp_explorer.errors import ExplorerBaseError

module_logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_TEXT_MESSAGE = "(no textual output)"


# ── Helpers ──────────────────────────────────────────────────────────────


def _load(args: argparse.Namespace) -> ExplorerConfig:
    setup_logging(args.log_level, quiet=True)
    module_logger.info("---- %s v%s: %s ----", CLIENT_NAME, CLIENT_VERSION, args.command)
    return load_config(args.config)


async def _with_transport(
    config: ExplorerConfig, action: Callable[[McpTransport], Awaitable[T]]
) -> T:
    async with McpTransport(connection_to_dict(config)) as transport:
        return await action(transport)


def _run(coro_factory: Callable[[], Awaitable[Any]]) -> None:
    """Run an async command, reporting dispatch errors as ``Error (<Kind>)``."""
    try:
        asyncio.run(coro_factory())
    except ExplorerBaseError as exc:
        module_logger.error("Command failed: %s: %s", type(exc).__name__, exc)
        print(f"Error ({type(exc).__name__}): {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        sys.exit(130)


def _print_result(result: InvocationResult) -> None:
    print(result.text if result.text is not None else NO_TEXT_MESSAGE)


def parse_arg_pairs(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``["key=value", ...]`` into a dict; values stay strings."""
    arguments: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Invalid argument '{pair}', expected key=value")
        arguments[key] = value
    return arguments


def _read_text(value: str) -> str:
    return sys.stdin.read() if value == "-" else value


# ── ``mcp-explorer serve`` ──────────────────────────────────────────────


def _cmd_serve(args: argparse.Namespace) -> None:
    """Entry-point for ``mcp-explorer serve``."""
    setup_logging(args.log_level, log_prefix="server", quiet=True)
    from mcp_explorer.server import run_server

    run_server(transport=args.transport, host=args.host, port=args.port)


# ── ``mcp-explorer tools`` ──────────────────────────────────────────────


def _cmd_tools(args: argparse.Namespace) -> None:
    """Entry-point for ``mcp-explorer tools``."""
    config = _load(args)

    async def _main() -> None:
        catalog = await _with_transport(config, lambda t: ToolCatalog(t).list())
        if not len(catalog):
            print("The server exposes no tools.")
            return
        width = max(len(name) for name in catalog.names)
        for cap in catalog:
            print(f"{cap.name:<{width}s}  {cap.description}")
        print(f"\n{len(catalog)} tool(s).")

    _run(_main)


# ── ``mcp-explorer transcribe`` / ``call`` ──────────────────────────────


def _cmd_transcribe(args: argparse.Namespace) -> None:
    """Entry-point for ``mcp-explorer transcribe``."""
    config = _load(args)

    async def _main() -> None:
        result = await _with_transport(
            config,
            lambda t: ToolInvoker(t).call(TRANSCRIBE_TOOL, {"mp3FilePath": args.path}),
        )
        _print_result(result)

    _run(_main)


def _cmd_call(args: argparse.Namespace) -> None:
    """Entry-point for ``mcp-explorer call``; the name is checked against a fresh catalog."""
    config = _load(args)
    arguments = parse_arg_pairs(args.arg)

    async def _call(transport: McpTransport) -> InvocationResult:
        catalog = await ToolCatalog(transport).list()
        return await ToolInvoker(transport).call(args.name, arguments, catalog=catalog)

    async def _main() -> None:
        _print_result(await _with_transport(config, _call))

    _run(_main)


# ── ``mcp-explorer optimize`` ───────────────────────────────────────────


def build_selector(
    mode: str, config: ExplorerConfig, oracle: Optional[DecisionOracle] = None
) -> Selector:
    """Selector for ``auto`` (heuristic) or ``ai`` (oracle) mode."""
    if mode == "ai":
        if oracle is None:
            from mcp_explorer.oracle import create_oracle

            oracle = create_oracle(config.llm)
        return OracleSelector(oracle)
    h = config.heuristic
    return HeuristicSelector(
        family_marker=h.family_marker,
        email_marker=h.email_marker,
        chat_marker=h.chat_marker,
        email_keywords=h.email_keywords,
        length_threshold=h.length_threshold,
    )


def _cmd_optimize(args: argparse.Namespace) -> None:
    """Entry-point for ``mcp-explorer optimize``."""
    config = _load(args)
    text = _read_text(args.text)
    if not text.strip():
        print("Error: nothing to optimize (empty text).", file=sys.stderr)
        sys.exit(1)

    async def _direct(transport: McpTransport) -> None:
        tool = EMAIL_TOOL if args.mode == "email" else TEAMS_TOOL
        _print_result(await ToolInvoker(transport).call(tool, {"text": text}))

    async def _flow(transport: McpTransport, selector: Selector) -> None:
        flow = OptimizeFlow(ToolCatalog(transport), selector, ToolInvoker(transport))
        outcome = await flow.run(text)
        label = "AI selected" if args.mode == "ai" else "Decision: selected"
        print(f"{label} tool '{outcome.capability.name}'.")
        print("\n--- RESULT ---")
        _print_result(outcome.result)

    async def _main() -> None:
        if args.mode in ("email", "teams"):
            await _with_transport(config, _direct)
            return
        if args.mode == "auto":
            selector = build_selector("auto", config)
            await _with_transport(config, lambda t: _flow(t, selector))
            return

        # Build the oracle first so a bad provider fails before the server starts.
        from mcp_explorer.oracle import create_oracle

        oracle = create_oracle(config.llm)
        try:
            selector = build_selector("ai", config, oracle=oracle)
            await _with_transport(config, lambda t: _flow(t, selector))
        finally:
            await oracle.close()

    _run(_main)


# ── Parser ───────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="mcp-explorer",
        description=f"{CLIENT_NAME} v{CLIENT_VERSION}",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Path to configuration file (YAML). Default: auto-detect config.yaml/config.yml",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Set file logging level (default: info)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # ── serve ────────────────────────────────────────────────────
    sp_serve = subparsers.add_parser("serve", help="Run the bundled MCP tool server")
    sp_serve.add_argument(
        "--transport",
        default="stdio",
        choices=["stdio", "sse", "streamable-http"],
        help="Server transport (default: stdio)",
    )
    sp_serve.add_argument("--host", default="127.0.0.1", help="Host for HTTP transports")
    sp_serve.add_argument("--port", type=int, default=8000, help="Port for HTTP transports")
    sp_serve.set_defaults(func=_cmd_serve)

    # ── tools ────────────────────────────────────────────────────
    sp_tools = subparsers.add_parser("tools", help="List the tools exposed by the server")
    sp_tools.set_defaults(func=_cmd_tools)

    # ── transcribe ───────────────────────────────────────────────
    sp_tr = subparsers.add_parser("transcribe", help="Transcribe an audio file")
    sp_tr.add_argument("path", help="Path to the MP3 file")
    sp_tr.set_defaults(func=_cmd_transcribe)

    # ── call ─────────────────────────────────────────────────────
    sp_call = subparsers.add_parser("call", help="Call a tool by name")
    sp_call.add_argument("name", help="Tool name")
    sp_call.add_argument(
        "--arg",
        action="append",
        metavar="KEY=VALUE",
        help="Tool argument (repeatable)",
    )
    sp_call.set_defaults(func=_cmd_call)

    # ── optimize ─────────────────────────────────────────────────
    sp_opt = subparsers.add_parser("optimize", help="Rewrite text for email or Teams")
    sp_opt.add_argument("text", help="Text to optimize ('-' reads stdin)")
    sp_opt.add_argument(
        "--mode",
        default="auto",
        choices=["email", "teams", "auto", "ai"],
        help=(
            "email/teams call that tool directly; auto picks by keywords and "
            "length; ai asks the configured LLM (default: auto)"
        ),
    )
    sp_opt.set_defaults(func=_cmd_optimize)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments and dispatch to subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)
    try:
        args.func(args)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
    except ExplorerBaseError as exc:
        print(f"Error ({type(exc).__name__}): {exc}", file=sys.stderr)
        sys.exit(1)
