"""DraftDesk entry point.

    python -m draftdesk serve [--host H] [--port P] [--store FILE] [-v|-d|-q] [--no-color]
    python -m draftdesk topics
    python -m draftdesk version
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from draftdesk.core import __version__
from draftdesk.core.config import ConfigResolver, SessionSettings
from draftdesk.core.diagnostics import install_jsonl_sink
from draftdesk.core.engine import SessionEngine
from draftdesk.core.errors import DraftDeskError
from draftdesk.core.events import get_event_bus
from draftdesk.core.logging import (
    VerbosityLevel,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)

_logger = get_logger("draftdesk")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="draftdesk", description="DraftDesk session engine")
    p.add_argument("--config", type=Path, default=None, help="user config YAML")
    level = p.add_mutually_exclusive_group()
    level.add_argument("-q", "--quiet", action="store_const", const="quiet", dest="level")
    level.add_argument("-v", "--verbose", action="store_const", const="verbose", dest="level")
    level.add_argument("-d", "--debug", action="store_const", const="debug", dest="level")
    p.add_argument("--no-color", action="store_false", dest="color", default=None)

    sub = p.add_subparsers(dest="command", required=True)
    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--store", type=Path, default=None, help="YAML record store")
    sub.add_parser("topics", help="list bundled topics")
    sub.add_parser("version", help="print the version")
    return p.parse_args(argv)


def _cli_args(ns: argparse.Namespace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    logging_args: dict[str, Any] = {}
    if ns.level:
        logging_args["level"] = ns.level
    if ns.color is not None:
        logging_args["color"] = ns.color
    if logging_args:
        out["logging"] = logging_args
    web = {}
    if getattr(ns, "host", None):
        web["host"] = ns.host
    if getattr(ns, "port", None):
        web["port"] = ns.port
    if web:
        out["web"] = web
    if getattr(ns, "store", None):
        out["store"] = {"path": str(ns.store)}
    return out


def build_engine(resolver: ConfigResolver) -> tuple[SessionEngine, Any]:
    """Engine wired to the bundled adapters and topics; returns (engine, events)."""
    from draftdesk.adapters import PlainRenderer, QueueEventSource, YamlRecordStore
    from draftdesk.topics import register_default_topics

    bus = get_event_bus()
    install_jsonl_sink(bus, resolver=resolver)

    store_path, _src = resolver.resolve("store.path")
    events = QueueEventSource()
    engine = SessionEngine(
        events=events,
        store=YamlRecordStore(Path(str(store_path)), bus=bus),
        renderer=PlainRenderer(),
        settings=SessionSettings.from_resolver(resolver),
        bus=bus,
    )
    register_default_topics(engine)
    return engine, events


def build_app(resolver: ConfigResolver) -> Any:
    from draftdesk.api import create_app

    engine, events = build_engine(resolver)
    return create_app(engine, events)


async def _serve(resolver: ConfigResolver) -> None:
    import uvicorn

    host, _ = resolver.resolve("web.host")
    port, _ = resolver.resolve("web.port")
    verbosity = get_verbosity()
    log_level = {
        VerbosityLevel.QUIET: "critical",
        VerbosityLevel.NORMAL: "error",
        VerbosityLevel.VERBOSE: "info",
    }.get(verbosity, "debug")

    _logger.info(f"DraftDesk API on http://{host}:{port}")
    config = uvicorn.Config(
        build_app(resolver),
        host=str(host),
        port=int(port),
        log_level=log_level,
        access_log=verbosity >= VerbosityLevel.VERBOSE,
    )
    await uvicorn.Server(config).serve()


def main(argv: list[str] | None = None) -> int:
    ns = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        resolver = ConfigResolver(cli_args=_cli_args(ns), user_config_path=ns.config)
        set_verbosity(resolver.resolve_logging_level())
        set_colors(resolver.resolve_logging_color())

        if ns.command == "version":
            print(__version__)
        elif ns.command == "topics":
            engine, _events = build_engine(resolver)
            for topic in engine.topics():
                print(f"{topic}\t{engine.topic(topic).title}")
        else:
            asyncio.run(_serve(resolver))
    except DraftDeskError as e:
        _logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
