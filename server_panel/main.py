import argparse
import logging

from nicegui import app as ng_app
from nicegui import ui

from server_panel.common.logging_config import TRACE, configure_logging
from server_panel.config import PanelConfig, config
from server_panel.constants import LOG_LEVEL, SERVER_HOST, SERVER_PORT
from server_panel.pages.status import StatusPage
from server_panel.services import status_client
from server_panel.services.lifecycle import LifecycleMachine

# Runtime configuration (resolved later from CLI/env)
RUNTIME_CONFIG: PanelConfig = config

ng_app.on_shutdown(status_client.close_shared_client)


@ui.page("/")
def index() -> None:
    page: StatusPage | None = None

    def _on_error(error) -> None:
        if page is not None:
            page.on_error(error)

    client = ui.context.client
    machine = LifecycleMachine(
        status_client.get_shared_client(RUNTIME_CONFIG),
        RUNTIME_CONFIG.TOKEN,
        on_error=_on_error,
        cfg=RUNTIME_CONFIG,
        session=client.id,
    )
    page = StatusPage(machine)

    ui.label("Game Server Panel").classes("text-lg font-medium")
    page.build()
    page.close_with(client)
    # Initial status check once the page is mounted
    ui.timer(0.0, machine.refresh, once=True)


def _resolve_log_level(args: argparse.Namespace) -> int:
    # Explicit --log-level > -v/-q > env default from constants
    if args.log_level:
        return TRACE if args.log_level == "TRACE" else getattr(logging, args.log_level)
    if args.verbose >= 3:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.WARNING
    return LOG_LEVEL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Game server status panel")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Webserver bind port")
    parser.add_argument("--api-url", help="Base URL of the server control API")
    parser.add_argument("--token", help="Bearer token sent with every API request")
    parser.add_argument(
        "--poll-interval", type=float, help="Seconds between status checks while waiting"
    )
    parser.add_argument(
        "--wait-timeout", type=float, help="Seconds to wait for the server after a start"
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def main(argv: list[str] | None = None) -> None:
    global RUNTIME_CONFIG
    args, _ = build_parser().parse_known_args(argv)

    RUNTIME_CONFIG = config.with_overrides(
        API_BASE_URL=args.api_url,
        TOKEN=args.token,
        POLL_INTERVAL_S=args.poll_interval,
        WAIT_TIMEOUT_S=args.wait_timeout,
    )

    configure_logging(_resolve_log_level(args))
    logging.info("Webserver bind: host=%s port=%s", args.host, args.port)
    logging.info("Control API: %s", RUNTIME_CONFIG.API_BASE_URL)
    if not RUNTIME_CONFIG.TOKEN:
        logging.warning("No API token configured; requests will be sent with an empty bearer token")

    ui.run(
        title="Game Server Panel",
        host=args.host,
        port=args.port,
        reload=False,
        show=False,
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
