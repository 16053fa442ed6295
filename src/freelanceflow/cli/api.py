# freelanceflow/cli/api.py
from freelanceflow.config import settings
from freelanceflow.logging import get_logger


def register_subcommands(subparsers):
    subparsers.add_parser("status", help="Check api status")
    starter_parser = subparsers.add_parser("start", help="start the API server")
    starter_parser.add_argument("--host", default=None, help="Host to run the API server on")
    starter_parser.add_argument("--port", type=int, default=None, help="Port to run the API server on")


def dispatch(args):
    """Dispatch API subcommands through a lookup table.

    Handler errors propagate; unknown subcommands raise ``ValueError``.
    """
    logger = get_logger(__file__)

    def _status() -> None:
        logger.info("run `freelanceflow api start` to start the API server")

    def _start() -> None:
        from freelanceflow.api.main import app
        import uvicorn

        host = args.host or settings.env_str("FREELANCEFLOW_HOST")
        port = args.port or settings.env_int("FREELANCEFLOW_PORT", minimum=1, maximum=65535)
        logger.info("Starting API server at %s:%s", host, port)
        uvicorn.run(app, host=host, port=port)

    commands = {"status": _status, "start": _start}
    try:
        handler = commands[args.subcommand]
    except KeyError as exc:
        message = f"No handler for API subcommand: {args.subcommand}"
        logger.error(message)
        raise ValueError(message) from exc

    handler()
