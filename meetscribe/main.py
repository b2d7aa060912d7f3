"""Main application entry point for MeetScribe."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

from . import __version__
from .config import MeetScribeConfig

logger = logging.getLogger(__name__)


def setup_logging(config: MeetScribeConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/meetscribe.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - warnings and above, only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("MeetScribe starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def serve(config: MeetScribeConfig, args: argparse.Namespace) -> int:
    from .server import run_server

    if args.host:
        config.set('server.host', args.host)
    if args.port:
        config.set('server.port', args.port)
    run_server(config)
    return 0


def build_summarizer(config: MeetScribeConfig):
    """Summary callable for the controller, or None when summaries are off.

    The summary endpoint is hosted by a separate service; `meetscribe serve`
    only ingests chunks and stores meetings.
    """
    if not config.get('client.summary_enabled', False):
        return None

    from .services import SummaryClient

    summary_url = config.get('client.summary_url')
    if not summary_url:
        summary_url = config.get('client.server_url')
        logger.warning(f"client.summary_url not set, requesting summaries from {summary_url}; "
                       f"meetscribe serve does not host the summary endpoint")
    return SummaryClient(summary_url, config.get('client.auth_token')).generate


async def _record(config: MeetScribeConfig, args: argparse.Namespace) -> int:
    from .services import RecordingSessionController
    from .ui.transcript_screen import TranscriptScreen

    summarizer = build_summarizer(config)
    controller = RecordingSessionController(config, summarizer=summarizer)
    screen = TranscriptScreen(controller)
    result = await screen.run(title=args.title, duration=args.duration)
    if result is None:
        return 1
    return 0 if result.complete else 2


def record(config: MeetScribeConfig, args: argparse.Namespace) -> int:
    if args.server_url:
        config.set('client.server_url', args.server_url)
    if args.chunk_seconds:
        config.set('audio.chunk_duration_seconds', args.chunk_seconds)
    return asyncio.run(_record(config, args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MeetScribe - incremental meeting transcription",
        epilog="Recording keys: p=Pause/resume, s=Stop"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for meetscribe.yaml)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"MeetScribe v{__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve_parser = commands.add_parser("serve", help="Run the chunk ingestion server")
    serve_parser.add_argument("--host", type=str, help="Bind address (overrides config)")
    serve_parser.add_argument("--port", type=int, help="Port (overrides config)")
    serve_parser.set_defaults(handler=serve)

    record_parser = commands.add_parser("record", help="Record and transcribe from the microphone")
    record_parser.add_argument("--title", type=str, help="Meeting title")
    record_parser.add_argument(
        "--duration",
        type=float,
        help="Stop automatically after this many seconds"
    )
    record_parser.add_argument("--server-url", type=str, help="Ingestion server URL (overrides config)")
    record_parser.add_argument(
        "--chunk-seconds",
        type=float,
        help="Chunk duration in seconds (overrides config)"
    )
    record_parser.set_defaults(handler=record)
    return parser


def main() -> None:
    """Main entry point for MeetScribe."""
    args = build_parser().parse_args()

    try:
        config = MeetScribeConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    try:
        exit_code = args.handler(config, args)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        exit_code = 0
    except Exception as e:
        print(f"❌ Error: {e}")
        logger.exception(f"Application error: {e}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
