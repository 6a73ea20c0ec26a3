"""Run mode: rotate tabs until interrupted."""

import asyncio
import contextlib
import logging
import signal
from typing import Any

from tabrotator.browser.devtools import DevToolsBrowser
from tabrotator.config.settings import TabRotatorSettings
from tabrotator.rotation.service import RotationService
from tabrotator.rotation.state_machine import RotationTiming
from tabrotator.settings.exceptions import StorageError
from tabrotator.settings.persistence import StateStore
from tabrotator.utils.logging import setup_logging
from tabrotator.web.server import ControlServer

from ..config import load_settings, resolve_initial_config

logger = logging.getLogger(__name__)


def create_service(settings: TabRotatorSettings, store: StateStore) -> RotationService:
    """Build the rotation service for the configured browser."""
    browser = DevToolsBrowser(
        devtools_url=settings.browser.devtools_url,
        request_timeout=settings.browser.request_timeout,
        poll_interval=settings.browser.poll_interval,
    )
    timing = RotationTiming(**settings.timing.model_dump(exclude={"auto_start_delay"}))
    return RotationService(
        browser,
        store=store,
        timing=timing,
        auto_start_delay=settings.timing.auto_start_delay,
    )


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on some platforms
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_event.set)


async def run_rotation_mode(args: Any) -> int:
    """Run the rotation service (and control API) until SIGINT/SIGTERM.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    settings = load_settings(args)
    setup_logging(settings)

    try:
        store = StateStore(settings.data_dir)
    except StorageError as e:
        print(f"Storage error: {e}")
        logger.exception("Could not open state store")
        return 1

    service = create_service(settings, store)
    server = (
        ControlServer(service, host=settings.server.host, port=settings.server.port)
        if settings.server.enabled
        else None
    )

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    auto_start = False if getattr(args, "no_auto_start", False) else None

    try:
        await service.start(resolve_initial_config(args, settings, store), auto_start=auto_start)
        if server is not None:
            await server.start()

        print(f"TabRotator running against {settings.browser.devtools_url}")
        if server is not None:
            print(f"Control API: http://{settings.server.host}:{settings.server.port}/api/status")
        print("Press Ctrl+C to stop")

        await stop_event.wait()
        return 0

    except OSError as e:
        print(f"Could not start control API: {e}")
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}")
        logger.exception("Unexpected error in run mode")
        return 1
    finally:
        if server is not None:
            await server.stop()
        await service.shutdown()
