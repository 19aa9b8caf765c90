import sys
from collections.abc import Coroutine
from typing import Any

from loguru import logger
from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication


def run_with_asyncio(main_coro: Coroutine[Any, Any, int]) -> int:
    """Runs the application with Qt driving the asyncio event loop.

    The QApplication is created first, then `PySide6.QtAsyncio` runs
    `main_coro` on an event loop backed by Qt's own. The loop keeps running
    after the coroutine returns and stops when the last window closes.

    Args:
        main_coro: The coroutine that builds the UI and starts the services.

    Returns:
        The exit code produced by `main_coro`, or 1 if it raised.
    """
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)

    outcome: dict[str, int] = {}

    async def _guarded_main() -> None:
        try:
            outcome["exit_code"] = await main_coro
        except Exception:
            logger.exception("The main application task exited with an exception.")
            outcome["exit_code"] = 1
            app.quit()

    logger.info("Starting the Qt application event loop.")
    QtAsyncio.run(_guarded_main(), keep_running=True, quit_qapp=True)
    logger.info("Qt application event loop has finished.")

    return outcome.get("exit_code", 0)
