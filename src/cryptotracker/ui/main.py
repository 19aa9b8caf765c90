import asyncio
import dataclasses
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
from loguru import logger
from PySide6.QtCore import Slot
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import (
    QApplication,
    QInputDialog,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QStatusBar,
)

from cryptotracker.chart.models import CurveMode, DataPoint, ValueLabel
from cryptotracker.coincap import CoinCapDataSource, NetworkError
from cryptotracker.config import Settings, get_api_key, set_api_key, settings
from cryptotracker.history import to_data_points
from cryptotracker.logging_config import setup_logging
from cryptotracker.models import Coin
from cryptotracker.ui.qt_asyncio_integration import run_with_asyncio
from cryptotracker.ui.views.coin_selector import CoinSelectorDialog
from cryptotracker.ui.views.line_chart_view import LineChartView


# Module-level reference so the window outlives `main_async`.
_main_window: "MainWindow | None" = None


def visible_tail(sample_count: int, visible_points: int) -> range:
    """The range covering the last `visible_points` samples."""
    return range(max(0, sample_count - max(visible_points, 0)), sample_count)


class MainWindow(QMainWindow):
    """The main application window."""

    def __init__(self, app_settings: Settings) -> None:
        super().__init__()
        self._settings = app_settings
        self._coin: Coin | None = None
        self._coin_selection_task: asyncio.Task[None] | None = None

        self._http_client = httpx.AsyncClient(
            timeout=app_settings.api.timeout_seconds, follow_redirects=True
        )
        self._data_source = CoinCapDataSource(
            self._http_client,
            base_url=app_settings.api.base_url,
            api_key=get_api_key(),
        )

        self._setup_ui()

    def _setup_ui(self) -> None:
        """Sets up the window, menus, and central widget."""
        self.setWindowTitle("CryptoTracker")
        self.resize(1200, 500)

        chart_settings = self._settings.chart
        self._chart_view = LineChartView(chart_settings.to_style(), self)
        self._chart_view.set_show_helper_lines(chart_settings.show_helper_lines)
        self._chart_view.selectedDataPointChanged.connect(self._on_selected_data_point)
        self.setCentralWidget(self._chart_view)

        self.setStatusBar(QStatusBar(self))
        self.statusBar().showMessage("Ready. Please select a coin to begin.")

        menu_bar = self.menuBar()
        file_menu = menu_bar.addMenu("&File")

        coin_action = QAction("Select &Coin...", self)
        coin_action.triggered.connect(self._show_coin_selector)
        file_menu.addAction(coin_action)

        api_key_action = QAction("Set CoinCap API &Key...", self)
        api_key_action.triggered.connect(self._prompt_api_key)
        file_menu.addAction(api_key_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        view_menu = menu_bar.addMenu("&View")

        helper_lines_action = QAction("Show &Helper Lines", self, checkable=True)
        helper_lines_action.setChecked(chart_settings.show_helper_lines)
        helper_lines_action.toggled.connect(self._chart_view.set_show_helper_lines)
        view_menu.addAction(helper_lines_action)

        smooth_action = QAction("&Smooth Curve", self, checkable=True)
        smooth_action.setChecked(chart_settings.smooth_curve)
        smooth_action.toggled.connect(self._set_smooth_curve)
        view_menu.addAction(smooth_action)

    @Slot()
    def _show_coin_selector(self) -> None:
        """Slot to show the coin selection dialog."""
        self._coin_selection_task = asyncio.create_task(self._run_coin_selection_flow())

    @Slot()
    def _prompt_api_key(self) -> None:
        """Asks for a CoinCap API key and stores it in the system keyring."""
        api_key, ok = QInputDialog.getText(
            self,
            "CoinCap API Key",
            "API key (stored in the system keyring):",
            QLineEdit.EchoMode.Password,
        )
        api_key = api_key.strip()
        if not ok or not api_key:
            return

        set_api_key(api_key)
        self._data_source = CoinCapDataSource(
            self._http_client,
            base_url=self._settings.api.base_url,
            api_key=api_key,
        )
        self.statusBar().showMessage("API key updated.", 5000)

    async def _run_coin_selection_flow(self) -> None:
        """Lets the user pick a coin and loads its price history."""
        self.statusBar().showMessage("Fetching coins...")
        coin = await CoinSelectorDialog.get_coin(self._data_source, self)
        if coin is None:
            self.statusBar().showMessage("Coin selection cancelled.", 5000)
            return

        self.statusBar().showMessage(f"Loading history for {coin.name}...")
        if await self._load_history(coin):
            self.statusBar().showMessage(f"Showing {coin.name}", 5000)

    async def _load_history(self, coin: Coin) -> bool:
        """Fetches the configured history window for `coin` into the chart."""
        api_settings = self._settings.api
        end_dt = datetime.now(timezone.utc)
        start_dt = end_dt - timedelta(days=api_settings.history_days)
        try:
            prices = await self._data_source.get_coin_history(
                coin.id, start_dt, end_dt, interval=api_settings.history_interval
            )
        except NetworkError as e:
            logger.error(f"Failed to fetch history for '{coin.id}' ({e.kind.value}).")
            self.statusBar().clearMessage()
            QMessageBox.critical(self, "Error", f"Could not load price history: {e}")
            return False

        samples = to_data_points(prices)
        self._coin = coin
        self._chart_view.set_data(
            samples,
            visible_tail(len(samples), self._settings.chart.visible_points),
            unit=self._settings.chart.unit,
        )
        self.setWindowTitle(f"CryptoTracker - {coin.name} ({coin.symbol})")
        return True

    @Slot(object)
    def _on_selected_data_point(self, point: DataPoint) -> None:
        """Adopts the dragged-to sample as the selection."""
        self._chart_view.set_selected_data_point(point)
        value = ValueLabel(value=point.y, unit=self._settings.chart.unit).formatted()
        when = point.x_label.replace("\n", " ")
        self.statusBar().showMessage(f"{when}: {value}")

    @Slot(bool)
    def _set_smooth_curve(self, smooth: bool) -> None:
        mode = CurveMode.CUBIC if smooth else CurveMode.LINEAR
        style = dataclasses.replace(self._chart_view.chart_style, curve_mode=mode)
        self._chart_view.set_chart_style(style)

    async def _shutdown(self) -> None:
        """Releases network resources."""
        logger.info("Initiating graceful shutdown...")
        if self._coin_selection_task and not self._coin_selection_task.done():
            self._coin_selection_task.cancel()
        await self._http_client.aclose()
        logger.success("Shutdown complete.")

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        """Overrides QMainWindow.closeEvent to trigger async shutdown."""
        logger.info("Close event triggered.")
        event.accept()
        asyncio.create_task(self._shutdown()).add_done_callback(
            lambda _: QApplication.instance().quit()
        )


async def main_async() -> int:
    """The main async entry point for the application."""
    global _main_window
    log_dir = (
        Path(settings.general.log_directory)
        if settings.general.log_directory
        else None
    )
    setup_logging(
        console_level=settings.general.log_level_console,
        file_level=settings.general.log_level_file,
        log_dir=log_dir,
    )

    _main_window = MainWindow(settings)
    _main_window.show()
    return 0


def main() -> None:
    """The synchronous entry point for the application."""
    try:
        exit_code = run_with_asyncio(main_async())
        sys.exit(exit_code)
    except Exception:
        logger.exception("An unhandled exception reached the top-level entry point.")
        sys.exit(1)


if __name__ == "__main__":
    main()
