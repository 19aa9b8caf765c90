import asyncio

from loguru import logger
from PySide6.QtCore import Qt, Slot
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QVBoxLayout,
    QWidget,
)

from cryptotracker.chart.models import ValueLabel
from cryptotracker.coincap import CoinCapDataSource, NetworkError
from cryptotracker.models import Coin


def describe_coin(coin: Coin) -> str:
    """One-line list entry, e.g. '1. Bitcoin (BTC)  67,000$  +1.25%'."""
    price = ValueLabel(value=coin.price_usd, unit="$").formatted()
    return (
        f"{coin.rank}. {coin.name} ({coin.symbol})  {price}  "
        f"{coin.change_percent_24hr:+.2f}%"
    )


class CoinSelectorDialog(QDialog):
    """A dialog that fetches the coin list and lets the user pick one.

    The list can be filtered by name or symbol.
    """

    def __init__(
        self, data_source: CoinCapDataSource, parent: QWidget | None = None
    ) -> None:
        """Initializes the CoinSelectorDialog.

        Args:
            data_source: The data source used to fetch the coin list.
            parent: The parent widget.
        """
        super().__init__(parent)
        self._data_source = data_source
        self._all_coins: list[Coin] = []
        self._selected_coin: Coin | None = None

        self._setup_ui()

    def _setup_ui(self) -> None:
        """Creates and arranges the widgets for the dialog."""
        self.setWindowTitle("Select Coin")
        self.setMinimumSize(400, 500)

        layout = QVBoxLayout(self)

        search_label = QLabel("Search for a coin by name or symbol:")
        self._search_input = QLineEdit()
        self._search_input.setPlaceholderText("Filter coins...")
        self._search_input.textChanged.connect(self._filter_list)

        self._coin_list_widget = QListWidget()
        self._coin_list_widget.setSortingEnabled(False)
        self._coin_list_widget.itemDoubleClicked.connect(self.accept)

        self._status_label = QLabel("Fetching coins...")
        self._status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)

        button_box = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        button_box.accepted.connect(self.accept)
        button_box.rejected.connect(self.reject)

        layout.addWidget(search_label)
        layout.addWidget(self._search_input)
        layout.addWidget(self._status_label)
        layout.addWidget(self._coin_list_widget, stretch=1)
        layout.addWidget(button_box)

        self._coin_list_widget.hide()

    async def populate_coins(self) -> bool:
        """Fetches the coin list and fills the dialog.

        Returns:
            True if at least one coin is available to choose from.
        """
        try:
            self._all_coins = await self._data_source.get_coins()
        except NetworkError as e:
            logger.error(f"Failed to fetch coins ({e.kind.value}): {e}")
            QMessageBox.critical(self, "Error", f"Could not load the coin list: {e}")
            return False

        self._status_label.hide()
        self._coin_list_widget.show()

        if not self._all_coins:
            QMessageBox.warning(
                self, "No Coins Found", "The price API did not return any coins."
            )
            return False

        self._filter_list("")
        return True

    @Slot(str)
    def _filter_list(self, text: str) -> None:
        """Filters the list widget based on the search input text."""
        self._coin_list_widget.clear()
        search_term = text.strip().upper()
        for coin in self._all_coins:
            if (
                search_term
                and search_term not in coin.name.upper()
                and search_term not in coin.symbol.upper()
            ):
                continue
            item = QListWidgetItem(describe_coin(coin))
            item.setData(Qt.ItemDataRole.UserRole, coin.id)
            self._coin_list_widget.addItem(item)

    def accept(self) -> None:
        """Overrides QDialog.accept to store the selected coin before closing."""
        selected_items = self._coin_list_widget.selectedItems()
        if not selected_items:
            QMessageBox.warning(
                self, "No Selection", "Please select a coin to continue."
            )
            return

        coin_id = selected_items[0].data(Qt.ItemDataRole.UserRole)
        self._selected_coin = next(c for c in self._all_coins if c.id == coin_id)
        logger.info(f"User selected coin: {self._selected_coin.name}")
        super().accept()

    def selected_coin(self) -> Coin | None:
        """Returns the chosen coin, or None if the dialog was cancelled."""
        return self._selected_coin

    @staticmethod
    async def get_coin(
        data_source: CoinCapDataSource, parent: QWidget | None = None
    ) -> Coin | None:
        """Creates, populates and shows the dialog without blocking the loop.

        Args:
            data_source: The data source used to fetch the coin list.
            parent: The parent widget for the dialog.

        Returns:
            The selected coin, or None if cancelled or nothing could be loaded.
        """
        dialog = CoinSelectorDialog(data_source, parent)
        loop = asyncio.get_running_loop()
        finished: asyncio.Future[int] = loop.create_future()

        def _on_finished(result: int) -> None:
            if not finished.done():
                finished.set_result(result)

        dialog.finished.connect(_on_finished)
        dialog.open()
        if not await dialog.populate_coins():
            dialog.reject()

        if await finished == QDialog.DialogCode.Accepted.value:
            return dialog.selected_coin()
        return None
