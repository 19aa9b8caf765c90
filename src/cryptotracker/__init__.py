# src/cryptotracker/__init__.py
"""CryptoTracker: a desktop client for cryptocurrency prices and trends.

This package fetches the coin list and per-coin price history from the
CoinCap REST API and renders the history as an interactive line chart.

Key sub-packages:
- `chart`: The toolkit-independent chart layout engine, curve builder and
  hit tester.
- `ui`: The PySide6 widgets that host and paint the chart.
- `utils`: Shared helpers such as timestamp parsing.
"""

# The version is managed in pyproject.toml and is dynamically
# retrieved here using importlib.metadata.
import importlib.metadata

try:
    __version__: str = importlib.metadata.version("cryptotracker")
except importlib.metadata.PackageNotFoundError:
    # Running from a source checkout that has not been installed.
    __version__ = "0.0.0-dev"
