# src/cryptotracker/chart/__init__.py
"""This package contains the line chart layout core.

It turns a list of price samples and a style into pixel-space geometry:
axis labels, helper lines, data point positions, a smoothed curve and the
value annotation for the selected sample. It also resolves pointer
positions back to samples.

Nothing in here depends on a GUI toolkit. Text measurement is injected
through the `LabelMetrics` protocol in `cryptotracker.chart.metrics`, and
`cryptotracker.chart.controller.LineChartController` is the adapter a
widget calls on every repaint and drag event.
"""
