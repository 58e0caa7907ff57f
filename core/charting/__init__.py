"""Chart plugin configuration, mapping, and rendering.

Chart types are described by validated `ChartPluginConfig` entries held in a
registry. User field assignments and form settings are mapped onto a
library-agnostic factory config, which each plugin's option builder turns
into an ECharts, Plotly, D3, or Chart.js structure.
"""
