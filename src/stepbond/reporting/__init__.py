"""Reporting: DataFrames, file export and charts."""

from .charts import create_price_curve_chart, create_reserve_chart
from .export import (
    bonds_frame,
    events_frame,
    export_csv,
    export_json,
    history_frame,
    steps_frame,
    trades_frame,
)

__all__ = [
    "bonds_frame",
    "create_price_curve_chart",
    "create_reserve_chart",
    "events_frame",
    "export_csv",
    "export_json",
    "history_frame",
    "steps_frame",
    "trades_frame",
]
