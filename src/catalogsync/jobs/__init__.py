"""Maintenance jobs run by the scheduler."""

from .low_stock import run_low_stock_check
from .retention import run_retention

__all__ = ["run_low_stock_check", "run_retention"]
