"""Concurrency helpers."""

from searchspine.execution.fanout import FanOutExecutor, FanOutItem, FanOutResult

__all__ = ["FanOutExecutor", "FanOutItem", "FanOutResult"]
