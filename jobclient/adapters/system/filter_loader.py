# /jobclient/adapters/system/filter_loader.py
from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from typing import Any

from jobclient.ports.client_filter import ClientFilterPort

LOG = logging.getLogger("adapter.filter_loader")


def import_object(path: str) -> Any:
    """Resolve ``pkg.mod.Name`` or ``pkg.mod:Name``."""
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ValueError(f"not an importable path: {path!r}")

    obj: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def load_filters(paths: Iterable[str]) -> list[ClientFilterPort]:
    """
    Build the filter chain from dotted paths, keeping the configured order.
    Classes and factories are called with no arguments; anything else is
    used as the filter itself.
    """
    paths = list(paths)
    filters: list[ClientFilterPort] = []
    for path in paths:
        flt = import_object(path)
        if isinstance(flt, type) or not hasattr(flt, "client_filter"):
            # class or factory
            flt = flt()
        if not callable(getattr(flt, "client_filter", None)):
            raise TypeError(f"{path} does not provide client_filter(context)")
        filters.append(flt)

    LOG.info("filters loaded", extra={"extra": {"filters": paths}})
    return filters
