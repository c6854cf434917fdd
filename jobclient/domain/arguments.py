# /jobclient/domain/arguments.py
from __future__ import annotations

import dataclasses
import datetime as dt
import decimal
import enum
import json
import uuid
from collections.abc import Callable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel

from jobclient.domain.errors import ConversionError

Converter = Callable[[Any], str]


def _timedelta_text(value: dt.timedelta) -> str:
    # [-][d.]hh:mm:ss[.ffffff]
    sign = "-" if value < dt.timedelta(0) else ""
    value = abs(value)
    hours, rest = divmod(value.seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    out = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.days:
        out = f"{value.days}.{out}"
    if value.microseconds:
        out = f"{out}.{value.microseconds:06d}"
    return sign + out


def _bad(value: Any) -> str:
    raise ValueError(f"no invariant form for {value!r}")


def _float_text(value: float) -> str:
    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError("non-finite float")
    return repr(value)


# Checked in order: enums before str and int, bool before int, datetime before date.
_CONVERTERS: list[tuple[type, Converter]] = [
    (enum.Enum, lambda v: v.name),
    (str, str),
    (bool, str),
    (int, lambda v: str(int(v))),
    (float, _float_text),
    # fixed-point, never exponent notation
    (decimal.Decimal, lambda v: format(v, "f") if v.is_finite() else _bad(v)),
    (dt.datetime, lambda v: v.isoformat()),
    (dt.date, lambda v: v.isoformat()),
    (dt.time, lambda v: v.isoformat()),
    (dt.timedelta, _timedelta_text),
    (uuid.UUID, str),
]


def to_invariant_text(name: str, value: Any) -> str | None:
    """Render a single argument value; None stays None."""
    if value is None:
        return None
    for kind, converter in _CONVERTERS:
        if isinstance(value, kind):
            try:
                return converter(value)
            except (ArithmeticError, ValueError) as e:
                raise ConversionError(name, type(value), str(e)) from e
    raise ConversionError(name, type(value), "no converter for this type")


class JobArguments:
    """
    Explicit argument builder. Values are converted when added, so a bad
    value fails where the caller builds the arguments, not at submission.

        JobArguments().add("recipient", "a@x.com").add("retries", 3)
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._items: dict[str, str | None] = {}
        self._names: dict[str, str] = {}
        for name, value in (values or {}).items():
            self.add(name, value)

    def add(self, name: str, value: Any) -> JobArguments:
        if not isinstance(name, str) or not name:
            raise ConversionError(repr(name), type(name), "argument names must be non-empty strings")
        _put(self._items, self._names, name, value)
        return self

    def items(self) -> Iterator[tuple[str, str | None]]:
        return iter(self._items.items())

    def __len__(self) -> int:
        return len(self._items)


def _put(flat: dict[str, str | None], names: dict[str, str], name: str, value: Any) -> None:
    key = name.lower()
    if key in names:
        raise ConversionError(
            name, type(value), f"argument name clashes with '{names[key]}' once lower-cased"
        )
    names[key] = name
    flat[key] = to_invariant_text(name, value)


def _slot_names(klass: type) -> list[str]:
    names: list[str] = []
    for base in klass.__mro__:
        slots = vars(base).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name not in ("__dict__", "__weakref__") and name not in names:
                names.append(name)
    return names


def _public_fields(args: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(args, Mapping):
        for key, value in args.items():
            if not isinstance(key, str):
                raise ConversionError(repr(key), type(key), "argument names must be strings")
            yield key, value
        return

    if dataclasses.is_dataclass(args) and not isinstance(args, type):
        for f in dataclasses.fields(args):
            if not f.name.startswith("_"):
                yield f.name, getattr(args, f.name)
        return

    if isinstance(args, BaseModel):
        for name in type(args).model_fields:
            yield name, getattr(args, name)
        return

    # NamedTuple
    if isinstance(args, tuple) and hasattr(args, "_fields"):
        for name, value in zip(args._fields, args):
            if not name.startswith("_"):
                yield name, value
        return

    klass = type(args)
    slots = _slot_names(klass)
    properties = [
        name
        for base in klass.__mro__
        for name, attr in vars(base).items()
        if isinstance(attr, property) and not name.startswith("_")
    ]
    if not hasattr(args, "__dict__") and not slots and not properties:
        raise ConversionError(
            "<args>", klass, "unsupported argument object; pass a mapping, dataclass, model or JobArguments"
        )

    seen: set[str] = set()
    for name, value in getattr(args, "__dict__", {}).items():
        if not name.startswith("_"):
            seen.add(name)
            yield name, value
    for name in slots:
        if not name.startswith("_") and name not in seen:
            seen.add(name)
            # an unassigned slot reads as absent
            yield name, getattr(args, name, None)
    for name in properties:
        if name not in seen:
            seen.add(name)
            yield name, getattr(args, name)


def serialize(value: Mapping[str, str | None]) -> str:
    return json.dumps(dict(value), separators=(",", ":"), sort_keys=True)


def materialize(args: Any) -> str | None:
    """
    Flatten an argument object into ``{lower-cased field: invariant text}``
    and serialize it. Returns None for no arguments or an object without
    public fields. Two fields that lower-case to the same key are an error.
    """
    if args is None:
        return None

    flat: dict[str, str | None]
    if isinstance(args, JobArguments):
        flat = dict(args.items())
    else:
        flat = {}
        names: dict[str, str] = {}
        for name, value in _public_fields(args):
            _put(flat, names, name, value)

    if not flat:
        return None
    return serialize(flat)
