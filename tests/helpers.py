"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: a few failure types and callables that
fail on demand, shared by the unit and integration suites.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class Boom(Exception):
    """An ordinary failure: never in the always-propagating category."""


class BoomSubtype(Boom):
    pass


def fail_with(exc: BaseException):
    """Return a callable that raises *exc* whatever it is called with."""

    def raiser(*_args: Any) -> Any:
        raise exc

    return raiser


@dataclass
class CallLog:
    """Records the arguments of every call, in order."""

    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)
