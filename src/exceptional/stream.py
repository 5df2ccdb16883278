"""Lazy, single-use sequence pipelines with failable stages.

``ExceptionalStream`` chains ordinary iterator transformations (``map``,
``filter``, ``itertools``) and adapts every callable handed to it with
``exceptional.adapter.wrap`` before registering the stage. Nothing runs until
a terminal operation pulls values, so a failing stage surfaces as a
``WrappedError`` from the terminal operation and never earlier.

Example:
    with unwrapping(OSError):
        sizes = (
            ExceptionalStream.of(*paths)
            .filter(os.path.isfile)
            .map(os.path.getsize)
            .to_list()
        )
"""

from __future__ import annotations

import functools
import itertools
import logging
from typing import TYPE_CHECKING, Any, Final, Self

from exceptional.adapter import iter_carried, wrap
from exceptional.errors import HINTS, StreamConsumedError
from exceptional.shapes import Shape

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterable, Iterator
    from types import TracebackType

log = logging.getLogger(__name__)

_MISSING: Final = object()


class _CloseState:
    """Close handlers shared by every stream derived from one source."""

    __slots__ = ("closed", "handlers")

    def __init__(self, handlers: list[Callable[[], None]] | None = None) -> None:
        self.handlers: list[Callable[[], None]] = handlers or []
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        first: BaseException | None = None
        for handler in self.handlers:
            try:
                handler()
            except Exception as exc:
                if first is None:
                    first = exc
                else:
                    first.add_note(f"Another close handler also failed: {exc!r}")
        if first is not None:
            raise first


def _non_negative(name: str, n: int) -> int:
    if n < 0:
        raise ValueError(f"{name} must be >= 0, got {n}")
    return n


class ExceptionalStream[T]:
    """A lazy pipeline over an iterable whose stages may fail.

    Each stream can be operated upon once: linking a stage or running a
    terminal operation consumes it, and further use raises
    ``StreamConsumedError``.
    """

    __slots__ = ("_source", "_state", "_used")

    def __init__(self, source: Iterable[T], *, _state: _CloseState | None = None):
        self._source = source
        self._state = _state if _state is not None else _CloseState()
        self._used = False

    def __repr__(self) -> str:
        status = "consumed" if self._used else "ready"
        return f"ExceptionalStream({status})"

    # --- Construction ---

    @classmethod
    def of(cls, *values: T) -> ExceptionalStream[T]:
        return cls(values)

    @classmethod
    def from_iterable(cls, iterable: Iterable[T]) -> ExceptionalStream[T]:
        """A stream over *iterable*; failures raised while pulling are carried."""
        return cls(iter_carried(iterable, type(iterable)))

    @classmethod
    def empty(cls) -> ExceptionalStream[T]:
        return cls(())

    @classmethod
    def of_nullable(cls, value: T | None) -> ExceptionalStream[T]:
        """A stream of *value*, or an empty stream when it is None."""
        return cls(()) if value is None else cls((value,))

    @classmethod
    def iterate(
        cls,
        seed: T,
        next_fn: Callable[[T], T],
        has_next: Callable[[T], bool] | None = None,
    ) -> ExceptionalStream[T]:
        """``seed, next_fn(seed), ...`` while *has_next* holds (forever if None)."""
        step = wrap(next_fn, Shape.UNARY_OPERATOR)
        keep = wrap(has_next, Shape.PREDICATE) if has_next is not None else None

        def gen() -> Iterator[T]:
            current = seed
            while keep is None or keep(current):
                yield current
                current = step(current)

        return cls(gen())

    @classmethod
    def generate(cls, supplier: Callable[[], T]) -> ExceptionalStream[T]:
        """An endless stream of *supplier* results; bound it with ``limit``."""
        supply = wrap(supplier, Shape.SUPPLIER)

        def gen() -> Iterator[T]:
            while True:
                yield supply()

        return cls(gen())

    @classmethod
    def range(
        cls, start: int, stop: int | None = None, step: int = 1
    ) -> ExceptionalStream[int]:
        if stop is None:
            start, stop = 0, start
        return ExceptionalStream(range(start, stop, step))

    @classmethod
    def concat(
        cls, first: ExceptionalStream[T], second: ExceptionalStream[T]
    ) -> ExceptionalStream[T]:
        """Both streams in order; closing the result closes both."""
        state = _CloseState([first._state.close, second._state.close])
        return cls(itertools.chain(first._take(), second._take()), _state=state)

    # --- Plumbing ---

    def _take(self) -> Iterable[T]:
        if self._used:
            raise StreamConsumedError(
                "stream has already been operated upon or closed",
                hint=HINTS["stream_reuse"],
            )
        self._used = True
        return self._source

    def _link[R](self, source: Iterable[R]) -> ExceptionalStream[R]:
        return ExceptionalStream(source, _state=self._state)

    # --- Intermediate operations (lazy) ---

    def map[R](self, mapper: Callable[[T], R]) -> ExceptionalStream[R]:
        f = wrap(mapper, Shape.FUNCTION)
        return self._link(map(f, self._take()))

    def filter(self, predicate: Callable[[T], bool]) -> ExceptionalStream[T]:
        p = wrap(predicate, Shape.PREDICATE)
        return self._link(filter(p, self._take()))

    def flat_map[R](
        self, mapper: Callable[[T], Iterable[R] | None]
    ) -> ExceptionalStream[R]:
        """Replace each item by the items of ``mapper(item)``; None counts as empty."""
        f = wrap(mapper, Shape.FUNCTION)
        source = self._take()

        def gen() -> Iterator[R]:
            for item in source:
                result = f(item)
                if result is not None:
                    yield from iter_carried(result, mapper)

        return self._link(gen())

    def map_multi[R](
        self, mapper: Callable[[T, Callable[[R], None]], None]
    ) -> ExceptionalStream[R]:
        """Call ``mapper(item, emit)``; every ``emit(value)`` yields one value."""
        f = wrap(mapper, Shape.BI_CONSUMER)
        source = self._take()

        def gen() -> Iterator[R]:
            for item in source:
                buffer: list[R] = []
                f(item, buffer.append)
                yield from buffer

        return self._link(gen())

    def peek(self, action: Callable[[T], Any]) -> ExceptionalStream[T]:
        f = wrap(action, Shape.CONSUMER)
        source = self._take()

        def gen() -> Iterator[T]:
            for item in source:
                f(item)
                yield item

        return self._link(gen())

    def take_while(self, predicate: Callable[[T], bool]) -> ExceptionalStream[T]:
        p = wrap(predicate, Shape.PREDICATE)
        return self._link(itertools.takewhile(p, self._take()))

    def drop_while(self, predicate: Callable[[T], bool]) -> ExceptionalStream[T]:
        p = wrap(predicate, Shape.PREDICATE)
        return self._link(itertools.dropwhile(p, self._take()))

    def distinct(self) -> ExceptionalStream[T]:
        """Drop repeated items, keeping first occurrences in order."""
        source = self._take()

        def gen() -> Iterator[T]:
            seen: set[Hashable] = set()
            unhashable: list[Any] = []
            for item in source:
                try:
                    if item in seen:
                        continue
                    seen.add(item)  # type: ignore[arg-type]
                except TypeError:
                    if item in unhashable:
                        continue
                    unhashable.append(item)
                yield item

        return self._link(gen())

    def sorted(
        self,
        key: Callable[[T], Any] | None = None,
        *,
        reverse: bool = False,
        comparator: Callable[[T, T], int] | None = None,
    ) -> ExceptionalStream[T]:
        """Sort on first pull, by *key* or by a three-way *comparator*."""
        if key is not None and comparator is not None:
            raise ValueError("pass either key or comparator, not both")
        sort_key: Callable[[T], Any] | None = None
        if key is not None:
            sort_key = wrap(key, Shape.FUNCTION)
        elif comparator is not None:
            sort_key = functools.cmp_to_key(wrap(comparator, Shape.BI_FUNCTION))
        source = self._take()

        def gen() -> Iterator[T]:
            yield from sorted(source, key=sort_key, reverse=reverse)

        return self._link(gen())

    def limit(self, max_size: int) -> ExceptionalStream[T]:
        _non_negative("max_size", max_size)
        return self._link(itertools.islice(self._take(), max_size))

    def skip(self, n: int) -> ExceptionalStream[T]:
        _non_negative("n", n)
        return self._link(itertools.islice(self._take(), n, None))

    def on_close(self, handler: Callable[[], Any]) -> ExceptionalStream[T]:
        """Register *handler* to run once when the pipeline is closed."""
        run = wrap(handler, Shape.RUNNABLE)
        source = self._take()
        self._state.handlers.append(run)
        return self._link(source)

    # --- Terminal operations ---

    def __iter__(self) -> Iterator[T]:
        return iter(self._take())

    def for_each(self, action: Callable[[T], Any]) -> None:
        f = wrap(action, Shape.CONSUMER)
        for item in self._take():
            f(item)

    def to_list(self) -> list[T]:
        return list(self._take())

    def to_tuple(self) -> tuple[T, ...]:
        return tuple(self._take())

    def to_set(self) -> set[T]:
        return set(self._take())

    def collect[C](
        self, supplier: Callable[[], C], accumulator: Callable[[C, T], Any]
    ) -> C:
        """Fold items into a mutable container built by *supplier*."""
        make = wrap(supplier, Shape.SUPPLIER)
        add = wrap(accumulator, Shape.BI_CONSUMER)
        container = make()
        for item in self._take():
            add(container, item)
        return container

    def reduce(
        self, accumulator: Callable[[Any, T], Any], identity: Any = _MISSING
    ) -> Any:
        """Fold items with *accumulator*.

        Without *identity* the first item seeds the fold, and an empty stream
        yields None.
        """
        if identity is _MISSING:
            f = wrap(accumulator, Shape.BINARY_OPERATOR)
            items = iter(self._take())
            first = next(items, _MISSING)
            if first is _MISSING:
                return None
            return functools.reduce(f, items, first)
        f = wrap(accumulator, Shape.BI_FUNCTION)
        return functools.reduce(f, self._take(), identity)

    def any_match(self, predicate: Callable[[T], bool]) -> bool:
        p = wrap(predicate, Shape.PREDICATE)
        return any(p(item) for item in self._take())

    def all_match(self, predicate: Callable[[T], bool]) -> bool:
        p = wrap(predicate, Shape.PREDICATE)
        return all(p(item) for item in self._take())

    def none_match(self, predicate: Callable[[T], bool]) -> bool:
        p = wrap(predicate, Shape.PREDICATE)
        return not any(p(item) for item in self._take())

    def find_first(self, default: T | None = None) -> T | None:
        return next(iter(self._take()), default)

    def count(self) -> int:
        return sum(1 for _ in self._take())

    def min(
        self, key: Callable[[T], Any] | None = None, default: T | None = None
    ) -> T | None:
        f = wrap(key, Shape.FUNCTION) if key is not None else None
        return min(self._take(), key=f, default=default)

    def max(
        self, key: Callable[[T], Any] | None = None, default: T | None = None
    ) -> T | None:
        f = wrap(key, Shape.FUNCTION) if key is not None else None
        return max(self._take(), key=f, default=default)

    # --- Closing ---

    def close(self) -> None:
        """Run the pipeline's close handlers, once, in registration order.

        A closed stream can no longer be operated upon.
        """
        self._used = True
        log.debug("Closing pipeline with %d handler(s)", len(self._state.handlers))
        self._state.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        _: type[BaseException] | None,
        __: BaseException | None,
        ___: TracebackType | None,
    ) -> bool:
        self.close()
        return False


__all__ = ["ExceptionalStream"]
