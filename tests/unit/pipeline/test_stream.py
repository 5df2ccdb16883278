"""ExceptionalStream: laziness, stage adaptation, terminal ops and closing."""

from __future__ import annotations

import functools
import itertools
from typing import TYPE_CHECKING, Any

import pytest

from exceptional.carrier import WrappedError
from exceptional.errors import ShapeMismatchError, StreamConsumedError
from exceptional.stream import ExceptionalStream
from tests.helpers import Boom, CallLog, fail_with

if TYPE_CHECKING:
    from collections.abc import Iterator

pytestmark = pytest.mark.unit


def fail_on(bad: Any, cause: Exception):
    """Identity function that raises *cause* for the item *bad*."""

    def stage(item: Any) -> Any:
        if item == bad:
            raise cause
        return item

    return stage


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    def test_of_and_from_iterable(self) -> None:
        assert ExceptionalStream.of(1, 2, 3).to_list() == [1, 2, 3]
        assert ExceptionalStream.from_iterable("ab").to_list() == ["a", "b"]

    def test_empty(self) -> None:
        assert ExceptionalStream.empty().to_list() == []

    def test_of_nullable(self) -> None:
        assert ExceptionalStream.of_nullable(None).count() == 0
        assert ExceptionalStream.of_nullable(0).to_list() == [0]

    def test_iterate_with_and_without_bound(self) -> None:
        bounded = ExceptionalStream.iterate(1, lambda n: n * 2, lambda n: n < 20)
        assert bounded.to_list() == [1, 2, 4, 8, 16]

        endless = ExceptionalStream.iterate(0, lambda n: n + 1).limit(3)
        assert endless.to_list() == [0, 1, 2]

    def test_iterate_carries_failing_step(self) -> None:
        def step(n: int) -> float:
            return n + 1 if n < 2 else 1 / 0

        with pytest.raises(WrappedError) as exc:
            ExceptionalStream.iterate(0, step).to_list()
        assert isinstance(exc.value.cause, ZeroDivisionError)

    def test_generate_is_bounded_by_limit(self) -> None:
        counter = itertools.count()
        stream = ExceptionalStream.generate(lambda: next(counter)).limit(3)
        assert stream.to_list() == [0, 1, 2]

    def test_range(self) -> None:
        assert ExceptionalStream.range(3).to_list() == [0, 1, 2]
        assert ExceptionalStream.range(2, 8, 3).to_list() == [2, 5]

    def test_concat_preserves_order(self) -> None:
        joined = ExceptionalStream.concat(
            ExceptionalStream.of(1, 2), ExceptionalStream.of(3)
        )
        assert joined.to_list() == [1, 2, 3]

    def test_repr_shows_state(self) -> None:
        stream = ExceptionalStream.of(1)
        assert repr(stream) == "ExceptionalStream(ready)"
        stream.to_list()
        assert repr(stream) == "ExceptionalStream(consumed)"


# =============================================================================
# Laziness and failure surfacing
# =============================================================================


class TestLaziness:
    def test_registering_failing_stage_raises_nothing(self) -> None:
        ExceptionalStream.of("a", "b").map(fail_with(OSError("Test")))

    def test_failure_surfaces_at_terminal_operation(self) -> None:
        cause = OSError("Test")
        stream = ExceptionalStream.of("a").map(fail_with(cause))

        with pytest.raises(WrappedError) as exc:
            stream.to_list()
        assert exc.value.cause is cause

    def test_stages_run_per_item_in_order(self) -> None:
        seen = CallLog()
        result = (
            ExceptionalStream.of(1, 2, 3)
            .peek(seen)
            .map(lambda x: x * 10)
            .find_first()
        )
        assert result == 10
        assert seen.calls == [(1,)]

    def test_failure_stops_pulling(self) -> None:
        seen = CallLog()
        stream = ExceptionalStream.of(1, 2, 3).map(fail_on(2, Boom())).peek(seen)

        with pytest.raises(WrappedError):
            stream.to_list()
        assert seen.calls == [(1,)]

    def test_stop_iteration_in_stage_does_not_truncate(self) -> None:
        def stage(item: int) -> int:
            if item == 2:
                raise StopIteration
            return item

        with pytest.raises(WrappedError) as exc:
            ExceptionalStream.of(1, 2, 3).map(stage).to_list()
        assert isinstance(exc.value.cause, StopIteration)

    def test_propagating_failure_is_not_carried(self) -> None:
        with pytest.raises(AttributeError):
            ExceptionalStream.of(1).map(lambda x: x.missing).to_list()

    def test_shape_mismatch_is_reported_when_stage_is_linked(self) -> None:
        with pytest.raises(ShapeMismatchError):
            ExceptionalStream.of(1).map(lambda a, b: a)


# =============================================================================
# Intermediate operations
# =============================================================================


class TestIntermediate:
    def test_map_and_filter(self) -> None:
        result = ExceptionalStream.range(6).filter(lambda n: n % 2).map(str).to_list()
        assert result == ["1", "3", "5"]

    def test_filter_carries_failures(self) -> None:
        with pytest.raises(WrappedError) as exc:
            ExceptionalStream.of("1", "x").filter(lambda s: int(s) > 0).to_list()
        assert isinstance(exc.value.cause, ValueError)

    def test_flat_map_treats_none_as_empty(self) -> None:
        result = (
            ExceptionalStream.of(1, 2, 3)
            .flat_map(lambda n: [n] * n if n != 2 else None)
            .to_list()
        )
        assert result == [1, 3, 3, 3]

    def test_flat_map_carries_failures_of_lazy_results(self) -> None:
        cause = OSError("Test")

        def lines(_: int) -> Iterator[str]:
            yield "first"
            raise cause

        seen = CallLog()
        stream = ExceptionalStream.of(1).flat_map(lines).peek(seen)

        with pytest.raises(WrappedError) as exc:
            stream.to_list()
        assert exc.value.cause is cause
        assert seen.calls == [("first",)]

    def test_from_iterable_carries_source_failures(self) -> None:
        def source() -> Iterator[int]:
            yield 1
            raise TimeoutError("slow")

        with pytest.raises(WrappedError) as exc:
            ExceptionalStream.from_iterable(source()).to_list()
        assert isinstance(exc.value.cause, TimeoutError)

    def test_map_multi_emits_any_number_of_values(self) -> None:
        def explode(word: str, emit: Any) -> None:
            for ch in word:
                emit(ch)

        result = ExceptionalStream.of("ab", "", "c").map_multi(explode).to_list()
        assert result == ["a", "b", "c"]

    def test_take_while_and_drop_while(self) -> None:
        head = ExceptionalStream.of(1, 2, 5, 1).take_while(lambda n: n < 3)
        tail = ExceptionalStream.of(1, 2, 5, 1).drop_while(lambda n: n < 3)
        assert head.to_list() == [1, 2]
        assert tail.to_list() == [5, 1]

    def test_distinct_keeps_first_occurrences(self) -> None:
        assert ExceptionalStream.of(3, 1, 3, 2, 1).distinct().to_list() == [3, 1, 2]

    def test_distinct_handles_unhashable_items(self) -> None:
        result = ExceptionalStream.of([1], [2], [1], 1, 1).distinct().to_list()
        assert result == [[1], [2], 1]

    def test_sorted_natural_key_and_reverse(self) -> None:
        assert ExceptionalStream.of(3, 1, 2).sorted().to_list() == [1, 2, 3]
        by_len = ExceptionalStream.of("bb", "a", "ccc").sorted(key=len)
        assert by_len.to_list() == ["a", "bb", "ccc"]
        assert ExceptionalStream.of(3, 1, 2).sorted(reverse=True).to_list() == [3, 2, 1]

    def test_sorted_with_comparator(self) -> None:
        def by_length(a: str, b: str) -> int:
            return len(a) - len(b)

        result = ExceptionalStream.of("ccc", "a", "bb").sorted(comparator=by_length)
        assert result.to_list() == ["a", "bb", "ccc"]

    def test_sorted_rejects_key_and_comparator(self) -> None:
        with pytest.raises(ValueError, match="either key or comparator"):
            ExceptionalStream.of(1).sorted(key=abs, comparator=lambda a, b: 0)

    def test_sorted_carries_key_failures(self) -> None:
        with pytest.raises(WrappedError) as exc:
            ExceptionalStream.of("1", "x").sorted(key=int).to_list()
        assert isinstance(exc.value.cause, ValueError)

    def test_limit_and_skip(self) -> None:
        assert ExceptionalStream.range(10).skip(2).limit(3).to_list() == [2, 3, 4]
        assert ExceptionalStream.range(3).limit(0).to_list() == []

    @pytest.mark.parametrize("op", ["limit", "skip"])
    def test_negative_limit_and_skip_are_rejected(self, op: str) -> None:
        with pytest.raises(ValueError, match=">= 0"):
            getattr(ExceptionalStream.of(1), op)(-1)


# =============================================================================
# Terminal operations
# =============================================================================


class TestTerminal:
    def test_iteration(self) -> None:
        assert [x for x in ExceptionalStream.of(1, 2)] == [1, 2]

    def test_for_each(self) -> None:
        seen = CallLog()
        ExceptionalStream.of("a", "b").for_each(seen)
        assert seen.calls == [("a",), ("b",)]

    def test_collections(self) -> None:
        assert ExceptionalStream.of(1, 2).to_tuple() == (1, 2)
        assert ExceptionalStream.of(1, 1, 2).to_set() == {1, 2}

    def test_collect(self) -> None:
        result = ExceptionalStream.of("a", "b").collect(list, list.append)
        assert result == ["a", "b"]

    def test_reduce_with_and_without_identity(self) -> None:
        assert ExceptionalStream.of(1, 2, 3).reduce(lambda a, b: a + b) == 6
        assert ExceptionalStream.of(1, 2, 3).reduce(lambda a, b: a + b, 10) == 16
        assert ExceptionalStream.empty().reduce(lambda a, b: a + b) is None
        assert ExceptionalStream.empty().reduce(lambda a, b: a + b, 0) == 0

    def test_reduce_carries_failures(self) -> None:
        with pytest.raises(WrappedError) as exc:
            ExceptionalStream.of(1, 0).reduce(lambda a, b: a / b)
        assert isinstance(exc.value.cause, ZeroDivisionError)

    def test_matching(self) -> None:
        assert ExceptionalStream.of(1, 2).any_match(lambda n: n > 1)
        assert ExceptionalStream.of(1, 2).all_match(lambda n: n > 0)
        assert ExceptionalStream.of(1, 2).none_match(lambda n: n > 2)
        assert ExceptionalStream.empty().all_match(fail_with(Boom()))

    def test_matching_short_circuits(self) -> None:
        def is_one(n: int) -> bool:
            if n == 2:
                raise Boom(n)
            return n == 1

        assert ExceptionalStream.of(1, 2).any_match(is_one)
        assert not ExceptionalStream.of(3, 2).all_match(is_one)

    def test_find_first(self) -> None:
        assert ExceptionalStream.of(4, 5).find_first() == 4
        assert ExceptionalStream.empty().find_first() is None
        assert ExceptionalStream.empty().find_first("x") == "x"

    def test_count(self) -> None:
        assert ExceptionalStream.range(5).count() == 5

    def test_min_and_max(self) -> None:
        assert ExceptionalStream.of(3, 1, 2).min() == 1
        assert ExceptionalStream.of("a", "ccc").max(key=len) == "ccc"
        assert ExceptionalStream.empty().max(default=0) == 0

    def test_min_carries_key_failures(self) -> None:
        with pytest.raises(WrappedError):
            ExceptionalStream.of("1", "x").min(key=int)


# =============================================================================
# Single use
# =============================================================================


class TestSingleUse:
    def test_terminal_operation_consumes(self) -> None:
        stream = ExceptionalStream.of(1)
        stream.count()
        with pytest.raises(StreamConsumedError) as exc:
            stream.count()
        assert exc.value.hint is not None

    def test_linking_a_stage_consumes(self) -> None:
        stream = ExceptionalStream.of(1)
        stream.map(str)
        with pytest.raises(StreamConsumedError):
            stream.filter(bool)

    def test_concat_consumes_both(self) -> None:
        first, second = ExceptionalStream.of(1), ExceptionalStream.of(2)
        ExceptionalStream.concat(first, second)
        with pytest.raises(StreamConsumedError):
            first.to_list()
        with pytest.raises(StreamConsumedError):
            second.to_list()

    def test_consumed_error_is_catchable_as_runtime_error(self) -> None:
        stream = ExceptionalStream.of(1)
        stream.to_list()
        with pytest.raises(RuntimeError):
            stream.to_list()

    def test_closed_stream_cannot_be_used(self) -> None:
        stream = ExceptionalStream.of(1)
        stream.close()
        with pytest.raises(StreamConsumedError):
            stream.to_list()


# =============================================================================
# Closing
# =============================================================================


class TestClosing:
    def test_handlers_run_once_in_order(self) -> None:
        order: list[str] = []
        stream = (
            ExceptionalStream.of(1)
            .on_close(functools.partial(order.append, "first"))
            .map(str)
            .on_close(functools.partial(order.append, "second"))
        )

        stream.close()
        stream.close()
        assert order == ["first", "second"]

    def test_context_manager_closes(self) -> None:
        order: list[str] = []
        with ExceptionalStream.of(1).on_close(lambda: order.append("closed")) as s:
            assert s.to_list() == [1]
        assert order == ["closed"]

    def test_concat_closes_both_sources(self) -> None:
        order: list[str] = []
        first = ExceptionalStream.of(1).on_close(lambda: order.append("a"))
        second = ExceptionalStream.of(2).on_close(lambda: order.append("b"))

        with ExceptionalStream.concat(first, second) as joined:
            joined.to_list()
        assert order == ["a", "b"]

    def test_failing_handler_is_carried_after_all_run(self) -> None:
        order: list[str] = []
        stream = (
            ExceptionalStream.of(1)
            .on_close(fail_with(Boom("first")))
            .on_close(lambda: order.append("ran"))
            .on_close(fail_with(OSError("second")))
        )

        with pytest.raises(WrappedError) as exc:
            stream.close()
        assert isinstance(exc.value.cause, Boom)
        assert order == ["ran"]
        assert any("OSError" in note for note in exc.value.__notes__)

    def test_handler_must_take_no_arguments(self) -> None:
        with pytest.raises(ShapeMismatchError):
            ExceptionalStream.of(1).on_close(lambda x: x)

    def test_rejected_on_close_registers_nothing(self) -> None:
        ran: list[str] = []
        stream = ExceptionalStream.of(1)
        derived = stream.map(str)

        with pytest.raises(StreamConsumedError):
            stream.on_close(lambda: ran.append("late"))
        derived.close()
        assert ran == []
