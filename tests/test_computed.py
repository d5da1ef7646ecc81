"""Tests for Computed values."""

import pytest

from cellflux import (
    CircularDependencyError,
    Computed,
    Effect,
    Signal,
    computed,
    effect,
    flush_effects,
    signal,
)
from cellflux import _anchor


class TestComputed:
    def test_lazy_eval(self):
        call_count = 0
        s = Signal(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return s.get() * 2

        c = Computed(fn)
        assert call_count == 0  # not yet evaluated
        assert c.get() == 10
        assert call_count == 1

    def test_caches_until_dirty(self):
        call_count = 0
        s = Signal(5)

        def fn():
            nonlocal call_count
            call_count += 1
            return s.get() * 2

        c = Computed(fn)
        c.get()
        c.get()
        assert call_count == 1  # cached, no re-eval
        s.set(6)
        assert call_count == 1  # dirty, but still not re-evaluated
        assert c.dirty
        assert c.get() == 12
        assert call_count == 2

    def test_invalidation(self):
        s = Signal(5)
        c = Computed(lambda: s.get() * 2)
        assert c.get() == 10
        s.set(10)
        assert c.get() == 20

    def test_dependency_tracking(self):
        """Computed tracks dependencies dynamically."""
        flag = Signal(True)
        a = Signal(1)
        b = Signal(2)
        calls = []

        def pick():
            calls.append(1)
            return a.get() if flag.get() else b.get()

        c = Computed(pick)
        assert c.get() == 1

        flag.set(False)
        assert c.get() == 2  # now depends on b, not a
        a.set(100)
        assert not c.dirty
        assert c.get() == 2
        assert len(calls) == 2

    def test_chained_computed(self):
        base, set_base = signal(1)
        step1 = computed(lambda: base() * 2)
        step2 = computed(lambda: step1() + 10)
        step3 = computed(lambda: step2() * 3)
        assert step3() == 36
        set_base(5)
        assert step3() == 60

    def test_dispose(self):
        s = Signal(5)
        c = Computed(lambda: s.get() * 2)
        c.get()
        c.dispose()
        assert c.dirty
        s.set(10)
        assert c.get() == 20  # still works, just re-evals

    def test_dispose_unlinks_readers(self):
        s = Signal(1)
        c = Computed(lambda: s.get() + 1)
        e = Effect(lambda: c.get())
        e._run()
        assert c in _anchor.dependencies[e._id]

        c.dispose()
        assert c not in _anchor.dependencies[e._id]
        e.stop()

    def test_peek(self):
        s = Signal(3)
        c = Computed(lambda: s.get() + 1)
        runs = []
        effect(lambda: runs.append(c.peek()))
        assert runs == [4]
        s.set(4)
        flush_effects()
        assert runs == [4]
        assert c.get() == 5

    def test_repr(self):
        s = Signal(1)

        def plus_one():
            return s.get() + 1

        c = Computed(plus_one)
        assert repr(c) == "Computed(plus_one, dirty)"
        c.get()
        assert repr(c) == "Computed(plus_one, cached=2)"


class TestComputedWithEffects:
    def test_propagates_to_effects(self):
        s = Signal(5)
        c = Computed(lambda: s.get() * 2)
        log = []
        effect(lambda: log.append(c.get()))
        assert log == [10]
        s.set(10)
        flush_effects()
        assert log == [10, 20]

    def test_reused_by_effect_after_plain_read(self):
        base, set_base = signal(1)
        compute_runs = 0

        def doubled_fn():
            nonlocal compute_runs
            compute_runs += 1
            return base() * 2

        doubled = computed(doubled_fn)
        doubled()
        runs = []
        effect(lambda: runs.append(doubled()))
        assert compute_runs == 1

        set_base(2)
        flush_effects()
        assert runs == [2, 4]
        assert compute_runs == 2

    def test_diamond_runs_effect_once(self):
        a, set_a = signal(1)
        b = computed(lambda: a() + 1)
        c = computed(lambda: a() + 2)
        d = computed(lambda: b() + c())
        results = []
        effect(lambda: results.append(d()))
        assert results == [5]

        set_a(2)
        assert flush_effects() == 1
        assert results == [5, 7]


class TestComputedErrors:
    def test_circular_dependency(self):
        _, set_signal = signal(1)

        def a_fn():
            set_signal(2)
            return b() + 1

        a = computed(a_fn)
        b = computed(lambda: a() + 1)

        with pytest.raises(CircularDependencyError, match="Circular dependency detected"):
            a()

    def test_self_reference(self):
        c = None
        c = Computed(lambda: c.get() + 1)
        with pytest.raises(CircularDependencyError) as info:
            c.get()
        assert info.value.node is c

    def test_cycle_error_leaves_nodes_retryable(self):
        """The re-entrancy guard is released, so reads fail the same way again."""
        a = Computed(lambda: b.get())
        b = Computed(lambda: a.get())
        for _ in range(2):
            with pytest.raises(CircularDependencyError):
                a.get()

    def test_evaluator_error_propagates_unchanged(self):
        def boom():
            raise KeyError("missing")

        c = Computed(boom)
        with pytest.raises(KeyError):
            c.get()

    def test_retry_after_error(self):
        fail = Signal(True)
        s = Signal(1)

        def fn():
            value = s.get()
            if fail.peek():
                raise RuntimeError("not yet")
            return value * 10

        c = Computed(fn)
        with pytest.raises(RuntimeError):
            c.get()
        assert c.dirty
        fail.set(False)
        assert c.get() == 10

    def test_error_discards_partial_dependencies(self):
        s = Signal(1)
        c = Computed(lambda: s.get() / 0)
        with pytest.raises(ZeroDivisionError):
            c.get()
        runs = []
        effect(lambda: runs.append(s.get()))
        s.set(2)
        assert flush_effects() == 1  # only the effect, c is not linked to s


class TestComputedDecorator:
    def test_decorator_factory(self):
        s = Signal(7)

        @computed
        def doubled():
            return s.get() * 2

        assert doubled.get() == 14
        s.set(3)
        assert doubled() == 6
