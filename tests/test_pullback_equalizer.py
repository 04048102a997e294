"""Tests for equalizers derived from pullbacks."""

import pytest

from categorical_limits.cones import Cone
from categorical_limits.core import DiagramConfigurationError
from categorical_limits.finset import FINSET, FinSetMor, FinSetPullbacks, finset_obj
from categorical_limits.limits import limit_from_products_and_equalizers
from categorical_limits.pullback_equalizer import make_equalizers_from_pullbacks


class FailingPullbacks(FinSetPullbacks):
    """Pullback calculator whose universal property is unavailable."""

    def factor_cone(self, target, cone):
        raise RuntimeError("pullback oracle offline")


@pytest.fixture
def bridge():
    return make_equalizers_from_pullbacks(FINSET, FINSET, FINSET, FinSetPullbacks())


class TestPullbackEqualizer:
    """Test the pullback-of-the-diagonal construction."""

    def test_equalizer_object(self, bridge, parallel_pair):
        witness = bridge.equalizer(parallel_pair["f"], parallel_pair["g"])
        assert len(witness.obj) == 1
        assert witness.equalize.cod == parallel_pair["X"]
        assert witness.equalize.mapping == (0,)
        assert len(bridge.registry) == 1

    def test_registration_is_idempotent(self, bridge, parallel_pair):
        bridge.equalizer(parallel_pair["f"], parallel_pair["g"])
        bridge.equalizer(parallel_pair["f"], parallel_pair["g"])
        assert len(bridge.registry) == 1

    def test_factor_fork(self, bridge, parallel_pair, one_point):
        f, g, x = parallel_pair["f"], parallel_pair["g"], parallel_pair["X"]
        witness = bridge.equalizer(f, g)
        fork = FinSetMor(one_point, x, (0,))
        result = bridge.factor_equalizer(f, g, witness.equalize, fork)
        assert result.factored
        assert FINSET.eq(FINSET.compose(witness.equalize, result.mediator), fork)

    def test_fork_that_does_not_equalize(self, bridge, parallel_pair, one_point):
        f, g, x = parallel_pair["f"], parallel_pair["g"], parallel_pair["X"]
        witness = bridge.equalizer(f, g)
        result = bridge.factor_equalizer(f, g, witness.equalize, FinSetMor(one_point, x, (1,)))
        assert not result.factored
        assert "does not equalize" in result.reason

    def test_unregistered_inclusion(self, bridge, parallel_pair):
        f, g, x = parallel_pair["f"], parallel_pair["g"], parallel_pair["X"]
        result = bridge.factor_equalizer(f, g, FINSET.id(x), FINSET.id(x))
        assert not result.factored
        assert "not produced" in result.reason

    def test_inclusion_for_another_pair(self, bridge, parallel_pair, one_point):
        f, g, x = parallel_pair["f"], parallel_pair["g"], parallel_pair["X"]
        witness = bridge.equalizer(f, g)
        fork = FinSetMor(one_point, x, (0,))
        result = bridge.factor_equalizer(g, f, witness.equalize, fork)
        assert not result.factored
        assert "different parallel pair" in result.reason

        swapped = bridge.equalizer(g, f)
        assert FINSET.eq(swapped.equalize, witness.equalize)
        assert len(bridge.registry) == 2
        result = bridge.factor_equalizer(g, f, swapped.equalize, fork)
        assert result.factored
        assert FINSET.eq(FINSET.compose(swapped.equalize, result.mediator), fork)

    def test_distinct_pairs_with_equal_equalizers(self, bridge, one_point):
        x, y = finset_obj(0, 1), finset_obj(0, 1, 2)
        f = FinSetMor(x, y, (0, 1))
        g = FinSetMor(x, y, (0, 2))
        other = FinSetMor(x, y, (0, 0))
        first = bridge.equalizer(f, g)
        second = bridge.equalizer(f, other)
        assert FINSET.eq(first.equalize, second.equalize)
        assert len(bridge.registry) == 2

        fork = FinSetMor(one_point, x, (0,))
        assert bridge.factor_equalizer(f, g, first.equalize, fork).factored
        assert bridge.factor_equalizer(f, other, second.equalize, fork).factored

    def test_fork_with_wrong_codomain(self, bridge, parallel_pair, one_point):
        f, g, y = parallel_pair["f"], parallel_pair["g"], parallel_pair["Y"]
        witness = bridge.equalizer(f, g)
        result = bridge.factor_equalizer(f, g, witness.equalize, FinSetMor(one_point, y, (0,)))
        assert not result.factored
        assert result.reason.startswith("fork lands in")

    def test_failing_calculator_is_normalised(self, parallel_pair, one_point):
        f, g, x = parallel_pair["f"], parallel_pair["g"], parallel_pair["X"]
        bridge = make_equalizers_from_pullbacks(FINSET, FINSET, FINSET, FailingPullbacks())
        witness = bridge.equalizer(f, g)
        result = bridge.factor_equalizer(f, g, witness.equalize, FinSetMor(one_point, x, (0,)))
        assert not result.factored
        assert "RuntimeError" in result.reason

    def test_non_parallel_pair(self, bridge, parallel_pair):
        f, y = parallel_pair["f"], parallel_pair["Y"]
        with pytest.raises(DiagramConfigurationError):
            bridge.equalizer(f, FINSET.id(y))

    def test_requires_terminal_object(self):
        with pytest.raises(DiagramConfigurationError):
            make_equalizers_from_pullbacks(FINSET, object(), FINSET, FinSetPullbacks())


class TestBridgeAsLimitStructure:
    """Test plugging the bridge into the canonical limit construction."""

    def test_limit_of_parallel_pair(self, bridge, parallel_pair, one_point):
        x, y = parallel_pair["X"], parallel_pair["Y"]
        limit = limit_from_products_and_equalizers(
            FINSET, parallel_pair["diagram"], bridge.factor_equalizer, equalizers=bridge)
        assert len(limit.tip) == 1

        candidate = Cone(one_point, {"s": FinSetMor(one_point, x, (0,)), "t": FinSetMor(one_point, y, (0,))})
        result = limit.factor(candidate)
        assert result.factored
        assert FINSET.eq(FINSET.compose(limit.cone.legs["s"], result.mediator), candidate.legs["s"])

    def test_limit_of_poset_diagram(self, bridge, constant_poset_diagram, two_point, one_point):
        limit = limit_from_products_and_equalizers(
            FINSET, constant_poset_diagram, bridge.factor_equalizer, equalizers=bridge)
        assert len(limit.tip) == 2
        candidate = Cone(finset_obj("z"), {
            "a": FinSetMor(finset_obj("z"), two_point, (1,)),
            "b": FinSetMor(finset_obj("z"), one_point, (0,)),
        })
        assert limit.factor(candidate).factored
