"""Tests for canonical colimits and the certified colimit_of_diagram."""

import pytest

from categorical_limits.cones import Cocone
from categorical_limits.core import LimitInvariantViolation
from categorical_limits.diagrams import finite_diagram_from_discrete, make_finite_diagram
from categorical_limits.finset import FINSET, FinSetMor, FinSetObj, finite_finset_category, finset_obj
from categorical_limits.limits import (
    FactorizationResult,
    colimit_of_diagram,
    finite_colimit_from_coproducts_and_coequalizers,
)
from categorical_limits.shapes import empty_shape


@pytest.fixture
def glued():
    """Cotip of the constant {a ≤ b} diagram: all three summand elements in one class."""
    return FinSetObj((((0, 0), (0, 1), (1, 0)),))


class TestCanonicalColimit:
    """Test the coproduct + coequalizer construction in the full FinSet."""

    def test_parallel_pair_coequalizer(self, parallel_pair):
        colimit = finite_colimit_from_coproducts_and_coequalizers(
            FINSET, parallel_pair["diagram"], FINSET.factor_through_coequalizer)
        assert colimit.cotip == FinSetObj((((0, 0), (0, 1), (1, 0), (1, 1)),))
        assert len(colimit.constraints) == 2

        y = parallel_pair["Y"]
        collapse = FinSetMor(y, y, (1, 1))
        candidate = Cocone(y, {"s": FINSET.compose(collapse, parallel_pair["f"]), "t": collapse})
        result = colimit.factor(candidate)
        assert result.factored
        assert result.mediator.mapping == (1,)

    def test_coproduct(self, two_point):
        single = finset_obj("u")
        diagram = finite_diagram_from_discrete(FINSET, ["i", "j"], {"i": two_point, "j": single})
        colimit = finite_colimit_from_coproducts_and_coequalizers(FINSET, diagram, None)
        assert colimit.pair is None
        assert colimit.cotip.elements == ((0, 0), (0, 1), (1, 0))
        assert colimit.cocone.legs["j"].mapping == (2,)

    def test_noncommuting_candidate(self, parallel_pair):
        y, f = parallel_pair["Y"], parallel_pair["f"]
        colimit = finite_colimit_from_coproducts_and_coequalizers(
            FINSET, parallel_pair["diagram"], FINSET.factor_through_coequalizer)
        result = colimit.factor(Cocone(y, {"s": f, "t": FINSET.id(y)}))
        assert not result.factored
        assert result.reason == "leg s does not commute with arrow s→t"

    def test_missing_oracle(self, constant_poset_diagram, one_point):
        colimit = finite_colimit_from_coproducts_and_coequalizers(FINSET, constant_poset_diagram, None)
        candidate = Cocone(one_point, {
            "a": colimit.diagram.on_morphisms(colimit.diagram.arrows[1]),
            "b": FINSET.id(one_point),
        })
        result = colimit.factor(candidate)
        assert not result.factored
        assert result.reason == "no coequalizer factorizer was supplied"

    def test_empty_diagram_is_initial(self, two_point):
        colimit = finite_colimit_from_coproducts_and_coequalizers(
            FINSET, make_finite_diagram(empty_shape(), {}, {}), None)
        assert colimit.cotip == FINSET.initial_obj
        result = colimit.factor(Cocone(two_point, {}))
        assert result.factored
        assert FINSET.eq(result.mediator, FINSET.initiate(two_point))


class TestColimitOfDiagram:
    """Test the certified dual construction."""

    def test_constant_poset(self, constant_poset_diagram, glued, two_point, one_point):
        base = finite_finset_category([two_point, one_point, glued])
        result = colimit_of_diagram(base, constant_poset_diagram,
                                    factor_coequalizer=base.factor_through_coequalizer)
        assert result.cocone.cotip == glued
        assert result.initiality.holds
        assert len(result.cocone_category) == 4

        candidate = Cocone(two_point, {
            "a": FinSetMor(two_point, two_point, (1, 1)),
            "b": FinSetMor(one_point, two_point, (1,)),
        })
        factored = result.factor(candidate)
        assert factored.holds
        assert factored.mediator.mapping == (1,)

    def test_parallel_pair(self, parallel_pair):
        quotient = FinSetObj((((0, 0), (0, 1), (1, 0), (1, 1)),))
        base = finite_finset_category([parallel_pair["X"], parallel_pair["Y"], quotient])
        result = colimit_of_diagram(base, parallel_pair["diagram"],
                                    factor_coequalizer=base.factor_through_coequalizer)
        assert len(result.cocone_category) == 5
        own = result.factor(result.cocone)
        assert own.holds
        assert FINSET.eq(own.mediator, FINSET.id(quotient))

    def test_coproduct_is_initial(self, two_point):
        single = finset_obj("u")
        summed = FinSetObj(((0, 0), (0, 1), (1, 0)))
        base = finite_finset_category([two_point, single, summed])
        assert len(base.arrows) == 56
        diagram = finite_diagram_from_discrete(base, ["i", "j"], {"i": two_point, "j": single})
        result = colimit_of_diagram(base, diagram)
        assert result.cocone.cotip == summed
        assert result.initiality.holds

    def test_lying_oracle_raises(self, constant_poset_diagram, glued, two_point, one_point):
        base = finite_finset_category([two_point, one_point, glued])

        def liar(left, right, coequalizer, fork):
            return FactorizationResult(True, FinSetMor(coequalizer.cod, fork.cod, (0,) * len(coequalizer.cod)))

        result = colimit_of_diagram(base, constant_poset_diagram, factor_coequalizer=liar)
        candidate = Cocone(two_point, {
            "a": FinSetMor(two_point, two_point, (1, 1)),
            "b": FinSetMor(one_point, two_point, (1,)),
        })
        with pytest.raises(LimitInvariantViolation):
            result.factor(candidate)

    def test_candidate_outside_base(self, constant_poset_diagram, glued, two_point, one_point):
        base = finite_finset_category([two_point, one_point, glued])
        result = colimit_of_diagram(base, constant_poset_diagram)
        stranger = finset_obj("z")
        candidate = Cocone(stranger, {
            "a": FinSetMor(two_point, stranger, (0, 0)),
            "b": FinSetMor(one_point, stranger, (0,)),
        })
        verdict = result.factor(candidate)
        assert not verdict.holds
        assert "is not an object of the cocone category" in verdict.reason

    def test_non_initial_canonical_cocone(self, constant_poset_diagram, two_point, one_point):
        base = finite_finset_category([two_point, one_point])
        with pytest.raises(LimitInvariantViolation):
            colimit_of_diagram(base, constant_poset_diagram)
