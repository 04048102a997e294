"""Tests for reindexing diagrams along shape functors and the comparison maps."""

import pytest

from categorical_limits.change_of_shape import (
    ShapeFinalityWitness,
    colimit_comparison_along,
    diagram_to_functor_witness,
    functor_to_diagram,
    limit_comparison_along,
    make_functor,
    reindex_diagram,
)
from categorical_limits.cones import Cone
from categorical_limits.core import (
    DiagramConfigurationError,
    EnumerationBoundExceeded,
    EnumerationGuard,
    FunctorLawViolation,
)
from categorical_limits.diagrams import SmallDiagram, finite_diagram_from_discrete
from categorical_limits.finset import FINSET, FinSetObj, finite_finset_category
from categorical_limits.limits import (
    FactorizationResult,
    colimit_of_diagram,
    finite_colimit_from_coproducts_and_coequalizers,
    limit_from_products_and_equalizers,
    limit_of_diagram,
)
from categorical_limits.shapes import FinitePoset, identity_arrow, poset_arrow, poset_shape


def _inclusion(target_poset, element):
    """{element} ↪ target_poset"""
    source = poset_shape(FinitePoset.from_relations([element], []))
    return make_functor(source, poset_shape(target_poset), {element: element},
                        lambda arrow: poset_arrow(arrow.source, arrow.target), name=f"ι_{element}")


class DecliningColimit:
    """Colimit stand-in whose universal property never factors."""

    def factor(self, candidate):
        return FactorizationResult(False)


@pytest.fixture
def pair_tip():
    return FinSetObj(((0, 0), (1, 0)))


@pytest.fixture
def glued():
    return FinSetObj((((0, 0), (0, 1), (1, 0)),))


@pytest.fixture
def include_a(poset_ab):
    return _inclusion(poset_ab, "a")


@pytest.fixture
def include_b(poset_ab):
    return _inclusion(poset_ab, "b")


class TestFunctors:
    """Test functors between finite shapes."""

    def test_inclusion_is_functorial(self, include_a):
        assert include_a.holds
        assert include_a.on_objects("a") == "a"
        assert include_a.on_morphisms(identity_arrow("a")) == identity_arrow("a")

    def test_law_failure_is_recorded(self, poset_ab):
        shape = poset_shape(poset_ab)
        collapsed = make_functor(shape, poset_shape(poset_ab), lambda i: i, lambda arrow: identity_arrow("a"))
        assert not collapsed.holds
        assert collapsed.analysis.issues()[0][0] == "identity"

    def test_functor_to_diagram(self, include_a):
        diagram = functor_to_diagram(include_a)
        assert isinstance(diagram, SmallDiagram)
        finite = diagram.materialise()
        assert finite.objects == ("a",)
        assert finite.on_objects("a") == "a"

    def test_diagram_to_functor_witness(self, constant_poset_diagram, two_point):
        witness = diagram_to_functor_witness(FINSET, constant_poset_diagram)
        assert witness.holds
        assert witness.source is constant_poset_diagram.shape
        assert witness.on_objects("a") == two_point


class TestReindexDiagram:
    """Test D∘u and the restriction of (co)cones along u."""

    def test_reindexed_objects(self, include_a, constant_poset_diagram, two_point):
        reindexing = reindex_diagram(FINSET, include_a, constant_poset_diagram)
        assert isinstance(reindexing.diagram, SmallDiagram)
        assert reindexing.objects == ("a",)
        assert reindexing.materialised.on_objects("a") == two_point

    def test_restrict_limit_cone(self, include_a, constant_poset_diagram):
        limit = limit_from_products_and_equalizers(
            FINSET, constant_poset_diagram, FINSET.factor_through_equalizer)
        restricted = reindex_diagram(FINSET, include_a, constant_poset_diagram).restrict_cone(limit.cone)
        assert restricted.analysis.holds
        assert set(restricted.cone.legs) == {"a"}
        assert FINSET.eq(restricted.cone.legs["a"], limit.cone.legs["a"])

    def test_restrict_colimit_cocone(self, include_b, constant_poset_diagram):
        colimit = finite_colimit_from_coproducts_and_coequalizers(FINSET, constant_poset_diagram, None)
        restricted = reindex_diagram(FINSET, include_b, constant_poset_diagram).restrict_cocone(colimit.cocone)
        assert restricted.analysis.holds
        assert FINSET.eq(restricted.cocone.legs["b"], colimit.cocone.legs["b"])

    def test_missing_leg_is_reported(self, include_a, constant_poset_diagram, one_point):
        cone = Cone(one_point, {"b": FINSET.id(one_point)})
        restricted = reindex_diagram(FINSET, include_a, constant_poset_diagram).restrict_cone(cone)
        assert not restricted.analysis.holds
        assert restricted.analysis.first_reason() == "leg a is missing"

    def test_target_object_absent_from_diagram(self, constant_poset_diagram):
        chain = FinitePoset.from_relations("abc", [("a", "b"), ("b", "c")])
        functor = _inclusion(chain, "a")
        with pytest.raises(DiagramConfigurationError, match="absent from the supplied diagram"):
            reindex_diagram(FINSET, functor, constant_poset_diagram)

    def test_law_violation_raises(self, poset_ab, constant_poset_diagram):
        shape = poset_shape(poset_ab)
        collapsed = make_functor(shape, poset_shape(poset_ab), lambda i: i, lambda arrow: identity_arrow("a"))
        with pytest.raises(FunctorLawViolation):
            reindex_diagram(FINSET, collapsed, constant_poset_diagram)

    def test_guard_on_source_shape(self, poset_ab, constant_poset_diagram):
        identity = make_functor(poset_shape(poset_ab), poset_shape(poset_ab), lambda i: i, lambda arrow: arrow)
        with pytest.raises(EnumerationBoundExceeded):
            reindex_diagram(FINSET, identity, constant_poset_diagram, guard=EnumerationGuard(max_arrows=2))


class TestLimitComparison:
    """Test lim D → lim(D∘u) for the inclusions of {a} and {b} into {a ≤ b}."""

    @pytest.fixture
    def base(self, two_point, one_point, pair_tip):
        return finite_finset_category([two_point, one_point, pair_tip])

    def _compare(self, base, functor, diagram, **kwargs):
        original = limit_of_diagram(base, diagram)
        reindexed = limit_of_diagram(base, reindex_diagram(base, functor, diagram).diagram)
        return limit_comparison_along(base, functor, diagram, original, reindexed, **kwargs)

    def test_minimum_gives_isomorphism(self, base, include_a, constant_poset_diagram):
        result = self._compare(base, include_a, constant_poset_diagram)
        assert result.factorization.holds
        assert result.comparison.isomorphism
        assert result.comparison.mediator.mapping == (0, 1)
        assert result.comparison.inverse.mapping == (0, 1)
        assert result.comparison.reason is None

    def test_maximum_is_not_an_isomorphism(self, base, include_b, constant_poset_diagram):
        result = self._compare(base, include_b, constant_poset_diagram)
        assert result.factorization.holds
        assert not result.comparison.isomorphism
        assert result.comparison.mediator.mapping == (0, 0)
        assert result.comparison.reason == (
            "comparison map is not an isomorphism and no finality witness was supplied")

    def test_finality_witness_explains_failure(self, base, include_b, constant_poset_diagram):
        silent = self._compare(base, include_b, constant_poset_diagram, finality=ShapeFinalityWitness(False))
        assert "non-finality" in silent.comparison.reason
        explained = self._compare(base, include_b, constant_poset_diagram,
                                  finality=ShapeFinalityWitness(False, "b is not initial"))
        assert explained.comparison.reason == "b is not initial"
        assert explained.comparison.witness.holds is False

    def test_canonical_limits_can_be_compared(self, include_a, constant_poset_diagram):
        original = limit_from_products_and_equalizers(
            FINSET, constant_poset_diagram, FINSET.factor_through_equalizer)
        reindexed = limit_from_products_and_equalizers(
            FINSET, reindex_diagram(FINSET, include_a, constant_poset_diagram).diagram,
            FINSET.factor_through_equalizer)
        result = limit_comparison_along(FINSET, include_a, constant_poset_diagram, original, reindexed)
        assert result.factorization.holds
        assert result.comparison.isomorphism

    def test_cone_of_another_diagram(self, include_a, constant_poset_diagram, two_point, one_point):
        discrete = finite_diagram_from_discrete(FINSET, ["i", "j"], {"i": two_point, "j": one_point})
        stranger = limit_from_products_and_equalizers(FINSET, discrete, FINSET.factor_through_equalizer)
        reindexed = limit_from_products_and_equalizers(
            FINSET, reindex_diagram(FINSET, include_a, constant_poset_diagram).diagram,
            FINSET.factor_through_equalizer)
        result = limit_comparison_along(FINSET, include_a, constant_poset_diagram, stranger, reindexed)
        assert not result.factorization.holds
        assert result.factorization.reason == "restricted cone fails the naturality checks for D∘u"
        assert result.comparison is None
        assert not result.restriction_analysis.holds


class TestColimitComparison:
    """Test colim(D∘u) → colim D for the same inclusions."""

    @pytest.fixture
    def base(self, two_point, one_point, glued):
        return finite_finset_category([two_point, one_point, glued])

    def _compare(self, base, functor, diagram, **kwargs):
        original = colimit_of_diagram(base, diagram)
        reindexed = colimit_of_diagram(base, reindex_diagram(base, functor, diagram).diagram)
        return colimit_comparison_along(base, functor, diagram, original, reindexed, **kwargs)

    def test_maximum_gives_isomorphism(self, base, include_b, constant_poset_diagram):
        result = self._compare(base, include_b, constant_poset_diagram)
        assert result.factorization.holds
        assert result.comparison.isomorphism
        assert result.comparison.mediator.mapping == (0,)
        assert result.comparison.inverse.mapping == (0,)

    def test_minimum_is_not_an_isomorphism(self, base, include_a, constant_poset_diagram):
        result = self._compare(base, include_a, constant_poset_diagram,
                               cofinality=ShapeFinalityWitness(False, "a is not cofinal"))
        assert not result.comparison.isomorphism
        assert result.comparison.mediator.mapping == (0, 0)
        assert result.comparison.reason == "a is not cofinal"

    def test_declining_colimit(self, base, include_b, constant_poset_diagram):
        original = colimit_of_diagram(base, constant_poset_diagram)
        result = colimit_comparison_along(base, include_b, constant_poset_diagram, original, DecliningColimit())
        assert not result.factorization.holds
        assert result.factorization.reason == "colimit of D∘u declined to factor the restricted cocone"
        assert result.comparison is None
