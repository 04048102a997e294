"""Tests for generated subcategories, diagram closure and poset saturation."""

import pytest

from categorical_limits.core import (
    AmbientMembershipError,
    ClosureExtensionError,
    EndpointMismatchError,
    InconsistentCompositeError,
)
from categorical_limits.diagram_closure import close_finite_diagram, generate_subcategory, saturate
from categorical_limits.diagrams import check_finite_diagram_functoriality
from categorical_limits.finset import FINSET, FinSetMor, finset_obj
from categorical_limits.shapes import FinitePoset, ShapeArrow, poset_arrow, poset_shape


@pytest.fixture
def square():
    return FinitePoset.from_relations(
        "abcd", [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")])


@pytest.fixture
def bit():
    return finset_obj(0, 1)


def _square_seeds(bit, cd_mapping):
    keep = FinSetMor(bit, bit, (0, 1))
    return [
        (poset_arrow("a", "b"), keep),
        (poset_arrow("b", "d"), keep),
        (poset_arrow("a", "c"), keep),
        (poset_arrow("c", "d"), FinSetMor(bit, bit, cd_mapping)),
    ]


class TestGenerateSubcategory:
    """Test the identity/composition closure of seed data."""

    def test_objects_only(self, square):
        """A lone object generates just its identity."""
        closure = generate_subcategory(poset_shape(square), objects=["a"])
        assert closure.objects == ("a",)
        assert closure.arrows == (poset_arrow("a", "a"),)

    def test_composites_are_added(self, square):
        """Two composable covers generate their composite."""
        closure = generate_subcategory(
            poset_shape(square), arrows=[poset_arrow("a", "b"), poset_arrow("b", "d")])
        assert set(closure.objects) == {"a", "b", "d"}
        assert closure.has_arrow(poset_arrow("a", "d"))
        assert len(closure.arrows) == 6

    def test_absent_seed_arrow(self, square):
        with pytest.raises(AmbientMembershipError):
            generate_subcategory(poset_shape(square), arrows=[ShapeArrow("a", "z", "≤")])

    def test_absent_seed_object(self, square):
        with pytest.raises(AmbientMembershipError):
            generate_subcategory(poset_shape(square), objects=["z"])


class TestCloseFiniteDiagram:
    """Test extension of cover images to the whole closure."""

    def test_commuting_square_closes(self, square, bit):
        closed = close_finite_diagram(
            poset_shape(square), FINSET, lambda _: bit, _square_seeds(bit, (0, 1)))
        assert len(closed.objects) == 4
        assert len(closed.arrows) == 9
        diagonal = closed.on_morphisms(poset_arrow("a", "d"))
        assert FINSET.eq(diagonal, FINSET.id(bit))

    def test_closure_is_idempotent(self, square, bit):
        """Closing an already closed diagram keeps the same object and arrow sets."""
        ambient = poset_shape(square)
        first = close_finite_diagram(ambient, FINSET, lambda _: bit, _square_seeds(bit, (0, 1)))
        second = close_finite_diagram(ambient, FINSET, first.on_objects, first.arrow_lookup())
        assert len(second.objects) == len(first.objects)
        assert len(second.arrows) == len(first.arrows)

    def test_disagreeing_paths_raise(self, square, bit):
        """Two routes a→b→d and a→c→d with different images are rejected."""
        with pytest.raises(InconsistentCompositeError) as info:
            close_finite_diagram(poset_shape(square), FINSET, lambda _: bit, _square_seeds(bit, (1, 0)))
        assert info.value.arrow == poset_arrow("a", "d")

    def test_endpoint_mismatch(self, square, bit):
        single = finset_obj(0)
        seeds = [(poset_arrow("a", "b"), FinSetMor(single, bit, (0,)))]
        with pytest.raises(EndpointMismatchError):
            close_finite_diagram(poset_shape(square), FINSET, lambda _: bit, seeds)

    def test_seed_outside_ambient(self, square, bit):
        seeds = [(ShapeArrow("a", "z", "≤"), FINSET.id(bit))]
        with pytest.raises(AmbientMembershipError):
            close_finite_diagram(poset_shape(square), FINSET, lambda _: bit, seeds)

    def test_as_finite_diagram_is_functorial(self, square, bit):
        closed = close_finite_diagram(
            poset_shape(square), FINSET, lambda _: bit, _square_seeds(bit, (0, 1)))
        result = check_finite_diagram_functoriality(FINSET, closed.as_finite_diagram())
        assert result.holds
        assert result.issues == ()


class TestSaturate:
    """Test lazy poset saturation along shortest cover paths."""

    @pytest.fixture
    def chain(self):
        return FinitePoset.from_relations("abc", [("a", "b"), ("b", "c")])

    def test_composes_along_covers(self, chain):
        a, b, c = finset_obj(1, 2), finset_obj("p", "q"), finset_obj("z")
        ab = FinSetMor(a, b, (0, 1))
        bc = FinSetMor(b, c, (0, 0))
        saturated = saturate(chain, {"a": a, "b": b, "c": c}, {("a", "b"): ab, ("b", "c"): bc}, FINSET)
        assert FINSET.eq(saturated.arrow("a", "c"), FINSET.compose(bc, ab))
        assert FINSET.eq(saturated.arrow("b", "b"), FINSET.id(b))
        assert saturated.arrow("c", "a") is None

    def test_materialised_diagram_is_functorial(self, chain):
        a = finset_obj(0, 1)
        swap = FinSetMor(a, a, (1, 0))
        saturated = saturate(chain, lambda _: a, {("a", "b"): swap, ("b", "c"): swap}, FINSET)
        diagram = saturated.materialise()
        assert check_finite_diagram_functoriality(FINSET, diagram).holds
        assert FINSET.eq(diagram.on_morphisms(poset_arrow("a", "c")), FINSET.id(a))

    def test_missing_cover_cannot_extend(self, chain):
        a = finset_obj(0)
        saturated = saturate(chain, lambda _: a, {("a", "b"): FINSET.id(a)}, FINSET)
        with pytest.raises(ClosureExtensionError):
            saturated.arrow("a", "c")

    def test_cover_against_order(self, chain):
        a = finset_obj(0)
        with pytest.raises(AmbientMembershipError):
            saturate(chain, lambda _: a, {("c", "a"): FINSET.id(a)}, FINSET)
