"""Shared fixtures for the limit engine tests."""

import logging

import pytest

from categorical_limits.diagrams import finite_diagram_from_poset, make_finite_diagram
from categorical_limits.finset import FINSET, finset_map, finset_obj
from categorical_limits.shapes import FinitePoset, parallel_pair_shape


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Keep library logging quiet during tests."""
    logging.getLogger().setLevel(logging.WARNING)
    logging.getLogger("categorical_limits").setLevel(logging.WARNING)


@pytest.fixture
def two_point():
    return finset_obj(1, 2)


@pytest.fixture
def one_point():
    return finset_obj(1)


@pytest.fixture
def poset_ab():
    return FinitePoset.from_relations(["a", "b"], [("a", "b")])


@pytest.fixture
def constant_poset_diagram(poset_ab, two_point, one_point):
    """{a ≤ b} with a ↦ {1, 2}, b ↦ {1} and the constant cover map."""
    constant = finset_map(two_point, one_point, lambda _: 1)
    return finite_diagram_from_poset(
        FINSET, poset_ab, {"a": two_point, "b": one_point}, {("a", "b"): constant})


@pytest.fixture
def projection_poset_diagram(poset_ab, two_point):
    """{a ≤ b} with a ↦ {1, 2}, b ↦ {p, q}, cover sending everything to p."""
    target = finset_obj("p", "q")
    cover = finset_map(two_point, target, lambda _: "p")
    return finite_diagram_from_poset(
        FINSET, poset_ab, {"a": two_point, "b": target}, {("a", "b"): cover})


@pytest.fixture
def parallel_pair():
    """X ⇉ Y with f = x_i ↦ y_i and g constant at y0."""
    x = finset_obj("x0", "x1")
    y = finset_obj("y0", "y1")
    f = finset_map(x, y, {"x0": "y0", "x1": "y1"})
    g = finset_map(x, y, lambda _: "y0")
    shape = parallel_pair_shape("s", "t", "f", "g")
    images = {"f": f, "g": g}

    def on_morphisms(arrow):
        if arrow.is_identity:
            return FINSET.id(x if arrow.source == "s" else y)
        return images[arrow.name]

    diagram = make_finite_diagram(shape, {"s": x, "t": y}, on_morphisms, base=FINSET)
    return {"X": x, "Y": y, "f": f, "g": g, "diagram": diagram}
