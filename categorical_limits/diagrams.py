# -*- coding: utf-8 -*-
"""
图表 D: J → C

三种形态:
- FiniteDiagram: 显式形状范畴 + 对象/箭头赋值, 构造时立即物化并 (可选) 验证函子性
- SmallDiagram: 索引由 SmallIndex 按需物化, 受 EnumerationGuard 约束
- Diagram: 仅一组 DiagramArrow 的平面图表 (无形状范畴)

函子性:
    D(id_i) = id_{D(i)}
    D(g∘f) = D(g)∘D(f)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .core import (
    DiagramConfigurationError,
    EnumerationGuard,
    Equality,
    FiniteCategoryData,
    FunctorLawViolation,
    SmallIndex,
    resolve_equality,
)
from .shapes import FinitePoset, discrete_shape, poset_shape

_logger = logging.getLogger(__name__)

Assignment = Union[Mapping[Any, Any], Callable[[Any], Any]]


def as_assignment(value: Assignment, label: str) -> Callable[[Any], Any]:
    """把映射或可调用对象统一为查找函数; 映射缺键视为配置错误"""
    if isinstance(value, Mapping):
        def lookup(key: Any) -> Any:
            try:
                return value[key]
            except KeyError:
                raise DiagramConfigurationError(f"{label} has no entry for {key!r}") from None
        return lookup
    if callable(value):
        return value
    raise TypeError(f"{label} must be a mapping or a callable, got {type(value).__name__}")


# ============================================================================
# Section 1: 图表数据结构
# ============================================================================


@dataclass(frozen=True)
class DiagramArrow:
    """图表中一条箭头的像: source → target 处的态射"""
    source: Any
    target: Any
    morphism: Any


@dataclass(frozen=True, eq=False)
class FiniteDiagram:
    """有限图表 (不可变)。on_objects / on_morphisms 查询构造时物化的表。"""
    shape: FiniteCategoryData
    on_objects: Callable[[Any], Any]
    on_morphisms: Callable[[Any], Any]
    name: str = "D"

    @property
    def objects(self) -> Tuple[Any, ...]:
        return self.shape.objects

    @property
    def arrows(self) -> Tuple[Any, ...]:
        return self.shape.arrows

    def diagram_arrows(self) -> List[DiagramArrow]:
        return [
            DiagramArrow(self.shape.dom(a), self.shape.cod(a), self.on_morphisms(a))
            for a in self.shape.arrows
        ]


@dataclass(frozen=True, eq=False)
class SmallDiagram:
    """小图表: 形状的对象/箭头由 SmallIndex 按需给出"""
    shape: Any
    object_index: SmallIndex
    on_objects: Callable[[Any], Any]
    arrow_index: SmallIndex
    on_morphisms: Callable[[Any], Any]
    name: str = "D"

    def materialise(self, guard: Optional[EnumerationGuard] = None) -> FiniteDiagram:
        """在护栏内物化为 FiniteDiagram"""
        guard = guard or EnumerationGuard()
        objects = self.object_index.materialise(guard.max_objects)
        arrows = self.arrow_index.materialise(guard.max_arrows)
        shape = FiniteCategoryData(
            objects, arrows,
            self.shape.id, self.shape.compose, self.shape.dom, self.shape.cod,
            eq=getattr(self.shape, "eq", None),
            name=getattr(self.shape, "name", self.name),
        )
        return make_finite_diagram(shape, self.on_objects, self.on_morphisms, name=self.name)


@dataclass(frozen=True)
class Diagram:
    """平面图表: 只有箭头像, 无形状范畴"""
    arrows: Tuple[DiagramArrow, ...] = ()


DiagramLike = Union[FiniteDiagram, SmallDiagram, Diagram]


def enumerate_diagram_arrows(diagram: DiagramLike,
                             guard: Optional[EnumerationGuard] = None) -> List[DiagramArrow]:
    if isinstance(diagram, FiniteDiagram):
        return diagram.diagram_arrows()
    if isinstance(diagram, SmallDiagram):
        return diagram.materialise(guard).diagram_arrows()
    if isinstance(diagram, Diagram):
        return list(diagram.arrows)
    raise TypeError(f"Unsupported diagram type {type(diagram).__name__}")


def as_finite_diagram(diagram: DiagramLike, guard: Optional[EnumerationGuard] = None) -> FiniteDiagram:
    if isinstance(diagram, FiniteDiagram):
        return diagram
    if isinstance(diagram, SmallDiagram):
        return diagram.materialise(guard)
    raise TypeError(f"{type(diagram).__name__} has no shape category to materialise")


# ============================================================================
# Section 2: 函子性分析
# ============================================================================


@dataclass(frozen=True)
class DiagramIdentityDiagnostic:
    index: Any
    holds: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class DiagramArrowDiagnostic:
    arrow: Any
    holds: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class DiagramCompositionDiagnostic:
    first: Any
    second: Any
    holds: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class DiagramNaturalityAnalysis:
    identity_diagnostics: Tuple[DiagramIdentityDiagnostic, ...]
    arrow_diagnostics: Tuple[DiagramArrowDiagnostic, ...]
    composition_diagnostics: Tuple[DiagramCompositionDiagnostic, ...]
    holds: bool

    def issues(self) -> List[Tuple[str, str]]:
        """(law, reason) 列表, 顺序: 恒等 → 端点 → 复合"""
        found: List[Tuple[str, str]] = []
        found.extend(("identity", d.reason) for d in self.identity_diagnostics if not d.holds)
        found.extend(("endpoint", d.reason) for d in self.arrow_diagnostics if not d.holds)
        found.extend(("composition", d.reason) for d in self.composition_diagnostics if not d.holds)
        return found


@dataclass(frozen=True)
class FiniteDiagramCheckResult:
    holds: bool
    issues: Tuple[str, ...] = ()


def analyze_diagram_naturality(base: Any, diagram: FiniteDiagram,
                               eq: Optional[Equality] = None) -> DiagramNaturalityAnalysis:
    """逐对象/逐箭头/逐可复合对检查函子律, 不短路"""
    eq = resolve_equality(base, eq)
    shape = diagram.shape

    identity_diagnostics: List[DiagramIdentityDiagnostic] = []
    for index in shape.objects:
        image = diagram.on_morphisms(shape.id(index))
        expected = base.id(diagram.on_objects(index))
        if eq(image, expected):
            identity_diagnostics.append(DiagramIdentityDiagnostic(index, True))
        else:
            identity_diagnostics.append(DiagramIdentityDiagnostic(
                index, False, f"identity at {index!r} is not sent to the identity of its image"))

    arrow_diagnostics: List[DiagramArrowDiagnostic] = []
    for arrow in shape.arrows:
        image = diagram.on_morphisms(arrow)
        expected_dom = diagram.on_objects(shape.dom(arrow))
        expected_cod = diagram.on_objects(shape.cod(arrow))
        if base.dom(image) == expected_dom and base.cod(image) == expected_cod:
            arrow_diagnostics.append(DiagramArrowDiagnostic(arrow, True))
        else:
            arrow_diagnostics.append(DiagramArrowDiagnostic(
                arrow, False, f"image of {arrow!r} has mismatched endpoints"))

    composition_diagnostics: List[DiagramCompositionDiagnostic] = []
    for f in shape.arrows:
        for g in shape.arrows:
            if shape.cod(f) != shape.dom(g):
                continue
            composite = diagram.on_morphisms(shape.compose(g, f))
            try:
                expected = base.compose(diagram.on_morphisms(g), diagram.on_morphisms(f))
            except ValueError as exc:
                composition_diagnostics.append(DiagramCompositionDiagnostic(
                    f, g, False, f"images of {g!r}∘{f!r} are not composable: {exc}"))
                continue
            if eq(composite, expected):
                composition_diagnostics.append(DiagramCompositionDiagnostic(f, g, True))
            else:
                composition_diagnostics.append(DiagramCompositionDiagnostic(
                    f, g, False, f"composition {g!r}∘{f!r} is not preserved"))

    holds = (all(d.holds for d in identity_diagnostics)
             and all(d.holds for d in arrow_diagnostics)
             and all(d.holds for d in composition_diagnostics))
    return DiagramNaturalityAnalysis(
        tuple(identity_diagnostics), tuple(arrow_diagnostics), tuple(composition_diagnostics), holds)


def check_finite_diagram_functoriality(base: Any, diagram: FiniteDiagram,
                                       eq: Optional[Equality] = None) -> FiniteDiagramCheckResult:
    analysis = analyze_diagram_naturality(base, diagram, eq)
    return FiniteDiagramCheckResult(analysis.holds, tuple(reason for _, reason in analysis.issues()))


# ============================================================================
# Section 3: 构造
# ============================================================================


def make_finite_diagram(shape: FiniteCategoryData,
                        on_objects: Assignment,
                        on_morphisms: Assignment,
                        base: Any = None,
                        eq: Optional[Equality] = None,
                        name: str = "D") -> FiniteDiagram:
    """立即求值每个对象/箭头的像并冻结; 给定 base 时验证函子性。

    Raises:
        DiagramConfigurationError: 赋值缺项
        FunctorLawViolation: 给定 base 且函子律失败
    """
    object_lookup = as_assignment(on_objects, "on_objects")
    arrow_lookup = as_assignment(on_morphisms, "on_morphisms")

    object_table: Dict[Any, Any] = {i: object_lookup(i) for i in shape.objects}
    arrow_table: Tuple[Any, ...] = tuple(arrow_lookup(a) for a in shape.arrows)

    def frozen_objects(index: Any) -> Any:
        try:
            return object_table[index]
        except KeyError:
            raise DiagramConfigurationError(f"{index!r} is not an object of diagram {name}") from None

    def frozen_morphisms(arrow: Any) -> Any:
        position = shape.index_of(arrow)
        if position is None:
            raise DiagramConfigurationError(f"{arrow!r} is not an arrow of diagram {name}")
        return arrow_table[position]

    diagram = FiniteDiagram(shape, frozen_objects, frozen_morphisms, name)
    if base is not None:
        analysis = analyze_diagram_naturality(base, diagram, eq)
        if not analysis.holds:
            law, reason = analysis.issues()[0]
            raise FunctorLawViolation(name, law, reason)
    return diagram


def finite_diagram_from_discrete(base: Any, indices: Iterable[Any], on_objects: Assignment,
                                 eq: Optional[Equality] = None, name: str = "D") -> FiniteDiagram:
    """离散图表: 恒等箭头映到恒等"""
    lookup = as_assignment(on_objects, "on_objects")
    shape = discrete_shape(indices)
    return make_finite_diagram(shape, lookup, lambda arrow: base.id(lookup(arrow.source)),
                               base=base, eq=eq, name=name)


def finite_diagram_from_poset(base: Any, poset: FinitePoset, on_objects: Assignment,
                              covers: Mapping[Tuple[Any, Any], Any],
                              eq: Optional[Equality] = None, name: str = "D") -> FiniteDiagram:
    """由覆盖箭头的像生成偏序集图表。

    a ≤ b 的像沿最短覆盖路径复合得到; 不同路径的不一致由函子性验证拒绝。
    """
    lookup = as_assignment(on_objects, "on_objects")
    edges = list(covers)
    for (a, b), morphism in covers.items():
        if a == b or not poset.leq(a, b):
            raise DiagramConfigurationError(f"Cover {a!r}→{b!r} is not a strict relation of the poset")
        if base.dom(morphism) != lookup(a) or base.cod(morphism) != lookup(b):
            raise DiagramConfigurationError(f"Cover {a!r}→{b!r} has an image with mismatched endpoints")

    composites: Dict[Tuple[Any, Any], Any] = {}
    for a in poset.elements:
        for b in poset.elements:
            if not poset.leq(a, b):
                continue
            if a == b:
                composites[(a, b)] = base.id(lookup(a))
                continue
            path = poset.cover_path(a, b, edges)
            if path is None:
                raise DiagramConfigurationError(f"Cover data does not generate the arrow {a!r}→{b!r}")
            accumulated = covers[path[0]]
            for step in path[1:]:
                accumulated = base.compose(covers[step], accumulated)
            composites[(a, b)] = accumulated

    shape = poset_shape(poset)
    return make_finite_diagram(shape, lookup,
                               lambda arrow: composites[(arrow.source, arrow.target)],
                               base=base, eq=eq, name=name)


def constant_diagram(shape: FiniteCategoryData, base: Any, obj: Any, name: str = "Δ") -> FiniteDiagram:
    identity = base.id(obj)
    return make_finite_diagram(shape, lambda _: obj, lambda _: identity, name=name)


def full_subdiagram(diagram: FiniteDiagram, indices: Iterable[Any], name: Optional[str] = None) -> FiniteDiagram:
    """限制到给定对象上的满子图表"""
    shape = diagram.shape
    kept = tuple(indices)
    for index in kept:
        if not shape.has_object(index):
            raise DiagramConfigurationError(f"{index!r} is not an object of diagram {diagram.name}")
    arrows = [a for a in shape.arrows if shape.dom(a) in kept and shape.cod(a) in kept]
    sub_shape = FiniteCategoryData(kept, arrows, shape.id, shape.compose, shape.dom, shape.cod,
                                   eq=shape.eq, name=f"{shape.name}|{len(kept)}")
    return make_finite_diagram(sub_shape, diagram.on_objects, diagram.on_morphisms,
                               name=name or diagram.name)


@dataclass(frozen=True)
class PathComposite:
    defined: bool
    composite: Any = None
    source: Any = None
    target: Any = None
    reason: Optional[str] = None


def compose_finite_diagram_path(base: Any, diagram: FiniteDiagram, path: Sequence[Any],
                                start: Any = None) -> PathComposite:
    """沿形状箭头路径 (按施加顺序) 复合图表像。空路径需要 start。"""
    shape = diagram.shape
    if not path:
        if start is None:
            return PathComposite(False, reason="empty path requires a start object")
        return PathComposite(True, base.id(diagram.on_objects(start)), start, start)
    if start is not None and shape.dom(path[0]) != start:
        return PathComposite(False, reason=f"path starts at {shape.dom(path[0])!r} instead of {start!r}")
    accumulated = diagram.on_morphisms(path[0])
    for previous, current in zip(path, path[1:]):
        if shape.cod(previous) != shape.dom(current):
            return PathComposite(False, reason=f"path breaks between {previous!r} and {current!r}")
        accumulated = base.compose(diagram.on_morphisms(current), accumulated)
    return PathComposite(True, accumulated, shape.dom(path[0]), shape.cod(path[-1]))


__all__ = [
    "Assignment",
    "as_assignment",
    "DiagramArrow",
    "FiniteDiagram",
    "SmallDiagram",
    "Diagram",
    "DiagramLike",
    "enumerate_diagram_arrows",
    "as_finite_diagram",
    "DiagramIdentityDiagnostic",
    "DiagramArrowDiagnostic",
    "DiagramCompositionDiagnostic",
    "DiagramNaturalityAnalysis",
    "FiniteDiagramCheckResult",
    "analyze_diagram_naturality",
    "check_finite_diagram_functoriality",
    "make_finite_diagram",
    "finite_diagram_from_discrete",
    "finite_diagram_from_poset",
    "constant_diagram",
    "full_subdiagram",
    "PathComposite",
    "compose_finite_diagram_path",
]
