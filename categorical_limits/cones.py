# -*- coding: utf-8 -*-
"""
锥 / 余锥 及其对图表的验证

锥 (tip, legs) 于 D: 对每个 i, legs[i]: tip → D(i);
对图表中每条箭头 m: i → j, 要求 legs[j] = m ∘ legs[i]。
余锥对偶: legs[i]: D(i) → cotip, legs[j] ∘ m = legs[i]。

analyze_* 给出穷举 (不短路) 的逐对象/逐腿/逐箭头诊断;
validate_* 只返回第一条失败原因, 供 factor 等调用点做门控。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .core import EnumerationGuard, Equality, resolve_equality
from .diagram_closure import close_finite_diagram
from .diagrams import (
    Assignment,
    DiagramArrow,
    FiniteDiagram,
    SmallDiagram,
    as_assignment,
    enumerate_diagram_arrows,
)

_logger = logging.getLogger(__name__)


# ============================================================================
# Section 1: 锥与余锥
# ============================================================================


@dataclass(frozen=True, eq=False)
class Cone:
    """锥: 顶点 tip + 腿族 legs (索引 → 态射)"""
    tip: Any
    legs: Mapping[Any, Any]
    diagram: Any = None

    def __post_init__(self):
        object.__setattr__(self, "legs", MappingProxyType(dict(self.legs)))

    def leg(self, index: Any) -> Any:
        return self.legs[index]


@dataclass(frozen=True, eq=False)
class Cocone:
    """余锥: 余顶点 cotip + 腿族 legs (索引 → 态射)"""
    cotip: Any
    legs: Mapping[Any, Any]
    diagram: Any = None

    def __post_init__(self):
        object.__setattr__(self, "legs", MappingProxyType(dict(self.legs)))

    def leg(self, index: Any) -> Any:
        return self.legs[index]


# ============================================================================
# Section 2: 结构化诊断
# ============================================================================


@dataclass(frozen=True)
class ConeObjectDiagnostic:
    """索引对象的存在性与赋值一致性"""
    index: Any
    expected: Any
    present: bool
    holds: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ConeLegDiagnostic:
    """单条腿的定义域 / 陪域检查"""
    index: Any
    holds: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ConeArrowNaturality:
    """单条图表箭头的交换性检查"""
    source: Any
    target: Any
    morphism: Any
    holds: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ConeNaturalityAnalysis:
    object_diagnostics: Tuple[ConeObjectDiagnostic, ...]
    leg_diagnostics: Tuple[ConeLegDiagnostic, ...]
    arrow_diagnostics: Tuple[ConeArrowNaturality, ...]
    holds: bool

    def reasons(self) -> List[str]:
        found = [d.reason for d in self.object_diagnostics if not d.holds]
        found += [d.reason for d in self.leg_diagnostics if not d.holds]
        found += [d.reason for d in self.arrow_diagnostics if not d.holds]
        return found

    def first_reason(self) -> Optional[str]:
        reasons = self.reasons()
        return reasons[0] if reasons else None


@dataclass(frozen=True)
class ConeValidationResult:
    valid: bool
    reason: Optional[str] = None


def _diagram_members(diagram: Any, guard: Optional[EnumerationGuard]) -> Optional[Tuple[Any, ...]]:
    if isinstance(diagram, FiniteDiagram):
        return diagram.objects
    if isinstance(diagram, SmallDiagram):
        return diagram.materialise(guard).objects
    return None


def _analyze(category: Any, eq: Equality, indices: Sequence[Any], on_objects: Callable[[Any], Any],
             apex: Any, legs: Mapping[Any, Any], diagram: Any, dual: bool,
             guard: Optional[EnumerationGuard]) -> ConeNaturalityAnalysis:
    index_list = list(indices)
    members = _diagram_members(diagram, guard)
    apex_label = "cocone cotip" if dual else "cone tip"

    object_diagnostics: List[ConeObjectDiagnostic] = []
    for index in index_list:
        expected = on_objects(index)
        if members is not None and index not in members:
            object_diagnostics.append(ConeObjectDiagnostic(
                index, expected, False, False, f"index {index} is absent from the diagram"))
            continue
        if members is not None and diagram.on_objects(index) != expected:
            object_diagnostics.append(ConeObjectDiagnostic(
                index, expected, True, False,
                f"diagram assigns {diagram.on_objects(index)!r} to {index} but the index family assigns {expected!r}"))
            continue
        object_diagnostics.append(ConeObjectDiagnostic(index, expected, True, True))

    leg_diagnostics: List[ConeLegDiagnostic] = []
    for index in index_list:
        if index not in legs:
            leg_diagnostics.append(ConeLegDiagnostic(index, False, f"leg {index} is missing"))
            continue
        leg = legs[index]
        near, far = (category.cod(leg), category.dom(leg)) if dual else (category.dom(leg), category.cod(leg))
        if near != apex:
            side = "codomain" if dual else "domain"
            leg_diagnostics.append(ConeLegDiagnostic(
                index, False, f"leg {index} has {side} {near!r} instead of the {apex_label} {apex!r}"))
        elif far != on_objects(index):
            verb = "starts at" if dual else "targets"
            leg_diagnostics.append(ConeLegDiagnostic(
                index, False, f"leg {index} {verb} {far!r} rather than {on_objects(index)!r}"))
        else:
            leg_diagnostics.append(ConeLegDiagnostic(index, True))

    arrow_diagnostics: List[ConeArrowNaturality] = []
    for arrow in enumerate_diagram_arrows(diagram, guard) if diagram is not None else ():
        label = f"{arrow.source}→{arrow.target}"
        if arrow.source not in index_list or arrow.target not in index_list:
            arrow_diagnostics.append(ConeArrowNaturality(
                arrow.source, arrow.target, arrow.morphism, False,
                f"arrow {label} leaves the supplied index set"))
            continue
        if (category.dom(arrow.morphism) != on_objects(arrow.source)
                or category.cod(arrow.morphism) != on_objects(arrow.target)):
            arrow_diagnostics.append(ConeArrowNaturality(
                arrow.source, arrow.target, arrow.morphism, False,
                f"morphism on arrow {label} has mismatched endpoints"))
            continue
        if arrow.source not in legs or arrow.target not in legs:
            arrow_diagnostics.append(ConeArrowNaturality(
                arrow.source, arrow.target, arrow.morphism, False,
                f"arrow {label} has no leg at one of its endpoints"))
            continue
        if _arrow_commutes(category, eq, legs, arrow, dual):
            arrow_diagnostics.append(ConeArrowNaturality(arrow.source, arrow.target, arrow.morphism, True))
        else:
            moved = arrow.source if dual else arrow.target
            arrow_diagnostics.append(ConeArrowNaturality(
                arrow.source, arrow.target, arrow.morphism, False,
                f"leg {moved} does not commute with arrow {label}"))

    holds = (all(d.holds for d in object_diagnostics)
             and all(d.holds for d in leg_diagnostics)
             and all(d.holds for d in arrow_diagnostics))
    return ConeNaturalityAnalysis(
        tuple(object_diagnostics), tuple(leg_diagnostics), tuple(arrow_diagnostics), holds)


def _arrow_commutes(category: Any, eq: Equality, legs: Mapping[Any, Any],
                    arrow: DiagramArrow, dual: bool) -> bool:
    try:
        if dual:
            return eq(category.compose(legs[arrow.target], arrow.morphism), legs[arrow.source])
        return eq(category.compose(arrow.morphism, legs[arrow.source]), legs[arrow.target])
    except ValueError:
        return False


def legs_commute(category: Any, eq: Equality, legs: Mapping[Any, Any], diagram: Any, dual: bool,
                 guard: Optional[EnumerationGuard]) -> bool:
    if diagram is None:
        return True
    for arrow in enumerate_diagram_arrows(diagram, guard):
        if arrow.source not in legs or arrow.target not in legs:
            return False
        if not _arrow_commutes(category, eq, legs, arrow, dual):
            return False
    return True


# ============================================================================
# Section 3: 锥验证
# ============================================================================


def analyze_cone_naturality(category: Any, eq: Optional[Equality], indices: Sequence[Any],
                            on_objects: Assignment, cone: Cone,
                            guard: Optional[EnumerationGuard] = None) -> ConeNaturalityAnalysis:
    """锥的穷举诊断: 对象、腿、箭头交换性, 逐条给出原因"""
    eq = resolve_equality(category, eq)
    return _analyze(category, eq, indices, as_assignment(on_objects, "on_objects"),
                    cone.tip, cone.legs, cone.diagram, False, guard)


def validate_cone_against_diagram(category: Any, eq: Optional[Equality], indices: Sequence[Any],
                                  on_objects: Assignment, cone: Cone,
                                  guard: Optional[EnumerationGuard] = None) -> ConeValidationResult:
    analysis = analyze_cone_naturality(category, eq, indices, on_objects, cone, guard)
    if analysis.holds:
        return ConeValidationResult(True)
    return ConeValidationResult(False, analysis.first_reason())


def cone_respects_diagram(category: Any, eq: Optional[Equality], cone: Cone,
                          guard: Optional[EnumerationGuard] = None) -> bool:
    """仅检查交换性: 每条图表箭头 m: i → j 满足 legs[j] = m∘legs[i]"""
    return legs_commute(category, resolve_equality(category, eq), cone.legs, cone.diagram, False, guard)


# ============================================================================
# Section 4: 余锥验证 (对偶)
# ============================================================================


def analyze_cocone_naturality(category: Any, eq: Optional[Equality], indices: Sequence[Any],
                              on_objects: Assignment, cocone: Cocone,
                              guard: Optional[EnumerationGuard] = None) -> ConeNaturalityAnalysis:
    eq = resolve_equality(category, eq)
    return _analyze(category, eq, indices, as_assignment(on_objects, "on_objects"),
                    cocone.cotip, cocone.legs, cocone.diagram, True, guard)


def validate_cocone_against_diagram(category: Any, eq: Optional[Equality], indices: Sequence[Any],
                                    on_objects: Assignment, cocone: Cocone,
                                    guard: Optional[EnumerationGuard] = None) -> ConeValidationResult:
    analysis = analyze_cocone_naturality(category, eq, indices, on_objects, cocone, guard)
    if analysis.holds:
        return ConeValidationResult(True)
    return ConeValidationResult(False, analysis.first_reason())


def cocone_respects_diagram(category: Any, eq: Optional[Equality], cocone: Cocone,
                            guard: Optional[EnumerationGuard] = None) -> bool:
    """每条图表箭头 m: i → j 满足 legs[j]∘m = legs[i]"""
    return legs_commute(category, resolve_equality(category, eq), cocone.legs, cocone.diagram, True, guard)


# ============================================================================
# Section 5: 闭包扩张
# ============================================================================


@dataclass(frozen=True)
class ClosureExtensionResult:
    extended: bool
    cone: Any = None
    reason: Optional[str] = None


def extend_cone_to_closure(base: Any, cone: Cone, ambient: Any, on_objects: Assignment,
                           seeds: Iterable[Tuple[Any, Any]], objects: Iterable[Any] = (),
                           eq: Optional[Equality] = None) -> ClosureExtensionResult:
    """闭合生成数据, 并把锥重新挂到闭包图表上验证

    闭包自身的失败 (不一致等) 作为配置错误抛出; 锥不再交换时返回 extended=False。
    """
    closed = close_finite_diagram(ambient, base, on_objects, seeds, objects, eq).as_finite_diagram()
    extended = Cone(cone.tip, cone.legs, closed)
    verdict = validate_cone_against_diagram(base, eq, closed.objects, closed.on_objects, extended)
    if not verdict.valid:
        _logger.debug("cone does not survive closure: %s", verdict.reason)
        return ClosureExtensionResult(False, reason=verdict.reason)
    return ClosureExtensionResult(True, extended)


def extend_cocone_to_closure(base: Any, cocone: Cocone, ambient: Any, on_objects: Assignment,
                             seeds: Iterable[Tuple[Any, Any]], objects: Iterable[Any] = (),
                             eq: Optional[Equality] = None) -> ClosureExtensionResult:
    closed = close_finite_diagram(ambient, base, on_objects, seeds, objects, eq).as_finite_diagram()
    extended = Cocone(cocone.cotip, cocone.legs, closed)
    verdict = validate_cocone_against_diagram(base, eq, closed.objects, closed.on_objects, extended)
    if not verdict.valid:
        _logger.debug("cocone does not survive closure: %s", verdict.reason)
        return ClosureExtensionResult(False, reason=verdict.reason)
    return ClosureExtensionResult(True, extended)


__all__ = [
    "Cone",
    "Cocone",
    "ConeObjectDiagnostic",
    "ConeLegDiagnostic",
    "ConeArrowNaturality",
    "ConeNaturalityAnalysis",
    "ConeValidationResult",
    "legs_commute",
    "analyze_cone_naturality",
    "validate_cone_against_diagram",
    "cone_respects_diagram",
    "analyze_cocone_naturality",
    "validate_cocone_against_diagram",
    "cocone_respects_diagram",
    "ClosureExtensionResult",
    "extend_cone_to_closure",
    "extend_cocone_to_closure",
]
