# -*- coding: utf-8 -*-
"""
变形 (change of shape): 沿形状函子 u: I → J 重索引图表并比较极限

    D: J → C  ↦  D∘u: I → C
    锥 (L, λ) 于 D     ↦  (L, λ_{u(i)}) 于 D∘u
    余锥 (L, λ) 于 D   ↦  (L, λ_{u(i)}) 于 D∘u

比较映射:
    lim D → lim(D∘u)      限制锥经 lim(D∘u) 的泛性质分解得到
    colim(D∘u) → colim D  限制余锥经 colim(D∘u) 的泛性质分解得到

同构性在有限基范畴中穷举双边逆判定。(余)终性不在此判定;
调用方可附上见证, 用于说明比较映射为何不是同构。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .cones import Cocone, Cone, ConeNaturalityAnalysis, analyze_cocone_naturality, analyze_cone_naturality
from .core import (
    DiagramConfigurationError,
    EnumerationBoundExceeded,
    EnumerationGuard,
    Equality,
    FiniteCategoryData,
    FunctorLawViolation,
    SmallIndex,
    resolve_equality,
)
from .diagrams import (
    Assignment,
    DiagramLike,
    DiagramNaturalityAnalysis,
    FiniteDiagram,
    SmallDiagram,
    analyze_diagram_naturality,
    as_finite_diagram,
    make_finite_diagram,
)
from .limits import FactorizationResult, UniversalFactorResult

_logger = logging.getLogger(__name__)


# ============================================================================
# Section 1: 带见证的函子
# ============================================================================


@dataclass(frozen=True, eq=False)
class FunctorWithWitness:
    """有限范畴间的函子 F: source → target, 附函子律分析"""
    source: FiniteCategoryData
    target: Any
    on_objects: Callable[[Any], Any]
    on_morphisms: Callable[[Any], Any]
    analysis: DiagramNaturalityAnalysis
    name: str = "F"

    @property
    def holds(self) -> bool:
        return self.analysis.holds


def make_functor(source: FiniteCategoryData, target: Any,
                 on_objects: Assignment, on_morphisms: Assignment,
                 eq: Optional[Equality] = None, name: str = "F") -> FunctorWithWitness:
    """立即求值 F 的对象/箭头像并分析函子律; 律失败记录在 analysis 中, 不抛出"""
    image = make_finite_diagram(source, on_objects, on_morphisms, name=name)
    analysis = analyze_diagram_naturality(target, image, eq)
    if not analysis.holds:
        _logger.debug("functor %s fails %d law checks", name, len(analysis.issues()))
    return FunctorWithWitness(source, target, image.on_objects, image.on_morphisms, analysis, name)


def functor_to_diagram(functor: FunctorWithWitness) -> SmallDiagram:
    """函子 F: I → C 视为形状 I 上的小图表"""
    source = functor.source
    return SmallDiagram(
        shape=source,
        object_index=SmallIndex.finite(source.objects, label=f"{functor.name} objects"),
        on_objects=functor.on_objects,
        arrow_index=SmallIndex.finite(source.arrows, label=f"{functor.name} arrows"),
        on_morphisms=functor.on_morphisms,
        name=functor.name,
    )


def diagram_to_functor_witness(base: Any, diagram: DiagramLike, eq: Optional[Equality] = None,
                               guard: Optional[EnumerationGuard] = None) -> FunctorWithWitness:
    """图表视为函子 J → base, 附完整函子律分析"""
    finite = as_finite_diagram(diagram, guard)
    analysis = analyze_diagram_naturality(base, finite, eq)
    return FunctorWithWitness(finite.shape, base, finite.on_objects, finite.on_morphisms, analysis, finite.name)


# ============================================================================
# Section 2: 重索引
# ============================================================================


@dataclass(frozen=True, eq=False)
class RestrictedCone:
    cone: Cone
    analysis: ConeNaturalityAnalysis


@dataclass(frozen=True, eq=False)
class RestrictedCocone:
    cocone: Cocone
    analysis: ConeNaturalityAnalysis


class ReindexedDiagram:
    """D∘u 及沿 u 限制 (余)锥的操作"""

    def __init__(self, base: Any, change_of_shape: FunctorWithWitness,
                 diagram: SmallDiagram, materialised: FiniteDiagram, eq: Equality):
        self.base = base
        self.change_of_shape = change_of_shape
        self.diagram = diagram
        self.materialised = materialised
        self.eq = eq

    @property
    def objects(self) -> Tuple[Any, ...]:
        return self.materialised.objects

    def _restrict_legs(self, legs: Mapping[Any, Any]) -> Dict[Any, Any]:
        # 缺失的腿留给自然性分析报告
        mapped = self.change_of_shape.on_objects
        return {i: legs[mapped(i)] for i in self.materialised.objects if mapped(i) in legs}

    def restrict_cone(self, cone: Cone) -> RestrictedCone:
        restricted = Cone(cone.tip, self._restrict_legs(cone.legs), self.materialised)
        analysis = analyze_cone_naturality(
            self.base, self.eq, self.materialised.objects, self.materialised.on_objects, restricted)
        return RestrictedCone(restricted, analysis)

    def restrict_cocone(self, cocone: Cocone) -> RestrictedCocone:
        restricted = Cocone(cocone.cotip, self._restrict_legs(cocone.legs), self.materialised)
        analysis = analyze_cocone_naturality(
            self.base, self.eq, self.materialised.objects, self.materialised.on_objects, restricted)
        return RestrictedCocone(restricted, analysis)


def reindex_diagram(base: Any, change_of_shape: FunctorWithWitness, diagram: DiagramLike,
                    eq: Optional[Equality] = None,
                    guard: Optional[EnumerationGuard] = None) -> ReindexedDiagram:
    """沿 u: I → J 重索引 D: J → C 得到 D∘u

    Raises:
        FunctorLawViolation: u 本身不是函子
        DiagramConfigurationError: u 的像或 u 的目标形状含有 D 中不存在的对象/箭头
        EnumerationBoundExceeded: I 超出护栏
    """
    eq = resolve_equality(base, eq)
    guard = guard or EnumerationGuard()
    if not change_of_shape.holds:
        law, reason = change_of_shape.analysis.issues()[0]
        raise FunctorLawViolation(change_of_shape.name, law, reason)

    target = as_finite_diagram(diagram, guard)
    source = change_of_shape.source
    for index in source.objects:
        mapped = change_of_shape.on_objects(index)
        if not target.shape.has_object(mapped):
            raise DiagramConfigurationError(f"Object {mapped!r} is missing from the target diagram")
    for arrow in source.arrows:
        mapped = change_of_shape.on_morphisms(arrow)
        if target.shape.index_of(mapped) is None:
            raise DiagramConfigurationError(f"Arrow {mapped!r} is missing from the target diagram")
    for obj in getattr(change_of_shape.target, "objects", ()):
        if not target.shape.has_object(obj):
            raise DiagramConfigurationError(
                f"Change-of-shape target references object {obj!r} absent from the supplied diagram")

    if len(source.objects) > guard.max_objects:
        raise EnumerationBoundExceeded("change-of-shape source objects", guard.max_objects)
    if len(source.arrows) > guard.max_arrows:
        raise EnumerationBoundExceeded("change-of-shape source arrows", guard.max_arrows)

    name = f"{target.name}∘{change_of_shape.name}"
    reindexed = SmallDiagram(
        shape=source,
        object_index=SmallIndex.finite(source.objects, label=f"{name} objects"),
        on_objects=lambda index: target.on_objects(change_of_shape.on_objects(index)),
        arrow_index=SmallIndex.finite(source.arrows, label=f"{name} arrows"),
        on_morphisms=lambda arrow: target.on_morphisms(change_of_shape.on_morphisms(arrow)),
        name=name,
    )
    materialised = reindexed.materialise(guard)
    _logger.debug("reindexed %s along %s: %d objects", target.name, change_of_shape.name,
                  len(materialised.objects))
    return ReindexedDiagram(base, change_of_shape, reindexed, materialised, eq)


# ============================================================================
# Section 3: 比较映射
# ============================================================================


def find_inverse(base: Any, arrow: Any, eq: Optional[Equality] = None) -> Optional[Any]:
    """在有限基范畴中搜索 arrow 的双边逆; 不存在返回 None"""
    eq = resolve_equality(base, eq)
    source, target = base.dom(arrow), base.cod(arrow)
    hom = getattr(base, "hom", None)
    if callable(hom):
        candidates = hom(target, source)
    elif hasattr(base, "arrows"):
        candidates = [a for a in base.arrows if base.dom(a) == target and base.cod(a) == source]
    else:
        raise DiagramConfigurationError("Isomorphism check requires a base category that enumerates its arrows")
    for candidate in candidates:
        if (eq(base.compose(candidate, arrow), base.id(source))
                and eq(base.compose(arrow, candidate), base.id(target))):
            return candidate
    return None


@dataclass(frozen=True)
class ShapeFinalityWitness:
    """调用方给出的 (余)终性结论"""
    holds: bool
    reason: Optional[str] = None
    metadata: Tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class ComparisonMap:
    mediator: Any
    isomorphism: bool
    inverse: Any = None
    reason: Optional[str] = None
    witness: Optional[ShapeFinalityWitness] = None


@dataclass(frozen=True, eq=False)
class LimitComparison:
    """lim D → lim(D∘u) 的比较结果"""
    reindexing: ReindexedDiagram
    restricted_cone: Cone
    restriction_analysis: ConeNaturalityAnalysis
    factorization: UniversalFactorResult
    comparison: Optional[ComparisonMap] = None


@dataclass(frozen=True, eq=False)
class ColimitComparison:
    """colim(D∘u) → colim D 的比较结果"""
    reindexing: ReindexedDiagram
    restricted_cocone: Cocone
    restriction_analysis: ConeNaturalityAnalysis
    factorization: UniversalFactorResult
    comparison: Optional[ComparisonMap] = None


def _as_universal(result: Any) -> UniversalFactorResult:
    # 规范构造返回 FactorizationResult, 认证结果返回 UniversalFactorResult
    if isinstance(result, FactorizationResult):
        return UniversalFactorResult(result.factored, result.mediator, result.reason)
    return result


def _compare(base: Any, eq: Equality, mediator: Any,
             witness: Optional[ShapeFinalityWitness], kind: str) -> ComparisonMap:
    inverse = find_inverse(base, mediator, eq)
    if inverse is not None:
        return ComparisonMap(mediator, True, inverse, None, witness)
    if witness is None:
        reason = f"comparison map is not an isomorphism and no {kind} witness was supplied"
    elif witness.holds:
        reason = witness.reason
    else:
        reason = witness.reason or (
            f"change-of-shape functor reported non-{kind}, so the comparison may fail to be an isomorphism")
    return ComparisonMap(mediator, False, None, reason, witness)


def limit_comparison_along(base: Any, change_of_shape: FunctorWithWitness, diagram: DiagramLike,
                           original_limit: Any, reindexed_limit: Any,
                           eq: Optional[Equality] = None,
                           guard: Optional[EnumerationGuard] = None,
                           finality: Optional[ShapeFinalityWitness] = None) -> LimitComparison:
    """限制 lim D 的锥到 D∘u, 经 lim(D∘u) 分解得比较映射并判定同构

    original_limit / reindexed_limit 只需提供 cone 与 factor
    (limit_of_diagram 的结果或规范极限均可)。
    """
    eq = resolve_equality(base, eq)
    reindexing = reindex_diagram(base, change_of_shape, diagram, eq, guard)
    restriction = reindexing.restrict_cone(original_limit.cone)
    if not restriction.analysis.holds:
        return LimitComparison(
            reindexing, restriction.cone, restriction.analysis,
            UniversalFactorResult(False, reason="restricted cone fails the naturality checks for D∘u"))

    factored = _as_universal(reindexed_limit.factor(restriction.cone))
    if not factored.holds or factored.mediator is None:
        reason = factored.reason or "limit of D∘u declined to factor the restricted cone"
        return LimitComparison(reindexing, restriction.cone, restriction.analysis,
                               UniversalFactorResult(False, reason=reason))

    comparison = _compare(base, eq, factored.mediator, finality, "finality")
    _logger.info("limit comparison along %s: isomorphism=%s", change_of_shape.name, comparison.isomorphism)
    return LimitComparison(reindexing, restriction.cone, restriction.analysis,
                           UniversalFactorResult(True, factored.mediator), comparison)


def colimit_comparison_along(base: Any, change_of_shape: FunctorWithWitness, diagram: DiagramLike,
                             original_colimit: Any, reindexed_colimit: Any,
                             eq: Optional[Equality] = None,
                             guard: Optional[EnumerationGuard] = None,
                             cofinality: Optional[ShapeFinalityWitness] = None) -> ColimitComparison:
    """limit_comparison_along 的对偶: colim(D∘u) → colim D"""
    eq = resolve_equality(base, eq)
    reindexing = reindex_diagram(base, change_of_shape, diagram, eq, guard)
    restriction = reindexing.restrict_cocone(original_colimit.cocone)
    if not restriction.analysis.holds:
        return ColimitComparison(
            reindexing, restriction.cocone, restriction.analysis,
            UniversalFactorResult(False, reason="restricted cocone fails the naturality checks for D∘u"))

    factored = _as_universal(reindexed_colimit.factor(restriction.cocone))
    if not factored.holds or factored.mediator is None:
        reason = factored.reason or "colimit of D∘u declined to factor the restricted cocone"
        return ColimitComparison(reindexing, restriction.cocone, restriction.analysis,
                                 UniversalFactorResult(False, reason=reason))

    comparison = _compare(base, eq, factored.mediator, cofinality, "cofinality")
    _logger.info("colimit comparison along %s: isomorphism=%s", change_of_shape.name, comparison.isomorphism)
    return ColimitComparison(reindexing, restriction.cocone, restriction.analysis,
                             UniversalFactorResult(True, factored.mediator), comparison)


__all__ = [
    "FunctorWithWitness",
    "make_functor",
    "functor_to_diagram",
    "diagram_to_functor_witness",
    "RestrictedCone",
    "RestrictedCocone",
    "ReindexedDiagram",
    "reindex_diagram",
    "find_inverse",
    "ShapeFinalityWitness",
    "ComparisonMap",
    "LimitComparison",
    "ColimitComparison",
    "limit_comparison_along",
    "colimit_comparison_along",
]
