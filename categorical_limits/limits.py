# -*- coding: utf-8 -*-
"""
由原始结构构造规范极限 / 余极限

极限 (积 + 等化子):
    P = ∏_i D(i),  π_i: P → D(i)
    对每条非恒等箭头 m: i → j,  Q = ∏_m D(j)
        δ_s = ⟨ m ∘ π_i ⟩_m : P → Q
        δ_t = ⟨ π_j ⟩_m     : P → Q
    e: E → P 为 (δ_s, δ_t) 的等化子;  极限腿 λ_i = π_i ∘ e

余极限 (余积 + 余等化子) 为对偶:
    S = ∐_i D(i),  R = ∐_m D(i)
        δ_s = [ ι_j ∘ m ]_m : R → S
        δ_t = [ ι_i ]_m     : R → S
    q: S → C 为余等化子;  余极限腿 λ_i = q ∘ ι_i

退化情形:
- 零对象图表直接取终对象 / 初对象
- 无约束箭头时等化子 / 余等化子取恒等

factor 调用调用方提供的分解预言机, 并对其结果做复核 (预言机不受信任)。
limit_of_diagram / colimit_of_diagram 另外构造整个 (余)锥范畴, 用终/初对象见证独立推导
中介态射, 并与预言机结果交叉校验; 两者不一致视为不变量破坏。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from .cone_category import (
    CoconeCategory,
    CoconeInitialityWitness,
    ConeCategory,
    ConeTerminalityWitness,
    check_initial_cocone,
    check_terminal_cone,
    make_cocone_category,
    make_cone_category,
)
from .cones import Cocone, Cone, validate_cocone_against_diagram, validate_cone_against_diagram
from .core import (
    DiagramConfigurationError,
    EnumerationGuard,
    Equality,
    LimitInvariantViolation,
    resolve_equality,
)
from .diagrams import DiagramArrow, DiagramLike, FiniteDiagram, SmallDiagram, as_finite_diagram

_logger = logging.getLogger(__name__)


# ============================================================================
# Section 1: 见证记录与结构协议
# ============================================================================


@dataclass(frozen=True)
class ProductWitness:
    obj: Any
    projections: Tuple[Any, ...]


@dataclass(frozen=True)
class CoproductWitness:
    obj: Any
    injections: Tuple[Any, ...]


@dataclass(frozen=True)
class EqualizerWitness:
    obj: Any
    equalize: Any


@dataclass(frozen=True)
class CoequalizerWitness:
    obj: Any
    coequalize: Any


@dataclass(frozen=True)
class FactorizationResult:
    """分解预言机结果 {factored, mediator?, reason?}"""
    factored: bool
    mediator: Any = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class UniversalFactorResult:
    """泛性质分解结果 {holds, mediator?, reason?}"""
    holds: bool
    mediator: Any = None
    reason: Optional[str] = None


class HasFiniteProducts(Protocol):
    def product(self, objects: Sequence[Any]) -> ProductWitness: ...


class HasProductMediators(Protocol):
    def tuple(self, domain: Any, legs: Sequence[Any], product_obj: Any) -> Any: ...


class HasEqualizers(Protocol):
    def equalizer(self, f: Any, g: Any) -> EqualizerWitness: ...


class HasFiniteCoproducts(Protocol):
    def coproduct(self, objects: Sequence[Any]) -> CoproductWitness: ...


class HasCoproductMediators(Protocol):
    def cotuple(self, coproduct_obj: Any, legs: Sequence[Any], codomain: Any) -> Any: ...


class HasCoequalizers(Protocol):
    def coequalizer(self, f: Any, g: Any) -> CoequalizerWitness: ...


class HasTerminal(Protocol):
    terminal_obj: Any

    def terminate(self, obj: Any) -> Any: ...


class HasInitial(Protocol):
    initial_obj: Any

    def initiate(self, obj: Any) -> Any: ...


# (left, right, inclusion, fork) → FactorizationResult
EqualizerFactorizer = Callable[..., FactorizationResult]
# (left, right, coequalizer, fork) → FactorizationResult
CoequalizerFactorizer = Callable[..., FactorizationResult]


def call_factorizer(factorizer: Callable[..., Any], **arguments: Any) -> FactorizationResult:
    """调用不受信任的预言机; 其异常与畸形返回值一律归一化为 factored=False"""
    try:
        result = factorizer(**arguments)
    except Exception as exc:
        _logger.debug("factorizer raised %s: %s", type(exc).__name__, exc)
        return FactorizationResult(False, reason=f"factorizer raised {type(exc).__name__}: {exc}")
    if not isinstance(result, FactorizationResult):
        return FactorizationResult(False, reason=f"factorizer returned {type(result).__name__}")
    if result.factored and result.mediator is None:
        return FactorizationResult(False, reason="factorizer reported success without a mediator")
    if not result.factored:
        return FactorizationResult(False, reason=result.reason or "factorizer declined")
    return result


def _constraint_arrows(diagram: FiniteDiagram) -> List[DiagramArrow]:
    """非恒等箭头: 恒等箭头对 (余)极限不施加约束"""
    shape = diagram.shape
    constraints: List[DiagramArrow] = []
    for arrow in shape.arrows:
        source, target = shape.dom(arrow), shape.cod(arrow)
        if source == target and shape.eq(arrow, shape.id(source)):
            continue
        constraints.append(DiagramArrow(source, target, diagram.on_morphisms(arrow)))
    return constraints


# ============================================================================
# Section 2: 积 + 等化子 → 极限
# ============================================================================


class CanonicalLimit:
    """由积与等化子构造的规范极限锥, 以及基于等化子预言机的 factor"""

    def __init__(self, base: Any, diagram: FiniteDiagram, eq: Equality,
                 factor_equalizer: Optional[EqualizerFactorizer] = None,
                 products: Any = None, equalizers: Any = None, terminal: Any = None):
        self.base = base
        self.diagram = diagram
        self.eq = eq
        self.factor_equalizer = factor_equalizer
        self._products = products if products is not None else base
        self._equalizers = equalizers if equalizers is not None else base
        self._terminal = terminal if terminal is not None else base

        self.indices: Tuple[Any, ...] = diagram.objects
        self.constraints: Tuple[DiagramArrow, ...] = tuple(_constraint_arrows(diagram))
        self.product: Optional[ProductWitness] = None
        self.arrow_product: Optional[ProductWitness] = None
        self.pair: Optional[Tuple[Any, Any]] = None
        self.equalizer: Optional[EqualizerWitness] = None

        if not self.indices:
            if not hasattr(self._terminal, "terminal_obj"):
                raise DiagramConfigurationError("Zero-object diagram requires a terminal object")
            self.cone = Cone(self._terminal.terminal_obj, {}, diagram)
            return

        self.product = self._products.product([diagram.on_objects(i) for i in self.indices])
        # 每个索引的投影只算一次
        projection: Dict[Any, Any] = dict(zip(self.indices, self.product.projections))

        if not self.constraints:
            self.equalizer = EqualizerWitness(self.product.obj, base.id(self.product.obj))
        else:
            self.arrow_product = self._products.product(
                [diagram.on_objects(a.target) for a in self.constraints])
            delta_source = self._products.tuple(
                self.product.obj,
                [base.compose(a.morphism, projection[a.source]) for a in self.constraints],
                self.arrow_product.obj,
            )
            delta_target = self._products.tuple(
                self.product.obj,
                [projection[a.target] for a in self.constraints],
                self.arrow_product.obj,
            )
            self.pair = (delta_source, delta_target)
            self.equalizer = self._equalizers.equalizer(delta_source, delta_target)

        legs = {i: base.compose(projection[i], self.equalizer.equalize) for i in self.indices}
        self.cone = Cone(self.equalizer.obj, legs, diagram)
        _logger.debug("canonical limit: %d indices, %d constraint arrows",
                      len(self.indices), len(self.constraints))

    @property
    def tip(self) -> Any:
        return self.cone.tip

    def factor(self, candidate: Cone) -> FactorizationResult:
        """经等化子预言机求 candidate → 极限 的中介态射, 并复核每条腿"""
        base, eq = self.base, self.eq
        verdict = validate_cone_against_diagram(
            base, eq, self.indices, self.diagram.on_objects,
            Cone(candidate.tip, candidate.legs, self.diagram))
        if not verdict.valid:
            return FactorizationResult(False, reason=verdict.reason)

        if not self.indices:
            mediator = self._terminal.terminate(candidate.tip)
        else:
            fork = self._products.tuple(
                candidate.tip, [candidate.legs[i] for i in self.indices], self.product.obj)
            if self.pair is None:
                mediator = fork
            else:
                if self.factor_equalizer is None:
                    return FactorizationResult(False, reason="no equalizer factorizer was supplied")
                result = call_factorizer(
                    self.factor_equalizer,
                    left=self.pair[0], right=self.pair[1],
                    inclusion=self.equalizer.equalize, fork=fork,
                )
                if not result.factored:
                    return result
                mediator = result.mediator

        if base.dom(mediator) != candidate.tip or base.cod(mediator) != self.cone.tip:
            return FactorizationResult(False, reason="mediator does not run from the candidate tip to the limit")
        for index in self.indices:
            if not eq(base.compose(self.cone.legs[index], mediator), candidate.legs[index]):
                return FactorizationResult(False, reason=f"mediator does not reproduce leg {index}")
        return FactorizationResult(True, mediator)


def limit_from_products_and_equalizers(base: Any, diagram: DiagramLike,
                                       factor_equalizer: EqualizerFactorizer,
                                       eq: Optional[Equality] = None,
                                       products: Any = None, equalizers: Any = None,
                                       terminal: Any = None) -> CanonicalLimit:
    """规范极限: 积 Π D(i) 中被图表箭头等化的部分"""
    eq = resolve_equality(base, eq)
    return CanonicalLimit(base, as_finite_diagram(diagram), eq, factor_equalizer,
                          products, equalizers, terminal)


def small_limit_from_products_and_equalizers(base: Any, diagram: SmallDiagram,
                                             factor_equalizer: EqualizerFactorizer,
                                             eq: Optional[Equality] = None,
                                             guard: Optional[EnumerationGuard] = None,
                                             products: Any = None, equalizers: Any = None,
                                             terminal: Any = None) -> CanonicalLimit:
    """SmallDiagram 版本: 先在护栏内物化索引"""
    eq = resolve_equality(base, eq)
    return CanonicalLimit(base, diagram.materialise(guard), eq, factor_equalizer,
                          products, equalizers, terminal)


# ============================================================================
# Section 3: 余积 + 余等化子 → 余极限
# ============================================================================


class CanonicalColimit:
    """由余积与余等化子构造的规范余极限余锥"""

    def __init__(self, base: Any, diagram: FiniteDiagram, eq: Equality,
                 factor_coequalizer: Optional[CoequalizerFactorizer] = None,
                 coproducts: Any = None, coequalizers: Any = None, initial: Any = None):
        self.base = base
        self.diagram = diagram
        self.eq = eq
        self.factor_coequalizer = factor_coequalizer
        self._coproducts = coproducts if coproducts is not None else base
        self._coequalizers = coequalizers if coequalizers is not None else base
        self._initial = initial if initial is not None else base

        self.indices: Tuple[Any, ...] = diagram.objects
        self.constraints: Tuple[DiagramArrow, ...] = tuple(_constraint_arrows(diagram))
        self.coproduct: Optional[CoproductWitness] = None
        self.arrow_coproduct: Optional[CoproductWitness] = None
        self.pair: Optional[Tuple[Any, Any]] = None
        self.coequalizer: Optional[CoequalizerWitness] = None

        if not self.indices:
            if not hasattr(self._initial, "initial_obj"):
                raise DiagramConfigurationError("Zero-object diagram requires an initial object")
            self.cocone = Cocone(self._initial.initial_obj, {}, diagram)
            return

        self.coproduct = self._coproducts.coproduct([diagram.on_objects(i) for i in self.indices])
        injection: Dict[Any, Any] = dict(zip(self.indices, self.coproduct.injections))

        if not self.constraints:
            self.coequalizer = CoequalizerWitness(self.coproduct.obj, base.id(self.coproduct.obj))
        else:
            self.arrow_coproduct = self._coproducts.coproduct(
                [diagram.on_objects(a.source) for a in self.constraints])
            delta_source = self._coproducts.cotuple(
                self.arrow_coproduct.obj,
                [base.compose(injection[a.target], a.morphism) for a in self.constraints],
                self.coproduct.obj,
            )
            delta_target = self._coproducts.cotuple(
                self.arrow_coproduct.obj,
                [injection[a.source] for a in self.constraints],
                self.coproduct.obj,
            )
            self.pair = (delta_source, delta_target)
            self.coequalizer = self._coequalizers.coequalizer(delta_source, delta_target)

        legs = {i: base.compose(self.coequalizer.coequalize, injection[i]) for i in self.indices}
        self.cocone = Cocone(self.coequalizer.obj, legs, diagram)
        _logger.debug("canonical colimit: %d indices, %d constraint arrows",
                      len(self.indices), len(self.constraints))

    @property
    def cotip(self) -> Any:
        return self.cocone.cotip

    def factor(self, candidate: Cocone) -> FactorizationResult:
        """经余等化子预言机求 余极限 → candidate 的中介态射, 并复核每条腿"""
        base, eq = self.base, self.eq
        verdict = validate_cocone_against_diagram(
            base, eq, self.indices, self.diagram.on_objects,
            Cocone(candidate.cotip, candidate.legs, self.diagram))
        if not verdict.valid:
            return FactorizationResult(False, reason=verdict.reason)

        if not self.indices:
            mediator = self._initial.initiate(candidate.cotip)
        else:
            fork = self._coproducts.cotuple(
                self.coproduct.obj, [candidate.legs[i] for i in self.indices], candidate.cotip)
            if self.pair is None:
                mediator = fork
            else:
                if self.factor_coequalizer is None:
                    return FactorizationResult(False, reason="no coequalizer factorizer was supplied")
                result = call_factorizer(
                    self.factor_coequalizer,
                    left=self.pair[0], right=self.pair[1],
                    coequalizer=self.coequalizer.coequalize, fork=fork,
                )
                if not result.factored:
                    return result
                mediator = result.mediator

        if base.dom(mediator) != self.cocone.cotip or base.cod(mediator) != candidate.cotip:
            return FactorizationResult(False, reason="mediator does not run from the colimit to the candidate cotip")
        for index in self.indices:
            if not eq(base.compose(mediator, self.cocone.legs[index]), candidate.legs[index]):
                return FactorizationResult(False, reason=f"mediator does not reproduce leg {index}")
        return FactorizationResult(True, mediator)


def finite_colimit_from_coproducts_and_coequalizers(base: Any, diagram: DiagramLike,
                                                    factor_coequalizer: CoequalizerFactorizer,
                                                    eq: Optional[Equality] = None,
                                                    coproducts: Any = None, coequalizers: Any = None,
                                                    initial: Any = None) -> CanonicalColimit:
    """规范余极限: 余积 ∐ D(i) 按图表箭头商掉"""
    eq = resolve_equality(base, eq)
    return CanonicalColimit(base, as_finite_diagram(diagram), eq, factor_coequalizer,
                            coproducts, coequalizers, initial)


# ============================================================================
# Section 4: 交叉校验的极限 / 余极限
# ============================================================================


@dataclass(frozen=True, eq=False)
class LimitOfDiagramResult:
    cone: Cone
    factor: Callable[[Cone], UniversalFactorResult]
    cone_category: ConeCategory
    terminality: ConeTerminalityWitness
    construction: CanonicalLimit


@dataclass(frozen=True, eq=False)
class ColimitOfDiagramResult:
    cocone: Cocone
    factor: Callable[[Cocone], UniversalFactorResult]
    cocone_category: CoconeCategory
    initiality: CoconeInitialityWitness
    construction: CanonicalColimit


def limit_of_diagram(base: Any, diagram: DiagramLike, eq: Optional[Equality] = None,
                     factor_equalizer: Optional[EqualizerFactorizer] = None,
                     guard: Optional[EnumerationGuard] = None) -> LimitOfDiagramResult:
    """构造并认证极限

    规范锥由积 + 等化子给出; 枚举锥范畴并检验其为终对象。
    factor 返回终对象见证中的中介态射; 给定 factor_equalizer 时与等化子推导交叉校验。

    Raises:
        LimitInvariantViolation: 规范锥不是终对象, 或两种推导给出不同中介态射
    """
    eq = resolve_equality(base, eq)
    finite = as_finite_diagram(diagram, guard)
    construction = CanonicalLimit(base, finite, eq, factor_equalizer)
    cone_category = make_cone_category(base, finite.objects, finite.on_objects, finite, eq, guard)
    terminality = check_terminal_cone(cone_category, construction.cone)
    if not terminality.holds:
        raise LimitInvariantViolation(f"Canonical limit cone is not terminal: {terminality.reason}")
    _logger.info("limit certified over %d cones (%d indices)", len(cone_category), len(finite.objects))

    limit_cone = terminality.located_limit

    def factor(candidate: Cone) -> UniversalFactorResult:
        verdict = validate_cone_against_diagram(
            base, eq, finite.objects, finite.on_objects, Cone(candidate.tip, candidate.legs, finite))
        if not verdict.valid:
            return UniversalFactorResult(False, reason=verdict.reason)
        position = cone_category.position_of(candidate)
        if position is None:
            return UniversalFactorResult(
                False, reason=f"cone with tip {candidate.tip!r} is not an object of the cone category")
        mediator = terminality.mediators[position].mediator

        if factor_equalizer is not None:
            cross = construction.factor(candidate)
            if not cross.factored:
                raise LimitInvariantViolation(
                    f"Equalizer factorization failed where the cone category has a mediator: {cross.reason}")
            if not eq(cross.mediator, mediator):
                raise LimitInvariantViolation(
                    "Equalizer mediator disagrees with the terminality mediator")

        for index in finite.objects:
            if not eq(base.compose(limit_cone.legs[index], mediator), candidate.legs[index]):
                return UniversalFactorResult(False, reason=f"mediator does not reproduce leg {index}")
        return UniversalFactorResult(True, mediator)

    return LimitOfDiagramResult(limit_cone, factor, cone_category, terminality, construction)


def colimit_of_diagram(base: Any, diagram: DiagramLike, eq: Optional[Equality] = None,
                       factor_coequalizer: Optional[CoequalizerFactorizer] = None,
                       guard: Optional[EnumerationGuard] = None) -> ColimitOfDiagramResult:
    """构造并认证余极限 (limit_of_diagram 的对偶)"""
    eq = resolve_equality(base, eq)
    finite = as_finite_diagram(diagram, guard)
    construction = CanonicalColimit(base, finite, eq, factor_coequalizer)
    cocone_category = make_cocone_category(base, finite.objects, finite.on_objects, finite, eq, guard)
    initiality = check_initial_cocone(cocone_category, construction.cocone)
    if not initiality.holds:
        raise LimitInvariantViolation(f"Canonical colimit cocone is not initial: {initiality.reason}")
    _logger.info("colimit certified over %d cocones (%d indices)", len(cocone_category), len(finite.objects))

    colimit_cocone = initiality.located_colimit

    def factor(candidate: Cocone) -> UniversalFactorResult:
        verdict = validate_cocone_against_diagram(
            base, eq, finite.objects, finite.on_objects, Cocone(candidate.cotip, candidate.legs, finite))
        if not verdict.valid:
            return UniversalFactorResult(False, reason=verdict.reason)
        position = cocone_category.position_of(candidate)
        if position is None:
            return UniversalFactorResult(
                False, reason=f"cocone with cotip {candidate.cotip!r} is not an object of the cocone category")
        mediator = initiality.mediators[position].mediator

        if factor_coequalizer is not None:
            cross = construction.factor(candidate)
            if not cross.factored:
                raise LimitInvariantViolation(
                    f"Coequalizer factorization failed where the cocone category has a mediator: {cross.reason}")
            if not eq(cross.mediator, mediator):
                raise LimitInvariantViolation(
                    "Coequalizer mediator disagrees with the initiality mediator")

        for index in finite.objects:
            if not eq(base.compose(mediator, colimit_cocone.legs[index]), candidate.legs[index]):
                return UniversalFactorResult(False, reason=f"mediator does not reproduce leg {index}")
        return UniversalFactorResult(True, mediator)

    return ColimitOfDiagramResult(colimit_cocone, factor, cocone_category, initiality, construction)


__all__ = [
    "ProductWitness",
    "CoproductWitness",
    "EqualizerWitness",
    "CoequalizerWitness",
    "FactorizationResult",
    "UniversalFactorResult",
    "HasFiniteProducts",
    "HasProductMediators",
    "HasEqualizers",
    "HasFiniteCoproducts",
    "HasCoproductMediators",
    "HasCoequalizers",
    "HasTerminal",
    "HasInitial",
    "EqualizerFactorizer",
    "CoequalizerFactorizer",
    "call_factorizer",
    "CanonicalLimit",
    "CanonicalColimit",
    "limit_from_products_and_equalizers",
    "small_limit_from_products_and_equalizers",
    "finite_colimit_from_coproducts_and_coequalizers",
    "LimitOfDiagramResult",
    "ColimitOfDiagramResult",
    "limit_of_diagram",
    "colimit_of_diagram",
]
