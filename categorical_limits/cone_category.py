# -*- coding: utf-8 -*-
"""
锥范畴 Cone(D) / 余锥范畴 Cocone(D) 与泛性质检验

构造 (暴力枚举):
    对象: 对基范畴每个对象 tip, 取 ∏_i Hom(tip, D(i)) 中与图表交换的腿族, 按腿相等去重
    箭头: 基范畴箭头 m: tip_A → tip_B, 满足 legs_B[i] ∘ m = legs_A[i] (∀ i)
    恒等/复合/相等: 逐点继承基范畴

终对象检验 (极限的操作性定义):
    L 为终对象 ⇔ 每个锥 C 恰有一条 C → L, 且 L → L 的唯一箭头等于 id_L
余锥范畴对偶: 初对象 ⇔ 每个余锥恰有一条 L → C。

锥以其在竞技场中的位置 (整数) 作为稳定身份, 箭头的端点比较只看位置。
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .core import (
    DiagramConfigurationError,
    EnumerationBoundExceeded,
    EnumerationGuard,
    Equality,
    resolve_equality,
)
from .cones import Cocone, Cone, legs_commute
from .diagrams import (
    Assignment,
    DiagramLike,
    FiniteDiagram,
    SmallDiagram,
    as_assignment,
    check_finite_diagram_functoriality,
    enumerate_diagram_arrows,
)

_logger = logging.getLogger(__name__)


# ============================================================================
# Section 1: 锥态射
# ============================================================================


@dataclass(frozen=True, eq=False)
class ConeMorphism:
    """锥范畴中的箭头: 中介态射 mediator: apex(source) → apex(target)"""
    source: Any
    target: Any
    mediator: Any
    source_position: int = field(default=-1, repr=False)
    target_position: int = field(default=-1, repr=False)


@dataclass(frozen=True, eq=False)
class CoconeMorphism(ConeMorphism):
    """余锥范畴中的箭头"""
    pass


# ============================================================================
# Section 2: 锥 / 余锥范畴
# ============================================================================


class _ApexCategory:
    """锥范畴与余锥范畴的公共骨架: 按位置存放对象, 按 (源位置, 靶位置) 存放箭头"""

    _dual = False
    _morphism_type = ConeMorphism

    def __init__(self, base: Any, eq: Equality, indices: Sequence[Any]):
        self.base = base
        self._base_eq = eq
        self.indices: Tuple[Any, ...] = tuple(indices)
        self._items: List[Any] = []
        self._by_apex: Dict[Any, List[int]] = {}
        self._hom: Dict[Tuple[int, int], List[ConeMorphism]] = {}
        self._arrows: List[ConeMorphism] = []

    # ---- 竞技场 ----

    def _apex(self, item: Any) -> Any:
        return item.cotip if self._dual else item.tip

    def _same_legs(self, left: Any, right: Any) -> bool:
        for index in self.indices:
            if index not in left.legs or index not in right.legs:
                return False
            if not self._base_eq(left.legs[index], right.legs[index]):
                return False
        return True

    def _position(self, item: Any) -> Optional[int]:
        for position in self._by_apex.get(self._apex(item), ()):
            if self._same_legs(self._items[position], item):
                return position
        return None

    def _admit(self, item: Any) -> bool:
        if self._position(item) is not None:
            return False
        self._by_apex.setdefault(self._apex(item), []).append(len(self._items))
        self._items.append(item)
        return True

    def _link(self, source: int, target: int, mediator: Any) -> bool:
        bucket = self._hom.setdefault((source, target), [])
        if any(self._base_eq(existing.mediator, mediator) for existing in bucket):
            return False
        morphism = self._morphism_type(self._items[source], self._items[target], mediator, source, target)
        bucket.append(morphism)
        self._arrows.append(morphism)
        return True

    # ---- 范畴接口 ----

    @property
    def objects(self) -> Tuple[Any, ...]:
        return tuple(self._items)

    @property
    def arrows(self) -> Tuple[ConeMorphism, ...]:
        return tuple(self._arrows)

    def locate(self, item: Any) -> Optional[Any]:
        """在枚举出的对象中找到与 item 腿族相等的那一个"""
        position = self._position(item)
        return None if position is None else self._items[position]

    def position_of(self, item: Any) -> Optional[int]:
        return self._position(item)

    def morphisms(self, source: Any, target: Any) -> List[ConeMorphism]:
        source_position = self._position(source)
        target_position = self._position(target)
        if source_position is None or target_position is None:
            return []
        return list(self._hom.get((source_position, target_position), ()))

    def morphisms_between(self, source_position: int, target_position: int) -> List[ConeMorphism]:
        return list(self._hom.get((source_position, target_position), ()))

    def id(self, item: Any) -> ConeMorphism:
        position = self._position(item)
        if position is None:
            raise ValueError("object is not part of this category")
        identity = self.base.id(self._apex(self._items[position]))
        for morphism in self._hom.get((position, position), ()):
            if self._base_eq(morphism.mediator, identity):
                return morphism
        raise ValueError("identity morphism was not enumerated")

    def compose(self, g: ConeMorphism, f: ConeMorphism) -> ConeMorphism:
        if f.target_position != g.source_position:
            raise ValueError("Cannot compose: cod(f) != dom(g)")
        mediator = self.base.compose(g.mediator, f.mediator)
        for morphism in self._hom.get((f.source_position, g.target_position), ()):
            if self._base_eq(morphism.mediator, mediator):
                return morphism
        raise ValueError("composite mediator was not enumerated")

    def dom(self, morphism: ConeMorphism) -> Any:
        return morphism.source

    def cod(self, morphism: ConeMorphism) -> Any:
        return morphism.target

    src = dom
    dst = cod

    def eq(self, left: ConeMorphism, right: ConeMorphism) -> bool:
        return (left.source_position == right.source_position
                and left.target_position == right.target_position
                and self._base_eq(left.mediator, right.mediator))

    def __len__(self) -> int:
        return len(self._items)


class ConeCategory(_ApexCategory):
    """锥范畴 Cone(D)"""
    _dual = False
    _morphism_type = ConeMorphism

    def __repr__(self) -> str:
        return f"ConeCategory(|cones|={len(self._items)}, |arrows|={len(self._arrows)})"


class CoconeCategory(_ApexCategory):
    """余锥范畴 Cocone(D)"""
    _dual = True
    _morphism_type = CoconeMorphism

    def __repr__(self) -> str:
        return f"CoconeCategory(|cocones|={len(self._items)}, |arrows|={len(self._arrows)})"


# ============================================================================
# Section 3: 配置检查与枚举
# ============================================================================


def _validate_configuration(base: Any, eq: Equality, indices: Sequence[Any],
                            on_objects: Callable[[Any], Any], diagram: DiagramLike,
                            guard: EnumerationGuard) -> None:
    index_list = list(indices)
    finite: Optional[FiniteDiagram] = None
    if isinstance(diagram, FiniteDiagram):
        finite = diagram
    elif isinstance(diagram, SmallDiagram):
        finite = diagram.materialise(guard)

    if finite is not None:
        for obj in finite.objects:
            if obj not in index_list:
                raise DiagramConfigurationError(f"Diagram object {obj} is outside the index family")
        for index in index_list:
            if index not in finite.objects:
                raise DiagramConfigurationError(f"Index {index} is missing from the diagram")
            if finite.on_objects(index) != on_objects(index):
                raise DiagramConfigurationError(
                    f"Diagram assigns {finite.on_objects(index)!r} to {index}, "
                    f"which disagrees with the index family ({on_objects(index)!r})"
                )
        check = check_finite_diagram_functoriality(base, finite, eq)
        if not check.holds:
            raise DiagramConfigurationError(f"Diagram is not functorial: {check.issues[0]}")

    arrows = enumerate_diagram_arrows(diagram, guard)
    if not index_list and arrows:
        raise DiagramConfigurationError("Diagram has arrows but no indices")
    for arrow in arrows:
        if arrow.source not in index_list or arrow.target not in index_list:
            raise DiagramConfigurationError(
                f"Diagram arrow {arrow.source}→{arrow.target} leaves the index family")


def _populate(category: _ApexCategory, base: Any, eq: Equality, on_objects: Callable[[Any], Any],
              diagram: DiagramLike, guard: EnumerationGuard) -> None:
    dual = category._dual
    index_list = list(category.indices)
    hom_table: Dict[Tuple[Any, Any], List[Any]] = {}

    def hom(source: Any, target: Any) -> List[Any]:
        key = (source, target)
        if key not in hom_table:
            hom_table[key] = [a for a in base.arrows if base.dom(a) == source and base.cod(a) == target]
        return hom_table[key]

    budget = guard.max_cone_candidates
    examined = 0
    for apex in base.objects:
        if dual:
            options = [hom(on_objects(i), apex) for i in index_list]
        else:
            options = [hom(apex, on_objects(i)) for i in index_list]
        count = 1
        for opt in options:
            count *= len(opt)
        examined += count
        if examined > budget:
            raise EnumerationBoundExceeded("cone candidates", budget)
        for combination in itertools.product(*options):
            legs = dict(zip(index_list, combination))
            if not legs_commute(base, eq, legs, diagram, dual, guard):
                continue
            item = Cocone(apex, legs, diagram) if dual else Cone(apex, legs, diagram)
            category._admit(item)

    items = category._items
    for position, item in enumerate(items):
        category._link(position, position, base.id(category._apex(item)))

    by_apex = category._by_apex
    for arrow in base.arrows:
        sources = by_apex.get(base.dom(arrow), ())
        targets = by_apex.get(base.cod(arrow), ())
        if not sources or not targets:
            continue
        if dual:
            # m ∘ legs_A[i] = legs_B[i]
            for s in sources:
                pushed = {i: base.compose(arrow, items[s].legs[i]) for i in index_list}
                for t in targets:
                    if all(eq(pushed[i], items[t].legs[i]) for i in index_list):
                        category._link(s, t, arrow)
        else:
            # legs_B[i] ∘ m = legs_A[i]
            for t in targets:
                pulled = {i: base.compose(items[t].legs[i], arrow) for i in index_list}
                for s in sources:
                    if all(eq(pulled[i], items[s].legs[i]) for i in index_list):
                        category._link(s, t, arrow)

    _logger.debug("%s: %d candidates examined, %d objects, %d arrows",
                  type(category).__name__, examined, len(items), len(category._arrows))


def make_cone_category(base: Any, indices: Sequence[Any], on_objects: Assignment, diagram: DiagramLike,
                       eq: Optional[Equality] = None,
                       guard: Optional[EnumerationGuard] = None) -> ConeCategory:
    """枚举图表上的全部锥与中介箭头

    Raises:
        DiagramConfigurationError: 图表与索引族不一致, 或图表非函子
        EnumerationBoundExceeded: 候选腿族数量超过护栏
    """
    eq = resolve_equality(base, eq)
    guard = guard or EnumerationGuard()
    lookup = as_assignment(on_objects, "on_objects")
    _validate_configuration(base, eq, indices, lookup, diagram, guard)
    category = ConeCategory(base, eq, indices)
    _populate(category, base, eq, lookup, diagram, guard)
    return category


def make_cocone_category(base: Any, indices: Sequence[Any], on_objects: Assignment, diagram: DiagramLike,
                         eq: Optional[Equality] = None,
                         guard: Optional[EnumerationGuard] = None) -> CoconeCategory:
    """枚举图表上的全部余锥与中介箭头"""
    eq = resolve_equality(base, eq)
    guard = guard or EnumerationGuard()
    lookup = as_assignment(on_objects, "on_objects")
    _validate_configuration(base, eq, indices, lookup, diagram, guard)
    category = CoconeCategory(base, eq, indices)
    _populate(category, base, eq, lookup, diagram, guard)
    return category


# ============================================================================
# Section 4: 泛性质检验
# ============================================================================


@dataclass(frozen=True)
class UniversalityFailure:
    """失败见证: 出问题的 (余)锥及其实际箭头集合"""
    source: Any
    arrows: Tuple[ConeMorphism, ...]
    reason: str


@dataclass(frozen=True)
class ConeTerminalityWitness:
    holds: bool
    located_limit: Any = None
    mediators: Tuple[ConeMorphism, ...] = ()
    failure: Optional[UniversalityFailure] = None
    reason: Optional[str] = None

    def mediator_for(self, position: int) -> Optional[ConeMorphism]:
        return self.mediators[position] if self.holds else None


@dataclass(frozen=True)
class CoconeInitialityWitness:
    holds: bool
    located_colimit: Any = None
    mediators: Tuple[ConeMorphism, ...] = ()
    failure: Optional[UniversalityFailure] = None
    reason: Optional[str] = None

    def mediator_for(self, position: int) -> Optional[ConeMorphism]:
        return self.mediators[position] if self.holds else None


@dataclass(frozen=True)
class _UniversalVerdict:
    """终/初对象检验的中间结论"""
    holds: bool
    located: Any = None
    mediators: Tuple[ConeMorphism, ...] = ()
    failure: Optional[UniversalityFailure] = None
    reason: Optional[str] = None


def _check_universal(category: _ApexCategory, candidate: Any, outgoing: bool) -> _UniversalVerdict:
    anchor = category.position_of(candidate)
    if anchor is None:
        return _UniversalVerdict(False, reason="candidate is not an object of the enumerated category")
    located = category.objects[anchor]

    mediators: List[ConeMorphism] = []
    for position, item in enumerate(category.objects):
        if outgoing:
            arrows = category.morphisms_between(anchor, position)
        else:
            arrows = category.morphisms_between(position, anchor)
        if len(arrows) != 1:
            direction = "from" if outgoing else "into"
            reason = f"object #{position} has {len(arrows)} morphisms {direction} the candidate"
            return _UniversalVerdict(False, located, failure=UniversalityFailure(item, tuple(arrows), reason),
                                     reason=reason)
        mediators.append(arrows[0])

    identity = category.base.id(category._apex(located))
    if not category._base_eq(mediators[anchor].mediator, identity):
        reason = "the candidate's endomorphism is not its identity"
        return _UniversalVerdict(False, located, failure=UniversalityFailure(located, (mediators[anchor],), reason),
                                 reason=reason)
    return _UniversalVerdict(True, located, tuple(mediators))


def check_terminal_cone(cone_category: ConeCategory, candidate: Cone) -> ConeTerminalityWitness:
    """candidate 是否为锥范畴的终对象 (即图表的极限)"""
    verdict = _check_universal(cone_category, candidate, outgoing=False)
    _logger.debug("terminality over %d cones: holds=%s", len(cone_category), verdict.holds)
    return ConeTerminalityWitness(verdict.holds, verdict.located, verdict.mediators, verdict.failure, verdict.reason)


def check_initial_cocone(cocone_category: CoconeCategory, candidate: Cocone) -> CoconeInitialityWitness:
    """candidate 是否为余锥范畴的初对象 (即图表的余极限)"""
    verdict = _check_universal(cocone_category, candidate, outgoing=True)
    _logger.debug("initiality over %d cocones: holds=%s", len(cocone_category), verdict.holds)
    return CoconeInitialityWitness(verdict.holds, verdict.located, verdict.mediators, verdict.failure, verdict.reason)


__all__ = [
    "ConeMorphism",
    "CoconeMorphism",
    "ConeCategory",
    "CoconeCategory",
    "make_cone_category",
    "make_cocone_category",
    "UniversalityFailure",
    "ConeTerminalityWitness",
    "CoconeInitialityWitness",
    "check_terminal_cone",
    "check_initial_cocone",
]
