# -*- coding: utf-8 -*-
"""
FinSet: 有限集与全函数

对象 FinSetObj 以元素元组为值 (按值相等, 作为规范代表);
态射 FinSetMor 以下标映射 mapping[i] = j 表示 dom.elements[i] ↦ cod.elements[j]。

结构:
- 积: 元素为下标元组; 单因子积取因子本身, 零因子积取终对象
- 余积: 元素为 (tag, i); 单因子取自身, 零因子取初对象
- 等化子: 使两映射相等的元素子集
- 余等化子: 并查集商集, 元素为等价类成员元组
- 拉回计算器 FinSetPullbacks

FiniteFinSet 把给定对象之间的全部映射枚举出来, 得到可供锥范畴枚举的有限范畴。
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .core import EnumerationBoundExceeded, EnumerationGuard
from .limits import CoequalizerWitness, CoproductWitness, EqualizerWitness, FactorizationResult, ProductWitness
from .pullback_equalizer import PullbackData

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinSetObj:
    """有限集"""
    elements: Tuple[Any, ...]

    def __post_init__(self):
        object.__setattr__(self, "elements", tuple(self.elements))
        if len(set(self.elements)) != len(self.elements):
            raise ValueError(f"Finite set has repeated elements: {self.elements!r}")

    def __len__(self) -> int:
        return len(self.elements)

    def index(self, element: Any) -> int:
        return self.elements.index(element)

    def __repr__(self) -> str:
        return "{" + ", ".join(repr(e) for e in self.elements) + "}"


@dataclass(frozen=True)
class FinSetMor:
    """全函数 dom → cod, mapping 为下标表"""
    dom: FinSetObj
    cod: FinSetObj
    mapping: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, "mapping", tuple(self.mapping))
        if len(self.mapping) != len(self.dom):
            raise ValueError(
                f"Mapping of length {len(self.mapping)} incompatible with domain of size {len(self.dom)}")
        for target in self.mapping:
            if not 0 <= target < len(self.cod):
                raise ValueError(f"Mapping value {target} outside codomain of size {len(self.cod)}")

    def __call__(self, element: Any) -> Any:
        return self.cod.elements[self.mapping[self.dom.index(element)]]

    def __repr__(self) -> str:
        pairs = ", ".join(f"{e!r}↦{self.cod.elements[j]!r}" for e, j in zip(self.dom.elements, self.mapping))
        return f"[{pairs}]"


def finset_obj(*elements: Any) -> FinSetObj:
    return FinSetObj(tuple(elements))


def finset_map(dom: FinSetObj, cod: FinSetObj,
               assignment: Union[Mapping[Any, Any], Callable[[Any], Any]]) -> FinSetMor:
    """由元素层面的赋值 (映射或函数) 构造 FinSetMor"""
    lookup = assignment.__getitem__ if isinstance(assignment, Mapping) else assignment
    return FinSetMor(dom, cod, tuple(cod.index(lookup(e)) for e in dom.elements))


# ============================================================================
# Section 1: FinSet 范畴
# ============================================================================


class FinSetCategory:
    """有限集范畴及其 (余)极限结构"""

    name = "FinSet"
    terminal_obj = FinSetObj(((),))
    initial_obj = FinSetObj(())

    def id(self, obj: FinSetObj) -> FinSetMor:
        return FinSetMor(obj, obj, tuple(range(len(obj))))

    def compose(self, g: FinSetMor, f: FinSetMor) -> FinSetMor:
        if f.cod != g.dom:
            raise ValueError(f"Cannot compose: cod(f)={f.cod!r} != dom(g)={g.dom!r}")
        return FinSetMor(f.dom, g.cod, tuple(g.mapping[j] for j in f.mapping))

    def dom(self, arrow: FinSetMor) -> FinSetObj:
        return arrow.dom

    def cod(self, arrow: FinSetMor) -> FinSetObj:
        return arrow.cod

    src = dom
    dst = cod

    def eq(self, left: FinSetMor, right: FinSetMor) -> bool:
        return left.dom == right.dom and left.cod == right.cod and left.mapping == right.mapping

    def hom(self, source: FinSetObj, target: FinSetObj) -> List[FinSetMor]:
        return [FinSetMor(source, target, m)
                for m in itertools.product(range(len(target)), repeat=len(source))]

    # ---- 终 / 初对象 ----

    def terminate(self, obj: FinSetObj) -> FinSetMor:
        return FinSetMor(obj, self.terminal_obj, (0,) * len(obj))

    def initiate(self, obj: FinSetObj) -> FinSetMor:
        return FinSetMor(self.initial_obj, obj, ())

    # ---- 积 ----

    def product(self, objects: Sequence[FinSetObj]) -> ProductWitness:
        factors = list(objects)
        if not factors:
            return ProductWitness(self.terminal_obj, ())
        if len(factors) == 1:
            return ProductWitness(factors[0], (self.id(factors[0]),))
        elements = tuple(itertools.product(*(range(len(o)) for o in factors)))
        apex = FinSetObj(elements)
        projections = tuple(
            FinSetMor(apex, factor, tuple(e[k] for e in elements)) for k, factor in enumerate(factors)
        )
        return ProductWitness(apex, projections)

    def tuple(self, domain: FinSetObj, legs: Sequence[FinSetMor], product_obj: FinSetObj) -> FinSetMor:
        legs = list(legs)
        for leg in legs:
            if leg.dom != domain:
                raise ValueError(f"Leg {leg!r} does not start at {domain!r}")
        if not legs:
            return self.terminate(domain)
        if len(legs) == 1:
            if legs[0].cod != product_obj:
                raise ValueError("Single leg does not land in the product object")
            return legs[0]
        position = {e: k for k, e in enumerate(product_obj.elements)}
        mapping = []
        for x in range(len(domain)):
            key = tuple(leg.mapping[x] for leg in legs)
            if key not in position:
                raise ValueError(f"Tuple {key!r} is not an element of the product object")
            mapping.append(position[key])
        return FinSetMor(domain, product_obj, tuple(mapping))

    # ---- 余积 ----

    def coproduct(self, objects: Sequence[FinSetObj]) -> CoproductWitness:
        summands = list(objects)
        if not summands:
            return CoproductWitness(self.initial_obj, ())
        if len(summands) == 1:
            return CoproductWitness(summands[0], (self.id(summands[0]),))
        elements = tuple((tag, i) for tag, s in enumerate(summands) for i in range(len(s)))
        apex = FinSetObj(elements)
        injections = []
        offset = 0
        for summand in summands:
            injections.append(FinSetMor(summand, apex, tuple(range(offset, offset + len(summand)))))
            offset += len(summand)
        return CoproductWitness(apex, tuple(injections))

    def cotuple(self, coproduct_obj: FinSetObj, legs: Sequence[FinSetMor], codomain: FinSetObj) -> FinSetMor:
        legs = list(legs)
        for leg in legs:
            if leg.cod != codomain:
                raise ValueError(f"Leg {leg!r} does not land in {codomain!r}")
        if not legs:
            return self.initiate(codomain)
        if len(legs) == 1:
            if legs[0].dom != coproduct_obj:
                raise ValueError("Single leg does not start at the coproduct object")
            return legs[0]
        return FinSetMor(coproduct_obj, codomain,
                         tuple(legs[tag].mapping[i] for tag, i in coproduct_obj.elements))

    # ---- 等化子 / 余等化子 ----

    def equalizer(self, f: FinSetMor, g: FinSetMor) -> EqualizerWitness:
        if f.dom != g.dom or f.cod != g.cod:
            raise ValueError("Equalizer requires a parallel pair")
        kept = [i for i in range(len(f.dom)) if f.mapping[i] == g.mapping[i]]
        apex = FinSetObj(tuple(f.dom.elements[i] for i in kept))
        return EqualizerWitness(apex, FinSetMor(apex, f.dom, tuple(kept)))

    def coequalizer(self, f: FinSetMor, g: FinSetMor) -> CoequalizerWitness:
        if f.dom != g.dom or f.cod != g.cod:
            raise ValueError("Coequalizer requires a parallel pair")
        parent = list(range(len(f.cod)))

        def find(x: int) -> int:
            while parent[x] != x:
                parent[x] = parent[parent[x]]
                x = parent[x]
            return x

        for i in range(len(f.dom)):
            a, b = find(f.mapping[i]), find(g.mapping[i])
            if a != b:
                parent[max(a, b)] = min(a, b)

        roots = sorted({find(y) for y in range(len(f.cod))})
        label = {root: k for k, root in enumerate(roots)}
        classes = [[] for _ in roots]
        for y in range(len(f.cod)):
            classes[label[find(y)]].append(f.cod.elements[y])
        quotient = FinSetObj(tuple(tuple(members) for members in classes))
        return CoequalizerWitness(
            quotient, FinSetMor(f.cod, quotient, tuple(label[find(y)] for y in range(len(f.cod)))))

    # ---- 分解预言机 ----

    def factor_through_equalizer(self, left: FinSetMor, right: FinSetMor,
                                 inclusion: FinSetMor, fork: FinSetMor) -> FactorizationResult:
        if fork.cod != inclusion.cod:
            return FactorizationResult(False, reason="fork and inclusion have different codomains")
        position = {target: k for k, target in enumerate(inclusion.mapping)}
        mapping = []
        for x, target in enumerate(fork.mapping):
            if target not in position:
                return FactorizationResult(
                    False, reason=f"fork sends {fork.dom.elements[x]!r} outside the equalizer")
            mapping.append(position[target])
        return FactorizationResult(True, FinSetMor(fork.dom, inclusion.dom, tuple(mapping)))

    def factor_through_coequalizer(self, left: FinSetMor, right: FinSetMor,
                                   coequalizer: FinSetMor, fork: FinSetMor) -> FactorizationResult:
        if fork.dom != coequalizer.dom:
            return FactorizationResult(False, reason="fork and coequalizer have different domains")
        values: Dict[int, int] = {}
        for y, cls in enumerate(coequalizer.mapping):
            value = fork.mapping[y]
            if values.setdefault(cls, value) != value:
                return FactorizationResult(False, reason="fork is not constant on coequalizer classes")
        if len(values) != len(coequalizer.cod):
            return FactorizationResult(False, reason="coequalizer is not surjective")
        return FactorizationResult(
            True, FinSetMor(coequalizer.cod, fork.cod, tuple(values[k] for k in range(len(coequalizer.cod)))))

    def __repr__(self) -> str:
        return self.name


FINSET = FinSetCategory()


class FiniteFinSet(FinSetCategory):
    """给定有限个有限集之间全部映射构成的有限范畴"""

    def __init__(self, objects: Iterable[FinSetObj], name: str = "FinSet|fin"):
        unique: List[FinSetObj] = []
        for obj in objects:
            if obj not in unique:
                unique.append(obj)
        self._objects = tuple(unique)
        self._arrows = tuple(arrow for a in self._objects for b in self._objects for arrow in self.hom(a, b))
        self.name = name
        _logger.debug("%s: %d objects, %d arrows", name, len(self._objects), len(self._arrows))

    @property
    def objects(self) -> Tuple[FinSetObj, ...]:
        return self._objects

    @property
    def arrows(self) -> Tuple[FinSetMor, ...]:
        return self._arrows


def finite_finset_category(objects: Iterable[FinSetObj],
                           guard: Optional[EnumerationGuard] = None) -> FiniteFinSet:
    """枚举前先估算箭头数, 超过护栏即拒绝"""
    guard = guard or EnumerationGuard()
    unique: List[FinSetObj] = []
    for obj in objects:
        if obj not in unique:
            unique.append(obj)
    total = sum(len(b) ** len(a) for a in unique for b in unique)
    if total > guard.max_arrows:
        raise EnumerationBoundExceeded("FinSet arrows", guard.max_arrows)
    return FiniteFinSet(unique)


# ============================================================================
# Section 2: 拉回
# ============================================================================


class FinSetPullbacks:
    """FinSet 中的拉回: X ×_Z Y = {(x, y) | f(x) = h(y)}"""

    def pullback(self, f: FinSetMor, h: FinSetMor) -> PullbackData:
        if f.cod != h.cod:
            raise ValueError("Pullback requires a cospan")
        pairs = tuple((x, y) for x in range(len(f.dom)) for y in range(len(h.dom))
                      if f.mapping[x] == h.mapping[y])
        apex = FinSetObj(pairs)
        return PullbackData(
            apex,
            FinSetMor(apex, f.dom, tuple(x for x, _ in pairs)),
            FinSetMor(apex, h.dom, tuple(y for _, y in pairs)),
        )

    def factor_cone(self, target: PullbackData, cone: PullbackData) -> FactorizationResult:
        if cone.to_domain.cod != target.to_domain.cod or cone.to_anchor.cod != target.to_anchor.cod:
            return FactorizationResult(False, reason="cone legs do not land in the pullback legs' codomains")
        position = {
            (d, a): k for k, (d, a) in enumerate(zip(target.to_domain.mapping, target.to_anchor.mapping))
        }
        mapping = []
        for c in range(len(cone.apex)):
            key = (cone.to_domain.mapping[c], cone.to_anchor.mapping[c])
            if key not in position:
                return FactorizationResult(False, reason=f"cone element {cone.apex.elements[c]!r} misses the pullback")
            mapping.append(position[key])
        return FactorizationResult(True, FinSetMor(cone.apex, target.apex, tuple(mapping)))


__all__ = [
    "FinSetObj",
    "FinSetMor",
    "finset_obj",
    "finset_map",
    "FinSetCategory",
    "FINSET",
    "FiniteFinSet",
    "finite_finset_category",
    "FinSetPullbacks",
]
