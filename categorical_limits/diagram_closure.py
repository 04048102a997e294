# -*- coding: utf-8 -*-
"""
图表闭包: 从生成箭头的像扩张出函子性赋值

给定环境有限范畴 J、种子对象、种子箭头及其在目标范畴 C 中的像:
  (a) 生成子范畴: 对恒等与复合封闭的最小子范畴
  (b) 以恒等与种子初始化 箭头→像 表, 插入时校验端点
  (c) 不动点迭代: 对每个像已知的可复合对 (f, g), 在 J 与 C 中同时复合并插入

重复插入时两个像必须在目标等式下相等, 否则抛出 InconsistentCompositeError。
闭包中仍有箭头没有像时抛出 ClosureExtensionError。

偏序集特化 saturate: 沿最短覆盖路径 (BFS) 复合, 不物化整个闭包;
仅当任意两条路径不会给出不同像时有效。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .core import (
    AmbientMembershipError,
    ClosureExtensionError,
    EndpointMismatchError,
    Equality,
    FiniteCategoryData,
    InconsistentCompositeError,
    resolve_equality,
)
from .diagrams import Assignment, FiniteDiagram, as_assignment, make_finite_diagram
from .shapes import FinitePoset, poset_shape

_logger = logging.getLogger(__name__)

_MISSING = object()


def _ambient_contains(ambient: Any, arrow: Any) -> bool:
    eq = resolve_equality(ambient)
    return any(eq(candidate, arrow) for candidate in ambient.arrows)


# ============================================================================
# Section 1: 生成子范畴
# ============================================================================


def generate_subcategory(ambient: Any,
                         objects: Iterable[Any] = (),
                         arrows: Iterable[Any] = (),
                         name: Optional[str] = None) -> FiniteCategoryData:
    """环境范畴中由种子生成的子范畴 (恒等 + 复合的不动点)

    Raises:
        AmbientMembershipError: 种子对象或箭头不在环境范畴中
    """
    eq = resolve_equality(ambient)
    seed_arrows = list(arrows)

    closure_objects: List[Any] = []
    for obj in objects:
        if obj not in ambient.objects:
            raise AmbientMembershipError(f"Seed object {obj!r} is absent from the ambient category")
        if obj not in closure_objects:
            closure_objects.append(obj)
    for arrow in seed_arrows:
        if not _ambient_contains(ambient, arrow):
            raise AmbientMembershipError(f"Seed arrow {arrow!r} is absent from the ambient category")
        for endpoint in (ambient.dom(arrow), ambient.cod(arrow)):
            if endpoint not in closure_objects:
                closure_objects.append(endpoint)

    arena: List[Any] = []

    def admit(arrow: Any) -> bool:
        if any(eq(existing, arrow) for existing in arena):
            return False
        arena.append(arrow)
        return True

    for obj in closure_objects:
        admit(ambient.id(obj))
    for arrow in seed_arrows:
        admit(arrow)

    passes = 0
    grown = True
    while grown:
        grown = False
        passes += 1
        snapshot = list(arena)
        for f in snapshot:
            for g in snapshot:
                if ambient.cod(f) != ambient.dom(g):
                    continue
                if admit(ambient.compose(g, f)):
                    grown = True

    _logger.debug("generated subcategory: %d objects, %d arrows after %d passes",
                  len(closure_objects), len(arena), passes)
    return FiniteCategoryData(
        closure_objects, arena,
        ambient.id, ambient.compose, ambient.dom, ambient.cod,
        eq=eq, name=name or f"⟨{getattr(ambient, 'name', 'J')}⟩",
    )


# ============================================================================
# Section 2: 闭包赋值
# ============================================================================


@dataclass(frozen=True, eq=False)
class ClosedDiagram:
    """闭包结果: 生成子范畴 + 每条箭头的像 (按竞技场位置对齐)"""
    shape: FiniteCategoryData
    on_objects: Callable[[Any], Any]
    images: Tuple[Any, ...]

    @property
    def objects(self) -> Tuple[Any, ...]:
        return self.shape.objects

    @property
    def arrows(self) -> Tuple[Any, ...]:
        return self.shape.arrows

    def on_morphisms(self, arrow: Any) -> Any:
        position = self.shape.index_of(arrow)
        if position is None:
            raise AmbientMembershipError(f"{arrow!r} is not an arrow of the closed diagram")
        return self.images[position]

    def arrow_lookup(self) -> List[Tuple[Any, Any]]:
        return list(zip(self.shape.arrows, self.images))

    def as_finite_diagram(self, name: str = "D") -> FiniteDiagram:
        return make_finite_diagram(self.shape, self.on_objects, self.on_morphisms, name=name)


def close_finite_diagram(ambient: Any,
                         target: Any,
                         on_objects: Assignment,
                         seeds: Iterable[Tuple[Any, Any]],
                         objects: Iterable[Any] = (),
                         eq: Optional[Equality] = None) -> ClosedDiagram:
    """把种子箭头的像扩张到生成子范畴的每一条箭头

    Args:
        ambient: 环境有限范畴 (形状)
        target: 目标范畴 C
        on_objects: 对象赋值 J₀ → C₀
        seeds: (箭头, 像) 对
        objects: 额外的种子对象
        eq: 目标态射等式; 缺省取 target.eq

    Raises:
        AmbientMembershipError / EndpointMismatchError /
        InconsistentCompositeError / ClosureExtensionError
    """
    target_eq = resolve_equality(target, eq)
    object_image = as_assignment(on_objects, "on_objects")
    seed_pairs = list(seeds)

    closure = generate_subcategory(ambient, objects, [arrow for arrow, _ in seed_pairs])
    images: List[Any] = [_MISSING] * len(closure.arrows)

    def record(arrow: Any, image: Any) -> bool:
        expected_dom = object_image(closure.dom(arrow))
        expected_cod = object_image(closure.cod(arrow))
        if target.dom(image) != expected_dom or target.cod(image) != expected_cod:
            raise EndpointMismatchError(
                f"Image of {arrow!r} runs {target.dom(image)!r}→{target.cod(image)!r}, "
                f"expected {expected_dom!r}→{expected_cod!r}"
            )
        position = closure.index_of(arrow)
        if position is None:
            raise AmbientMembershipError(f"{arrow!r} is absent from the generated subcategory")
        existing = images[position]
        if existing is not _MISSING:
            if not target_eq(existing, image):
                raise InconsistentCompositeError(arrow, existing, image)
            return False
        images[position] = image
        return True

    for obj in closure.objects:
        record(closure.id(obj), target.id(object_image(obj)))
    for arrow, image in seed_pairs:
        record(arrow, image)

    passes = 0
    changed = True
    while changed:
        changed = False
        passes += 1
        for f_position, f in enumerate(closure.arrows):
            f_image = images[f_position]
            if f_image is _MISSING:
                continue
            for g_position, g in enumerate(closure.arrows):
                g_image = images[g_position]
                if g_image is _MISSING or closure.cod(f) != closure.dom(g):
                    continue
                if record(closure.compose(g, f), target.compose(g_image, f_image)):
                    changed = True

    missing = [a for a, image in zip(closure.arrows, images) if image is _MISSING]
    if missing:
        raise ClosureExtensionError(
            f"Could not extend the assignment to {len(missing)} closure arrows, e.g. {missing[0]!r}"
        )
    _logger.debug("closed diagram: %d arrows assigned after %d passes", len(images), passes)
    return ClosedDiagram(closure, object_image, tuple(images))


# ============================================================================
# Section 3: 偏序集饱和
# ============================================================================


class SaturatedPosetDiagram:
    """偏序集图表的惰性饱和: arrow(a, b) 沿最短给定路径复合, 结果按实例缓存"""

    def __init__(self, poset: FinitePoset, on_objects: Callable[[Any], Any],
                 covers: Mapping[Tuple[Any, Any], Any], target: Any):
        self.poset = poset
        self.on_objects = on_objects
        self.target = target
        self._covers: Dict[Tuple[Any, Any], Any] = dict(covers)
        self._edges: List[Tuple[Any, Any]] = list(self._covers)
        self._cache: Dict[Tuple[Any, Any], Any] = {}

    def arrow(self, a: Any, b: Any) -> Optional[Any]:
        """a ≤ b 时返回 D(a→b), 否则 None"""
        key = (a, b)
        if key in self._cache:
            return self._cache[key]
        if not self.poset.leq(a, b):
            return None
        if a == b:
            result = self.target.id(self.on_objects(a))
        elif key in self._covers:
            result = self._covers[key]
        else:
            path = self.poset.cover_path(a, b, self._edges)
            if path is None:
                raise ClosureExtensionError(f"No cover path generates {a!r}→{b!r}")
            result = self._covers[path[0]]
            for step in path[1:]:
                result = self.target.compose(self._covers[step], result)
        self._cache[key] = result
        return result

    def materialise(self, name: str = "D") -> FiniteDiagram:
        """物化为偏序集形状上的 FiniteDiagram (不验证函子性)"""
        return make_finite_diagram(
            poset_shape(self.poset), self.on_objects,
            lambda arrow: self.arrow(arrow.source, arrow.target), name=name,
        )


def saturate(poset: FinitePoset, on_objects: Assignment,
             covers: Mapping[Tuple[Any, Any], Any], target: Any) -> SaturatedPosetDiagram:
    """校验覆盖数据并返回惰性饱和图表

    Raises:
        AmbientMembershipError: 覆盖不是偏序集中的严格关系
        EndpointMismatchError: 覆盖像的端点不对
    """
    object_image = as_assignment(on_objects, "on_objects")
    for (a, b), morphism in covers.items():
        if a == b or not poset.leq(a, b):
            raise AmbientMembershipError(f"{a!r}→{b!r} is not a strict relation of the poset")
        if target.dom(morphism) != object_image(a) or target.cod(morphism) != object_image(b):
            raise EndpointMismatchError(f"Cover {a!r}→{b!r} has an image with mismatched endpoints")
    return SaturatedPosetDiagram(poset, object_image, covers, target)


__all__ = [
    "generate_subcategory",
    "ClosedDiagram",
    "close_finite_diagram",
    "SaturatedPosetDiagram",
    "saturate",
]
