# -*- coding: utf-8 -*-
"""
形状范畴 (索引范畴)

图表 D: J → C 的定义域 J。提供:
- 空形状 / 离散形状 / 平行对形状
- 有限偏序集 (自反传递闭包 + 覆盖关系) 及其形状范畴
- 由复合表给出的一般有限形状
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .core import DiagramConfigurationError, FiniteCategoryData

_logger = logging.getLogger(__name__)

_IDENTITY_NAME = "id"


@dataclass(frozen=True)
class ShapeArrow:
    """形状范畴中的箭头 source → target"""
    source: Any
    target: Any
    name: str = ""

    @property
    def is_identity(self) -> bool:
        return self.name == _IDENTITY_NAME and self.source == self.target

    def __repr__(self) -> str:
        label = self.name or "→"
        return f"{label}:{self.source}→{self.target}"


def identity_arrow(obj: Any) -> ShapeArrow:
    return ShapeArrow(obj, obj, _IDENTITY_NAME)


def _shape_dom(arrow: ShapeArrow) -> Any:
    return arrow.source


def _shape_cod(arrow: ShapeArrow) -> Any:
    return arrow.target


# ============================================================================
# Section 1: 由复合表给出的有限形状
# ============================================================================


def shape_from_table(objects: Iterable[Any],
                     generators: Iterable[ShapeArrow],
                     composition: Optional[Mapping[Tuple[ShapeArrow, ShapeArrow], ShapeArrow]] = None,
                     name: str = "J") -> FiniteCategoryData:
    """由对象、非恒等箭头与复合表 {(g, f): g∘f} 构造有限形状。

    恒等箭头自动添加; 与恒等的复合不需要出现在表中。
    表中缺失的可复合对视为配置错误 (复合时抛出)。
    """
    objs = tuple(objects)
    gens = tuple(generators)
    table = dict(composition or {})
    for arrow in gens:
        if arrow.name == _IDENTITY_NAME:
            raise DiagramConfigurationError(
                f"Generator {arrow!r} uses the reserved identity name {_IDENTITY_NAME!r}")
        if arrow.source not in objs or arrow.target not in objs:
            raise DiagramConfigurationError(f"Arrow {arrow!r} has endpoints outside the shape objects")
    for (g, f), h in table.items():
        if f.target != g.source or h.source != f.source or h.target != g.target:
            raise DiagramConfigurationError(f"Composition entry {g!r}∘{f!r} = {h!r} has mismatched endpoints")

    def compose(g: ShapeArrow, f: ShapeArrow) -> ShapeArrow:
        if f.is_identity:
            return g
        if g.is_identity:
            return f
        try:
            return table[(g, f)]
        except KeyError:
            raise DiagramConfigurationError(f"Shape {name} has no composite for {g!r}∘{f!r}") from None

    arrows = [identity_arrow(o) for o in objs] + list(gens)
    return FiniteCategoryData(objs, arrows, identity_arrow, compose, _shape_dom, _shape_cod, name=name)


def empty_shape() -> FiniteCategoryData:
    return shape_from_table((), (), name="∅")


def discrete_shape(indices: Iterable[Any]) -> FiniteCategoryData:
    """离散形状: 只有恒等箭头"""
    return shape_from_table(indices, (), name="Disc")


def parallel_pair_shape(source: Any = "s", target: Any = "t",
                        left: str = "f", right: str = "g") -> FiniteCategoryData:
    """平行对 s ⇉ t"""
    if source == target:
        raise DiagramConfigurationError("Parallel pair endpoints must be distinct objects")
    if left == right:
        raise DiagramConfigurationError("Parallel pair arrows must carry distinct names")
    return shape_from_table(
        (source, target),
        (ShapeArrow(source, target, left), ShapeArrow(source, target, right)),
        name="⇉",
    )


# ============================================================================
# Section 2: 有限偏序集
# ============================================================================


@dataclass(frozen=True)
class FinitePoset:
    """有限偏序集 (关系已做自反传递闭包)"""
    elements: Tuple[Any, ...]
    relation: FrozenSet[Tuple[Any, Any]]

    @classmethod
    def from_relations(cls, elements: Iterable[Any],
                       relations: Iterable[Tuple[Any, Any]]) -> "FinitePoset":
        """从生成关系 a ≤ b 计算自反传递闭包; 违反反对称性是配置错误。"""
        elems = tuple(elements)
        members = set(elems)
        pairs: Set[Tuple[Any, Any]] = {(e, e) for e in elems}
        for a, b in relations:
            if a not in members or b not in members:
                raise DiagramConfigurationError(f"Relation {a!r} ≤ {b!r} mentions an element outside the poset")
            pairs.add((a, b))
        # Warshall
        for k in elems:
            for i in elems:
                if (i, k) not in pairs:
                    continue
                for j in elems:
                    if (k, j) in pairs:
                        pairs.add((i, j))
        for a, b in pairs:
            if a != b and (b, a) in pairs:
                raise DiagramConfigurationError(f"Relations are not antisymmetric: {a!r} ≤ {b!r} ≤ {a!r}")
        return cls(elems, frozenset(pairs))

    def leq(self, a: Any, b: Any) -> bool:
        return (a, b) in self.relation

    def covers(self) -> List[Tuple[Any, Any]]:
        """覆盖关系 a ⋖ b: a < b 且无 c 严格介于其间"""
        result: List[Tuple[Any, Any]] = []
        for a in self.elements:
            for b in self.elements:
                if a == b or not self.leq(a, b):
                    continue
                between = any(
                    c != a and c != b and self.leq(a, c) and self.leq(c, b)
                    for c in self.elements
                )
                if not between:
                    result.append((a, b))
        return result

    def cover_path(self, a: Any, b: Any,
                   covers: Optional[Sequence[Tuple[Any, Any]]] = None) -> Optional[List[Tuple[Any, Any]]]:
        """a 到 b 的最短覆盖路径 (广度优先); a == b 时为空路径; 不可达返回 None"""
        if a == b:
            return []
        adjacency: Dict[Any, List[Any]] = {e: [] for e in self.elements}
        for x, y in (covers if covers is not None else self.covers()):
            adjacency[x].append(y)
        parent: Dict[Any, Any] = {a: None}
        queue = deque([a])
        while queue:
            node = queue.popleft()
            for nxt in adjacency[node]:
                if nxt in parent:
                    continue
                parent[nxt] = node
                if nxt == b:
                    path: List[Tuple[Any, Any]] = []
                    cursor = b
                    while parent[cursor] is not None:
                        path.append((parent[cursor], cursor))
                        cursor = parent[cursor]
                    path.reverse()
                    return path
                queue.append(nxt)
        return None


def poset_arrow(a: Any, b: Any) -> ShapeArrow:
    return identity_arrow(a) if a == b else ShapeArrow(a, b, "≤")


def poset_shape(poset: FinitePoset) -> FiniteCategoryData:
    """偏序集视为薄范畴: 每对 a ≤ b 恰有一条箭头"""

    def compose(g: ShapeArrow, f: ShapeArrow) -> ShapeArrow:
        return poset_arrow(f.source, g.target)

    arrows = [poset_arrow(a, b) for a in poset.elements for b in poset.elements if poset.leq(a, b)]
    _logger.debug("poset shape: %d elements, %d arrows", len(poset.elements), len(arrows))
    return FiniteCategoryData(poset.elements, arrows, identity_arrow, compose,
                              _shape_dom, _shape_cod, name="Poset")


__all__ = [
    "ShapeArrow",
    "identity_arrow",
    "shape_from_table",
    "empty_shape",
    "discrete_shape",
    "parallel_pair_shape",
    "FinitePoset",
    "poset_arrow",
    "poset_shape",
]
