#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
有限范畴契约 + 异常层级 + 枚举护栏

本模块是极限/余极限引擎的最底层:
1. Category / FiniteCategory 协议 - 调用方提供的基范畴接口 {id, compose, dom, cod, eq}
2. FiniteCategoryData - 显式枚举的有限范畴 (对象/箭头列表 + 运算)
3. SmallIndex / EnumerationGuard - 按需物化的索引 + 枚举上界
4. 异常层级 - 配置错误抛出; 验证失败以结构化结果返回; 预言机失败被捕获归一化

工程红线:
- 禁指针相等: 态射比较只经由 eq 能力, 不回退到 `is`
- 禁无界枚举: 任何枚举都必须经过 EnumerationGuard
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    Any, Callable, Iterable, Iterator, List, Optional, Protocol, Sequence,
    Tuple, runtime_checkable,
)

_logger = logging.getLogger(__name__)

Equality = Callable[[Any, Any], bool]

# ============================================================================
# Section 0: 默认枚举上界
# ============================================================================

_DEFAULT_MAX_OBJECTS = 4096          # SmallIndex 物化对象数上界
_DEFAULT_MAX_ARROWS = 65536          # SmallIndex 物化箭头数上界
_DEFAULT_MAX_CONE_CANDIDATES = 1_000_000  # 锥腿组合 (笛卡尔积) 的上界


# ============================================================================
# Section 1: 异常层级
# ============================================================================


class CategoricalError(Exception):
    """极限引擎基础异常"""
    pass


class DiagramConfigurationError(CategoricalError):
    """图表配置错误: 对象/箭头越出索引族, 端点不匹配等。总是立即抛出。"""
    pass


class FunctorLawViolation(DiagramConfigurationError):
    """函子律违反: F(id) ≠ id 或 F(g∘f) ≠ F(g)∘F(f)"""

    def __init__(self, functor_name: str, law: str, details: str):
        self.functor_name = functor_name
        self.law = law
        self.details = details
        super().__init__(f"Functor '{functor_name}' violates {law} law: {details}")


class DiagramClosureError(DiagramConfigurationError):
    """图表闭包失败的基类"""
    pass


class AmbientMembershipError(DiagramClosureError):
    """种子对象/箭头不在环境范畴中"""
    pass


class EndpointMismatchError(DiagramClosureError):
    """像态射的端点与箭头端点的像不一致"""
    pass


class InconsistentCompositeError(DiagramClosureError):
    """同一箭头经两条路径得到的像在目标等式下不相等"""

    def __init__(self, arrow: Any, existing: Any, proposed: Any):
        self.arrow = arrow
        self.existing = existing
        self.proposed = proposed
        super().__init__(
            f"Inconsistent composite for arrow {arrow!r}: "
            f"existing image {existing!r} disagrees with {proposed!r}"
        )


class ClosureExtensionError(DiagramClosureError):
    """部分赋值无法扩张到闭包的每一条箭头"""
    pass


class EnumerationBoundExceeded(CategoricalError):
    """枚举超过护栏上界"""

    def __init__(self, what: str, limit: int):
        self.what = what
        self.limit = limit
        super().__init__(f"Enumeration of {what} exceeded the configured bound of {limit}")


class LimitInvariantViolation(CategoricalError):
    """内部不变量被破坏: 规范锥非终对象, 或两种中介态射推导不一致"""
    pass


# ============================================================================
# Section 2: 范畴契约
# ============================================================================


@runtime_checkable
class Category(Protocol):
    """基范畴接口。compose(g, f) 表示 g∘f, 端点不匹配时抛出。"""

    def id(self, obj: Any) -> Any: ...

    def compose(self, g: Any, f: Any) -> Any: ...

    def dom(self, arrow: Any) -> Any: ...

    def cod(self, arrow: Any) -> Any: ...


@runtime_checkable
class FiniteCategory(Category, Protocol):
    """可枚举的有限范畴: 额外提供 objects / arrows / eq"""

    @property
    def objects(self) -> Sequence[Any]: ...

    @property
    def arrows(self) -> Sequence[Any]: ...

    def eq(self, left: Any, right: Any) -> bool: ...


def resolve_equality(category: Any, eq: Optional[Equality] = None) -> Equality:
    """取得态射等式能力: 显式传入优先, 其次范畴自带的 eq。

    两者都缺失时是配置错误; 不回退到对象身份比较。
    """
    if eq is not None:
        return eq
    candidate = getattr(category, "eq", None)
    if callable(candidate):
        return candidate
    raise DiagramConfigurationError(
        f"No morphism equality available for category {type(category).__name__}; "
        "pass eq= explicitly"
    )


class FiniteCategoryData:
    """显式有限范畴

    对象与箭头以列表给出, 运算以可调用对象给出。对象须为可哈希值 (按 == 比较),
    箭头只通过 eq 比较。src/dst 是 dom/cod 的别名。
    """

    def __init__(self,
                 objects: Iterable[Any],
                 arrows: Iterable[Any],
                 identity: Callable[[Any], Any],
                 compose: Callable[[Any, Any], Any],
                 dom: Callable[[Any], Any],
                 cod: Callable[[Any], Any],
                 eq: Optional[Equality] = None,
                 name: str = "C"):
        self._objects: Tuple[Any, ...] = tuple(objects)
        self._arrows: Tuple[Any, ...] = tuple(arrows)
        self._identity = identity
        self._compose = compose
        self._dom = dom
        self._cod = cod
        self._eq: Equality = eq if eq is not None else (lambda a, b: a == b)
        self.name = name

    @property
    def objects(self) -> Tuple[Any, ...]:
        return self._objects

    @property
    def arrows(self) -> Tuple[Any, ...]:
        return self._arrows

    def id(self, obj: Any) -> Any:
        return self._identity(obj)

    def compose(self, g: Any, f: Any) -> Any:
        if self._cod(f) != self._dom(g):
            raise ValueError(
                f"Cannot compose in {self.name}: cod(f)={self._cod(f)!r} != dom(g)={self._dom(g)!r}"
            )
        return self._compose(g, f)

    def dom(self, arrow: Any) -> Any:
        return self._dom(arrow)

    def cod(self, arrow: Any) -> Any:
        return self._cod(arrow)

    src = dom
    dst = cod

    def eq(self, left: Any, right: Any) -> bool:
        return self._eq(left, right)

    def has_object(self, obj: Any) -> bool:
        return obj in self._objects

    def has_arrow(self, arrow: Any) -> bool:
        return self.index_of(arrow) is not None

    def index_of(self, arrow: Any) -> Optional[int]:
        """箭头在竞技场中的稳定位置 (经由 eq 匹配)"""
        for position, candidate in enumerate(self._arrows):
            if self._eq(candidate, arrow):
                return position
        return None

    def hom(self, source: Any, target: Any) -> List[Any]:
        return [a for a in self._arrows if self._dom(a) == source and self._cod(a) == target]

    def __repr__(self) -> str:
        return f"FiniteCategoryData({self.name}, |Ob|={len(self._objects)}, |Ar|={len(self._arrows)})"


# ============================================================================
# Section 3: 小索引与枚举护栏
# ============================================================================


@dataclass
class EnumerationGuard:
    """枚举护栏配置"""
    # 物化 SmallIndex 对象的最大数量
    max_objects: int = _DEFAULT_MAX_OBJECTS
    # 物化 SmallIndex 箭头的最大数量
    max_arrows: int = _DEFAULT_MAX_ARROWS
    # 锥/余锥候选腿组合的最大数量
    max_cone_candidates: int = _DEFAULT_MAX_CONE_CANDIDATES

    def __post_init__(self):
        if self.max_objects <= 0:
            raise ValueError("max_objects must be positive")
        if self.max_arrows <= 0:
            raise ValueError("max_arrows must be positive")
        if self.max_cone_candidates <= 0:
            raise ValueError("max_cone_candidates must be positive")


class SmallIndex:
    """按需物化的索引

    carrier 是返回可迭代对象的工厂; 每次物化都重新迭代, 结果不缓存。
    """

    def __init__(self, carrier: Callable[[], Iterable[Any]], label: str = "index"):
        self._carrier = carrier
        self.label = label

    @classmethod
    def finite(cls, items: Iterable[Any], label: str = "index") -> "SmallIndex":
        frozen = tuple(items)
        return cls(lambda: frozen, label=label)

    def iterate(self) -> Iterator[Any]:
        return iter(self._carrier())

    def materialise(self, limit: int) -> Tuple[Any, ...]:
        """物化为元组; 超过 limit 个元素时抛出 EnumerationBoundExceeded"""
        collected: List[Any] = []
        for item in self.iterate():
            if len(collected) >= limit:
                raise EnumerationBoundExceeded(self.label, limit)
            collected.append(item)
        _logger.debug("materialised %s: %d elements", self.label, len(collected))
        return tuple(collected)


__all__ = [
    "Equality",
    "CategoricalError",
    "DiagramConfigurationError",
    "FunctorLawViolation",
    "DiagramClosureError",
    "AmbientMembershipError",
    "EndpointMismatchError",
    "InconsistentCompositeError",
    "ClosureExtensionError",
    "EnumerationBoundExceeded",
    "LimitInvariantViolation",
    "Category",
    "FiniteCategory",
    "resolve_equality",
    "FiniteCategoryData",
    "EnumerationGuard",
    "SmallIndex",
]
