# -*- coding: utf-8 -*-
"""
由拉回导出等化子

f, g: X → Y 的等化子 = ⟨f, g⟩: X → Y×Y 沿对角线 Δ: Y → Y×Y 的拉回:

        E ──anchor──▶ Y
        │             │
    incl│             │Δ = ⟨id, id⟩
        ▼             ▼
        X ──⟨f, g⟩──▶ Y×Y

认证记录存放在显式侧表 SpanRegistry 中, 以竞技场位置 (整数) 为键;
包含态射通过等式能力匹配到其位置。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from .core import DiagramConfigurationError, Equality, resolve_equality
from .limits import EqualizerWitness, FactorizationResult, call_factorizer

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class PullbackData:
    """拉回方块: apex 及其到两条腿定义域的投影"""
    apex: Any
    to_domain: Any
    to_anchor: Any


class PullbackCalculator(Protocol):
    def pullback(self, f: Any, h: Any) -> PullbackData: ...

    def factor_cone(self, target: PullbackData, cone: PullbackData) -> FactorizationResult: ...


@dataclass(frozen=True, eq=False)
class EqualizerSpanWitness:
    left: Any
    right: Any
    pairing: Any
    diagonal: Any
    pullback: PullbackData

    @property
    def inclusion(self) -> Any:
        return self.pullback.to_domain

    @property
    def anchor(self) -> Any:
        return self.pullback.to_anchor


class SpanRegistry:
    """等化子认证侧表: 位置 → 见证

    条目以 (left, right, inclusion) 三元组定位; 不同平行对的包含态射可以相等。
    """

    def __init__(self, eq: Equality):
        self._eq = eq
        self._entries: List[EqualizerSpanWitness] = []

    def register(self, witness: EqualizerSpanWitness) -> int:
        existing = self.locate(witness.left, witness.right, witness.inclusion)
        if existing is not None:
            return existing
        self._entries.append(witness)
        return len(self._entries) - 1

    def locate(self, left: Any, right: Any, inclusion: Any) -> Optional[int]:
        for position, witness in enumerate(self._entries):
            if (self._eq(witness.inclusion, inclusion)
                    and self._eq(witness.left, left) and self._eq(witness.right, right)):
                return position
        return None

    def produced(self, inclusion: Any) -> bool:
        """inclusion 是否由任一已登记的平行对产生"""
        return any(self._eq(witness.inclusion, inclusion) for witness in self._entries)

    def get(self, position: int) -> EqualizerSpanWitness:
        return self._entries[position]

    def __len__(self) -> int:
        return len(self._entries)


class EqualizersFromPullbacks:
    """由终对象 + 二元积 + 拉回提供 equalizer 与 factor_equalizer

    terminal 是结构要求 (终对象 + 拉回 ⇒ 有限极限), 记录在见证中;
    等化子本身只用到积与拉回。
    """

    def __init__(self, base: Any, terminal: Any, products: Any, pullbacks: PullbackCalculator, eq: Equality):
        if not hasattr(terminal, "terminal_obj"):
            raise DiagramConfigurationError("Pullback-derived equalizers require a terminal object")
        self.base = base
        self.terminal = terminal
        self.products = products
        self.pullbacks = pullbacks
        self.eq = eq
        self.registry = SpanRegistry(eq)

    def span_witness(self, left: Any, right: Any) -> EqualizerSpanWitness:
        base = self.base
        if base.dom(left) != base.dom(right) or base.cod(left) != base.cod(right):
            raise DiagramConfigurationError("Equalizer requires a parallel pair of arrows")
        source, target = base.dom(left), base.cod(left)
        square = self.products.product([target, target])
        pairing = self.products.tuple(source, [left, right], square.obj)
        diagonal = self.products.tuple(target, [base.id(target), base.id(target)], square.obj)
        pullback = self.pullbacks.pullback(pairing, diagonal)
        return EqualizerSpanWitness(left, right, pairing, diagonal, pullback)

    def equalizer(self, left: Any, right: Any) -> EqualizerWitness:
        witness = self.span_witness(left, right)
        position = self.registry.register(witness)
        _logger.debug("registered equalizer span #%d", position)
        return EqualizerWitness(witness.pullback.apex, witness.inclusion)

    def factor_equalizer(self, left: Any, right: Any, inclusion: Any, fork: Any) -> FactorizationResult:
        """经拉回的泛性质分解 fork; 签名与等化子分解预言机一致"""
        base, eq = self.base, self.eq
        position = self.registry.locate(left, right, inclusion)
        if position is None:
            if self.registry.produced(inclusion):
                return FactorizationResult(False, reason="inclusion was registered for a different parallel pair")
            return FactorizationResult(False, reason="inclusion was not produced by this equalizer construction")
        witness = self.registry.get(position)
        if base.cod(fork) != base.dom(left):
            return FactorizationResult(
                False, reason=f"fork lands in {base.cod(fork)!r} rather than {base.dom(left)!r}")
        if not eq(base.compose(left, fork), base.compose(right, fork)):
            return FactorizationResult(False, reason="fork does not equalize the parallel pair")

        cone = PullbackData(base.dom(fork), fork, base.compose(right, fork))
        result = call_factorizer(self.pullbacks.factor_cone, target=witness.pullback, cone=cone)
        if not result.factored:
            return result
        if not eq(base.compose(inclusion, result.mediator), fork):
            return FactorizationResult(False, reason="pullback mediator does not reproduce the fork")
        return result


def make_equalizers_from_pullbacks(base: Any, terminal: Any, products: Any, pullbacks: PullbackCalculator,
                                   eq: Optional[Equality] = None) -> EqualizersFromPullbacks:
    return EqualizersFromPullbacks(base, terminal, products, pullbacks, resolve_equality(base, eq))


__all__ = [
    "PullbackData",
    "PullbackCalculator",
    "EqualizerSpanWitness",
    "SpanRegistry",
    "EqualizersFromPullbacks",
    "make_equalizers_from_pullbacks",
]
