# -*- coding: utf-8 -*-
"""
GF(2)-Vect: GF(2) 上的有限维向量空间

对象 VectObj(dim); 态射 LinearMap 以 numpy 矩阵表示 (cod.dim × dom.dim, 元素 mod 2)。

结构:
- 积 = 余积 = 直和 (双积)
- 等化子 = ker(f - g) = ker(f + g)
- 余等化子 = Y / im(f + g), 商映射取 (f + g)ᵀ 零空间的行基
- 终对象 = 初对象 = 0

消元与零空间交给 galois 的 GF(2) 数组, 精确进行, 不涉及浮点容差;
态射矩阵本身仍以 numpy uint8 存储。
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import galois
import numpy as np

from .core import EnumerationBoundExceeded, EnumerationGuard
from .limits import CoequalizerWitness, CoproductWitness, EqualizerWitness, FactorizationResult, ProductWitness

_logger = logging.getLogger(__name__)

_GF2_DTYPE = np.uint8


# ============================================================================
# Section 0: GF(2) 线性代数 (galois 有限域数组)
# ============================================================================

GF2 = galois.GF(2)


def _as_gf2(matrix: np.ndarray) -> np.ndarray:
    return (np.asarray(matrix, dtype=np.int64) % 2).astype(_GF2_DTYPE)


def _to_numpy(array: galois.FieldArray) -> np.ndarray:
    return array.view(np.ndarray).astype(_GF2_DTYPE)


def _row_reduce(matrix: np.ndarray, ncols: Optional[int] = None) -> Tuple[np.ndarray, List[int]]:
    """简化行阶梯形及主元列; 仅在前 ncols 列消元"""
    reduced = _as_gf2(matrix)
    rows, cols = reduced.shape
    limit = cols if ncols is None else ncols
    if rows == 0 or limit == 0:
        return reduced, []
    reduced = _to_numpy(GF2(reduced).row_reduce(ncols=limit))
    pivots: List[int] = []
    for row in reduced:
        leading = np.flatnonzero(row[:limit])
        if leading.size == 0:
            break
        pivots.append(int(leading[0]))
    return reduced, pivots


def gf2_rank(matrix: np.ndarray) -> int:
    return len(_row_reduce(matrix)[1])


def gf2_nullspace(matrix: np.ndarray) -> np.ndarray:
    """零空间基, 按列排列 (cols × k)"""
    matrix = _as_gf2(matrix)
    rows, cols = matrix.shape
    if cols == 0:
        return np.zeros((0, 0), dtype=_GF2_DTYPE)
    if rows == 0:
        return np.eye(cols, dtype=_GF2_DTYPE)
    # galois 按行给出零空间基
    basis = _to_numpy(GF2(matrix).null_space())
    return basis.reshape(-1, cols).T.copy()


def gf2_solve(a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
    """解 A X = B (mod 2); 无解返回 None, 自由变量取 0"""
    a = _as_gf2(a)
    b = _as_gf2(b)
    rows, cols = a.shape
    width = b.shape[1]
    solution = np.zeros((cols, width), dtype=_GF2_DTYPE)
    if rows == 0 or width == 0:
        return solution
    reduced, pivots = _row_reduce(np.hstack([a, b]), ncols=cols)
    # 零行上的非零右端 ⇒ 不相容
    if reduced[len(pivots):, cols:].any():
        return None
    for r, p in enumerate(pivots):
        solution[p] = reduced[r, cols:]
    return solution


# ============================================================================
# Section 1: 对象与态射
# ============================================================================


@dataclass(frozen=True)
class VectObj:
    dim: int

    def __post_init__(self):
        if self.dim < 0:
            raise ValueError(f"Dimension must be non-negative, got {self.dim}")

    def __repr__(self) -> str:
        return f"F2^{self.dim}"


@dataclass(frozen=True, eq=False)
class LinearMap:
    dom: VectObj
    cod: VectObj
    matrix: np.ndarray

    def __post_init__(self):
        matrix = _as_gf2(self.matrix)
        # 零维空间之间的矩阵统一成 (cod, dom) 形状
        if matrix.size == 0 and self.cod.dim * self.dom.dim == 0:
            matrix = matrix.reshape(self.cod.dim, self.dom.dim)
        if matrix.shape != (self.cod.dim, self.dom.dim):
            raise ValueError(
                f"Matrix shape {matrix.shape} incompatible with morphism "
                f"{self.dom!r} → {self.cod!r}")
        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)

    def __repr__(self) -> str:
        return f"LinearMap({self.dom!r}→{self.cod!r}, {self.matrix.tolist()})"


# ============================================================================
# Section 2: GF(2)-Vect 范畴
# ============================================================================


class GF2VectCategory:
    name = "Vect(F2)"
    terminal_obj = VectObj(0)
    initial_obj = VectObj(0)

    def id(self, obj: VectObj) -> LinearMap:
        return LinearMap(obj, obj, np.eye(obj.dim, dtype=_GF2_DTYPE))

    def compose(self, g: LinearMap, f: LinearMap) -> LinearMap:
        if f.cod != g.dom:
            raise ValueError(f"Cannot compose: cod(f)={f.cod!r} != dom(g)={g.dom!r}")
        product = g.matrix.astype(np.int64) @ f.matrix.astype(np.int64)
        return LinearMap(f.dom, g.cod, product)

    def dom(self, arrow: LinearMap) -> VectObj:
        return arrow.dom

    def cod(self, arrow: LinearMap) -> VectObj:
        return arrow.cod

    src = dom
    dst = cod

    def eq(self, left: LinearMap, right: LinearMap) -> bool:
        return (left.dom == right.dom and left.cod == right.cod
                and np.array_equal(left.matrix, right.matrix))

    def zero(self, source: VectObj, target: VectObj) -> LinearMap:
        return LinearMap(source, target, np.zeros((target.dim, source.dim), dtype=_GF2_DTYPE))

    def hom(self, source: VectObj, target: VectObj) -> List[LinearMap]:
        entries = target.dim * source.dim
        return [
            LinearMap(source, target, np.array(bits, dtype=_GF2_DTYPE).reshape(target.dim, source.dim))
            for bits in itertools.product((0, 1), repeat=entries)
        ]

    def terminate(self, obj: VectObj) -> LinearMap:
        return self.zero(obj, self.terminal_obj)

    def initiate(self, obj: VectObj) -> LinearMap:
        return self.zero(self.initial_obj, obj)

    # ---- 直和 ----

    def _blocks(self, objects: Sequence[VectObj]) -> Tuple[VectObj, List[np.ndarray]]:
        total = sum(o.dim for o in objects)
        blocks = []
        offset = 0
        for o in objects:
            block = np.zeros((o.dim, total), dtype=_GF2_DTYPE)
            block[:, offset:offset + o.dim] = np.eye(o.dim, dtype=_GF2_DTYPE)
            blocks.append(block)
            offset += o.dim
        return VectObj(total), blocks

    def product(self, objects: Sequence[VectObj]) -> ProductWitness:
        factors = list(objects)
        if len(factors) == 1:
            return ProductWitness(factors[0], (self.id(factors[0]),))
        apex, blocks = self._blocks(factors)
        return ProductWitness(apex, tuple(LinearMap(apex, o, b) for o, b in zip(factors, blocks)))

    def tuple(self, domain: VectObj, legs: Sequence[LinearMap], product_obj: VectObj) -> LinearMap:
        legs = list(legs)
        if not legs:
            return self.terminate(domain)
        if len(legs) == 1:
            return legs[0]
        stacked = np.vstack([leg.matrix for leg in legs])
        return LinearMap(domain, product_obj, stacked)

    def coproduct(self, objects: Sequence[VectObj]) -> CoproductWitness:
        summands = list(objects)
        if len(summands) == 1:
            return CoproductWitness(summands[0], (self.id(summands[0]),))
        apex, blocks = self._blocks(summands)
        return CoproductWitness(apex, tuple(LinearMap(o, apex, b.T) for o, b in zip(summands, blocks)))

    def cotuple(self, coproduct_obj: VectObj, legs: Sequence[LinearMap], codomain: VectObj) -> LinearMap:
        legs = list(legs)
        if not legs:
            return self.initiate(codomain)
        if len(legs) == 1:
            return legs[0]
        return LinearMap(coproduct_obj, codomain, np.hstack([leg.matrix for leg in legs]))

    # ---- 核 / 余核 ----

    def equalizer(self, f: LinearMap, g: LinearMap) -> EqualizerWitness:
        if f.dom != g.dom or f.cod != g.cod:
            raise ValueError("Equalizer requires a parallel pair")
        kernel = gf2_nullspace(f.matrix ^ g.matrix)
        apex = VectObj(kernel.shape[1])
        return EqualizerWitness(apex, LinearMap(apex, f.dom, kernel))

    def coequalizer(self, f: LinearMap, g: LinearMap) -> CoequalizerWitness:
        if f.dom != g.dom or f.cod != g.cod:
            raise ValueError("Coequalizer requires a parallel pair")
        quotient = gf2_nullspace((f.matrix ^ g.matrix).T).T
        apex = VectObj(quotient.shape[0])
        return CoequalizerWitness(apex, LinearMap(f.cod, apex, quotient))

    def factor_through_equalizer(self, left: LinearMap, right: LinearMap,
                                 inclusion: LinearMap, fork: LinearMap) -> FactorizationResult:
        if fork.cod != inclusion.cod:
            return FactorizationResult(False, reason="fork and inclusion have different codomains")
        solution = gf2_solve(inclusion.matrix, fork.matrix)
        if solution is None:
            return FactorizationResult(False, reason="fork does not factor through the kernel")
        return FactorizationResult(True, LinearMap(fork.dom, inclusion.dom, solution))

    def factor_through_coequalizer(self, left: LinearMap, right: LinearMap,
                                   coequalizer: LinearMap, fork: LinearMap) -> FactorizationResult:
        if fork.dom != coequalizer.dom:
            return FactorizationResult(False, reason="fork and coequalizer have different domains")
        solution = gf2_solve(coequalizer.matrix.T, fork.matrix.T)
        if solution is None:
            return FactorizationResult(False, reason="fork does not vanish on the image of f - g")
        return FactorizationResult(True, LinearMap(coequalizer.cod, fork.cod, solution.T))

    def __repr__(self) -> str:
        return self.name


GF2_VECT = GF2VectCategory()


class FiniteGF2Vect(GF2VectCategory):
    """给定维数的空间之间全部线性映射构成的有限范畴"""

    def __init__(self, dims: Iterable[int], name: str = "Vect(F2)|fin"):
        self._objects = tuple(VectObj(d) for d in sorted(set(dims)))
        self._arrows = tuple(arrow for a in self._objects for b in self._objects for arrow in self.hom(a, b))
        self.name = name
        _logger.debug("%s: %d objects, %d arrows", name, len(self._objects), len(self._arrows))

    @property
    def objects(self) -> Tuple[VectObj, ...]:
        return self._objects

    @property
    def arrows(self) -> Tuple[LinearMap, ...]:
        return self._arrows


def finite_gf2_vect_category(dims: Iterable[int], guard: Optional[EnumerationGuard] = None) -> FiniteGF2Vect:
    guard = guard or EnumerationGuard()
    unique = sorted(set(dims))
    total = sum(2 ** (a * b) for a in unique for b in unique)
    if total > guard.max_arrows:
        raise EnumerationBoundExceeded("GF(2) linear maps", guard.max_arrows)
    return FiniteGF2Vect(unique)


__all__ = [
    "GF2",
    "gf2_rank",
    "gf2_nullspace",
    "gf2_solve",
    "VectObj",
    "LinearMap",
    "GF2VectCategory",
    "GF2_VECT",
    "FiniteGF2Vect",
    "finite_gf2_vect_category",
]
