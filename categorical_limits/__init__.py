# -*- coding: utf-8 -*-
"""
有限范畴上的极限 / 余极限: 构造与认证

- diagram_closure: 生成子范畴 + 赋值闭包 (不一致检测)
- cones / cone_category: 锥验证, 锥范畴枚举, 终/初对象检验
- limits: 积+等化子 / 余积+余等化子 规范构造与交叉校验
- pullback_equalizer: 由拉回导出等化子
- change_of_shape: 沿形状函子重索引图表, 极限比较映射
- finset / vect: 参考具体范畴 FinSet 与 GF(2)-Vect
"""

from .core import (
    AmbientMembershipError,
    CategoricalError,
    Category,
    ClosureExtensionError,
    DiagramClosureError,
    DiagramConfigurationError,
    EndpointMismatchError,
    EnumerationBoundExceeded,
    EnumerationGuard,
    FiniteCategory,
    FiniteCategoryData,
    FunctorLawViolation,
    InconsistentCompositeError,
    LimitInvariantViolation,
    SmallIndex,
    resolve_equality,
)
from .shapes import (
    FinitePoset,
    ShapeArrow,
    discrete_shape,
    empty_shape,
    identity_arrow,
    parallel_pair_shape,
    poset_arrow,
    poset_shape,
    shape_from_table,
)
from .diagrams import (
    Diagram,
    DiagramArrow,
    FiniteDiagram,
    SmallDiagram,
    analyze_diagram_naturality,
    check_finite_diagram_functoriality,
    compose_finite_diagram_path,
    constant_diagram,
    finite_diagram_from_discrete,
    finite_diagram_from_poset,
    full_subdiagram,
    make_finite_diagram,
)
from .diagram_closure import ClosedDiagram, close_finite_diagram, generate_subcategory, saturate
from .cones import (
    Cocone,
    Cone,
    analyze_cocone_naturality,
    analyze_cone_naturality,
    cocone_respects_diagram,
    cone_respects_diagram,
    extend_cocone_to_closure,
    extend_cone_to_closure,
    validate_cocone_against_diagram,
    validate_cone_against_diagram,
)
from .cone_category import (
    CoconeCategory,
    ConeCategory,
    check_initial_cocone,
    check_terminal_cone,
    make_cocone_category,
    make_cone_category,
)
from .limits import (
    FactorizationResult,
    UniversalFactorResult,
    call_factorizer,
    colimit_of_diagram,
    finite_colimit_from_coproducts_and_coequalizers,
    limit_from_products_and_equalizers,
    limit_of_diagram,
    small_limit_from_products_and_equalizers,
)
from .pullback_equalizer import PullbackData, make_equalizers_from_pullbacks
from .change_of_shape import (
    FunctorWithWitness,
    ShapeFinalityWitness,
    colimit_comparison_along,
    diagram_to_functor_witness,
    functor_to_diagram,
    limit_comparison_along,
    make_functor,
    reindex_diagram,
)

__version__ = "0.1.0"

__all__ = [
    "AmbientMembershipError",
    "CategoricalError",
    "Category",
    "ClosureExtensionError",
    "DiagramClosureError",
    "DiagramConfigurationError",
    "EndpointMismatchError",
    "EnumerationBoundExceeded",
    "EnumerationGuard",
    "FiniteCategory",
    "FiniteCategoryData",
    "FunctorLawViolation",
    "InconsistentCompositeError",
    "LimitInvariantViolation",
    "SmallIndex",
    "resolve_equality",
    "FinitePoset",
    "ShapeArrow",
    "discrete_shape",
    "empty_shape",
    "identity_arrow",
    "parallel_pair_shape",
    "poset_arrow",
    "poset_shape",
    "shape_from_table",
    "Diagram",
    "DiagramArrow",
    "FiniteDiagram",
    "SmallDiagram",
    "analyze_diagram_naturality",
    "check_finite_diagram_functoriality",
    "compose_finite_diagram_path",
    "constant_diagram",
    "finite_diagram_from_discrete",
    "finite_diagram_from_poset",
    "full_subdiagram",
    "make_finite_diagram",
    "ClosedDiagram",
    "close_finite_diagram",
    "generate_subcategory",
    "saturate",
    "Cocone",
    "Cone",
    "analyze_cocone_naturality",
    "analyze_cone_naturality",
    "cocone_respects_diagram",
    "cone_respects_diagram",
    "extend_cocone_to_closure",
    "extend_cone_to_closure",
    "validate_cocone_against_diagram",
    "validate_cone_against_diagram",
    "CoconeCategory",
    "ConeCategory",
    "check_initial_cocone",
    "check_terminal_cone",
    "make_cocone_category",
    "make_cone_category",
    "FactorizationResult",
    "UniversalFactorResult",
    "call_factorizer",
    "colimit_of_diagram",
    "finite_colimit_from_coproducts_and_coequalizers",
    "limit_from_products_and_equalizers",
    "limit_of_diagram",
    "small_limit_from_products_and_equalizers",
    "PullbackData",
    "make_equalizers_from_pullbacks",
    "FunctorWithWitness",
    "ShapeFinalityWitness",
    "colimit_comparison_along",
    "diagram_to_functor_witness",
    "functor_to_diagram",
    "limit_comparison_along",
    "make_functor",
    "reindex_diagram",
]
