"""Type and parameter declarations.

A TypeDef records what the hierarchy author declared about one concrete type
(its parameters and direct super-types) together with everything derived from
that during preprocessing: direct subtypes, the reflexive-transitive ancestor
and descendant sets, and the parameter maps that translate this type's
parameters into the parameter order of any ancestor or descendant.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from nominalcheck.errors import VarianceError
from nominalcheck.expr import TypeExpr, substitute


class Variance(Enum):
    """How a parameter's subtyping relates to its constructor's subtyping."""

    CO = "covariant"
    CONTRA = "contravariant"
    INV = "invariant"

    @classmethod
    def parse(cls, text: str) -> Variance:
        """Parse a variance by prefix: ``inv*``, ``contra*`` or ``co*``.

        Raises:
            VarianceError: If text starts with none of the known prefixes.

        """
        lowered = text.lower()
        # "contra" must be tried before "co".
        if lowered.startswith("inv"):
            return cls.INV
        if lowered.startswith("contra"):
            return cls.CONTRA
        if lowered.startswith("co"):
            return cls.CO
        raise VarianceError(text)


@dataclass(frozen=True)
class ParamDef:
    """A declared type parameter."""

    name: str
    variance: Variance


@dataclass
class TypeDef:
    """A concrete type in the hierarchy."""

    name: str
    params: list[ParamDef] = field(default_factory=list)
    # Direct super name -> the super's arguments, written in this type's params.
    supers: dict[str, tuple[TypeExpr, ...]] = field(default_factory=dict)
    subs: list[str] = field(default_factory=list)
    ancestors: dict[str, None] = field(default_factory=dict)
    descendants: dict[str, None] = field(default_factory=dict)
    ancestor_params: dict[str, tuple[TypeExpr, ...]] = field(default_factory=dict)
    descendant_params: dict[str, tuple[TypeExpr | None, ...]] = field(
        default_factory=dict,
    )

    def __post_init__(self) -> None:
        self.ancestors.setdefault(self.name, None)
        self.descendants.setdefault(self.name, None)

    # -------------------------------------------------------------------------
    # Declaration
    # -------------------------------------------------------------------------

    def add_param(
        self,
        name: str,
        variance: Variance,
        index: int | None = None,
    ) -> None:
        """Declare a parameter, appending it unless an index is given."""
        param = ParamDef(name.lower(), variance)
        if index is None:
            self.params.append(param)
        else:
            self.params.insert(index, param)

    def add_super(self, super_expr: TypeExpr) -> None:
        """Declare a direct super-type, e.g. ``getterlist(a)``."""
        self.supers[super_expr.name] = super_expr.args
        self.ancestor_params[super_expr.name] = super_expr.args

    # -------------------------------------------------------------------------
    # Preprocessing
    # -------------------------------------------------------------------------

    def add_sub(self, sub: TypeDef) -> None:
        """Record a direct subtype."""
        if sub.name not in self.subs:
            self.subs.append(sub.name)

    def add_ancestor(self, ancestor: str, via: TypeDef) -> None:
        """Record an ancestor reached through the direct super-type via.

        Our parameters in the ancestor's order are via's parameters in the
        ancestor's order, with via's parameters replaced by the arguments we
        declared for via.
        """
        self.ancestors.setdefault(ancestor, None)
        if ancestor not in self.ancestor_params:
            self.ancestor_params[ancestor] = via.params_for_ancestor(
                ancestor,
                self.ancestor_params[via.name],
            )

    def add_descendant(self, descendant: TypeDef) -> None:
        """Record a (transitive) descendant and its parameter map.

        The descendant's ancestor map must already be complete. Entry i of the
        map is our parameter sitting where the descendant's i-th parameter
        appears bare in its arguments for us, or None.
        """
        self.descendants.setdefault(descendant.name, None)
        if descendant.name in self.descendant_params:
            return
        in_our_order = descendant.ancestor_params.get(self.name, ())
        mapped: list[TypeExpr | None] = []
        for param in descendant.params:
            leaf = TypeExpr(param.name)
            index = next((i for i, e in enumerate(in_our_order) if e == leaf), -1)
            mapped.append(None if index == -1 else TypeExpr(self.params[index].name))
        self.descendant_params[descendant.name] = tuple(mapped)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_ancestor(self, name: str) -> bool:
        return name in self.ancestors

    def has_descendant(self, name: str) -> bool:
        return name in self.descendants

    def index_of_param(self, name: str) -> int:
        """Return the index of the named parameter, or -1."""
        return next((i for i, p in enumerate(self.params) if p.name == name), -1)

    def own_params(self) -> tuple[TypeExpr, ...]:
        """Our parameters as bare expressions."""
        return tuple(TypeExpr(p.name) for p in self.params)

    def params_for_ancestor(
        self,
        ancestor: str,
        actual: tuple[TypeExpr, ...] | None = None,
    ) -> tuple[TypeExpr, ...]:
        """Return our parameters arranged in the ancestor's parameter order.

        Args:
            ancestor: Name of the ancestor (may be this type itself).
            actual: Optional arguments to substitute for our parameters.
                These may themselves contain generics.

        Returns:
            One expression per ancestor parameter, or an empty tuple if the
            named type is not an ancestor.

        """
        if ancestor == self.name:
            params = self.own_params()
        else:
            params = self.ancestor_params.get(ancestor, ())
        if actual is None:
            return params
        mapping = self._actual_mapping(actual)
        return tuple(substitute(p, mapping) for p in params)

    def params_for_descendant(
        self,
        descendant: str,
        actual: tuple[TypeExpr, ...] | None = None,
    ) -> tuple[TypeExpr | None, ...]:
        """Return our parameters arranged in the descendant's parameter order.

        Entries are None where the descendant's parameter has no counterpart
        among ours.
        """
        if descendant == self.name:
            params: tuple[TypeExpr | None, ...] = self.own_params()
        else:
            params = self.descendant_params.get(descendant, ())
        if actual is None:
            return params
        mapping = self._actual_mapping(actual)
        return tuple(None if p is None else substitute(p, mapping) for p in params)

    def _actual_mapping(self, actual: tuple[TypeExpr, ...]) -> dict[str, TypeExpr]:
        return {p.name: a for p, a in zip(self.params, actual, strict=False)}
