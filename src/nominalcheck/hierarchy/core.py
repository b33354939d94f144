"""The type hierarchy: subtype oracle and unifier.

TypeHierarchy answers every question the binding engine asks about types:
whether one expression fulfills another, what the nearest common parents or
descendants of several expressions are, and which types a generic stands for
when one expression is lined up against a related one.

Generic names (single characters, including the ``*`` placeholder) are
unconstrained wherever they appear: they fulfill and are fulfilled by anything.
"""

from __future__ import annotations

from functools import reduce
from typing import TYPE_CHECKING

from nominalcheck.errors import ArityError, UndefinedTypeError
from nominalcheck.expr import STANDARD_GENERIC, TypeExpr, contains_generic
from nominalcheck.hierarchy.closure import preprocess
from nominalcheck.hierarchy.defs import Variance
from nominalcheck.utils import combine, unique

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from nominalcheck.hierarchy.defs import TypeDef


class TypeHierarchy:
    """A preprocessed DAG of declared types."""

    def __init__(self, types: Mapping[str, TypeDef]) -> None:
        self._types = dict(types)
        self._nca, self._ncd = preprocess(self._types)

    @property
    def types(self) -> Mapping[str, TypeDef]:
        return self._types

    # =========================================================================
    # Lookup and validation
    # =========================================================================

    def type_exists(self, name: str) -> bool:
        """Return True if name (case-insensitive) is a declared type."""
        return name.lower() in self._types

    def get(self, name: str) -> TypeDef:
        """Return the declaration of name.

        Raises:
            UndefinedTypeError: If no such type is declared.

        """
        type_def = self._types.get(name)
        if type_def is None:
            raise UndefinedTypeError(name)
        return type_def

    def validate(self, expr: TypeExpr) -> None:
        """Check that every concrete name in expr exists with the right arity.

        Raises:
            UndefinedTypeError: If a concrete name is not declared.
            ArityError: If a constructor gets the wrong number of arguments.

        """
        stack = [expr]
        while stack:
            current = stack.pop()
            stack.extend(current.args)
            if current.is_generic:
                continue
            expected = len(self.get(current.name).params)
            if len(current.args) != expected:
                raise ArityError(current.name, expected, len(current.args))

    # =========================================================================
    # Subtype oracle
    # =========================================================================

    def type_is_exactly_type(self, a: TypeExpr, b: TypeExpr) -> bool:
        """Return True if a and b are structurally identical."""
        self.validate(a)
        self.validate(b)
        return a == b

    def type_fulfills(self, sub: TypeExpr, sup: TypeExpr) -> bool:
        """Return True if sub can be used where sup is expected.

        Args:
            sub: The candidate subtype, e.g. ``list(dog)``.
            sup: The expected type, e.g. ``getterlist(animal)``.

        Raises:
            UndefinedTypeError: If either expression names an unknown type.
            ArityError: If either expression has a malformed constructor.

        """
        self.validate(sub)
        self.validate(sup)
        return self._fulfills(sub, sup)

    def _fulfills(self, sub: TypeExpr, sup: TypeExpr) -> bool:
        if sub.is_generic or sup.is_generic:
            return True
        sub_def = self._types[sub.name]
        if not sub_def.has_ancestor(sup.name):
            return False
        in_sup_order = sub_def.params_for_ancestor(sup.name, sub.args)
        sup_def = self._types[sup.name]
        for param, sub_arg, sup_arg in zip(
            sup_def.params, in_sup_order, sup.args, strict=False
        ):
            match param.variance:
                case Variance.CO:
                    ok = self._fulfills(sub_arg, sup_arg)
                case Variance.CONTRA:
                    ok = self._fulfills(sup_arg, sub_arg)
                case Variance.INV:
                    ok = _merge_exact(sub_arg, sup_arg) is not None
            if not ok:
                return False
        return True

    # =========================================================================
    # Unifier
    # =========================================================================

    def nearest_common_parents(self, *types: TypeExpr) -> list[TypeExpr]:
        """Return the nearest types that every input fulfills.

        Parameter positions are unified according to the parent's variance:
        covariant positions by their nearest common parents, contravariant
        positions by their nearest common descendants and invariant positions
        only if every input agrees.

        Returns:
            The nearest common parents, or an empty list if there are none.
            Generic inputs are ignored; if every input is generic the result
            is ``[STANDARD_GENERIC]``.

        """
        if not types:
            return []
        for t in types:
            self.validate(t)
        return self._nearest(types, upward=True)

    def nearest_common_descendants(self, *types: TypeExpr) -> list[TypeExpr]:
        """Return the nearest types that fulfill every input.

        The dual of nearest_common_parents.
        """
        if not types:
            return []
        for t in types:
            self.validate(t)
        return self._nearest(types, upward=False)

    def _nearest(self, types: Sequence[TypeExpr], *, upward: bool) -> list[TypeExpr]:
        concrete = [t for t in types if not t.is_generic]
        if not concrete:
            return [STANDARD_GENERIC]
        table = self._nca if upward else self._ncd
        names = [concrete[0].name]
        for t in concrete[1:]:
            names = unique(n for acc in names for n in table[t.name][acc])

        candidates: list[TypeExpr] = []
        for name in names:
            candidates.extend(self._instantiate(name, concrete, upward=upward))

        def relates(candidate: TypeExpr, t: TypeExpr) -> bool:
            if upward:
                return self._fulfills(t, candidate)
            return self._fulfills(candidate, t)

        sound = [
            c for c in unique(candidates) if all(relates(c, t) for t in concrete)
        ]
        return self.prune(sound, upward=upward)

    def _instantiate(
        self,
        name: str,
        inputs: Sequence[TypeExpr],
        *,
        upward: bool,
    ) -> list[TypeExpr]:
        """Build every parameterisation of name that relates to all inputs."""
        target = self._types[name]
        if not target.params:
            return [TypeExpr(name)]

        if upward:
            rows = [
                self._types[t.name].params_for_ancestor(name, t.args) for t in inputs
            ]
            views = [[p.variance] * len(inputs) for p in target.params]
        else:
            rows = [
                self._types[t.name].params_for_descendant(name, t.args)
                for t in inputs
            ]
            if any(arg is None for row in rows for arg in row):
                return []
            views = [
                self._descendant_views(name, inputs, i)
                for i in range(len(target.params))
            ]

        columns: list[list[TypeExpr]] = []
        for index, column_views in enumerate(views):
            column = [row[index] for row in rows]
            variance = column_views[0] if len(set(column_views)) == 1 else None
            match variance:
                case Variance.CO:
                    columns.append(self._nearest(column, upward=upward))
                case Variance.CONTRA:
                    columns.append(self._nearest(column, upward=not upward))
                case Variance.INV:
                    merged = reduce(_merge_or_none, column[1:], column[0])
                    columns.append([] if merged is None else [merged])
                case None:
                    columns.append(self._mixed_column(column, column_views))
        return [TypeExpr(name, combo) for combo in combine(columns)]

    def _descendant_views(
        self,
        name: str,
        inputs: Sequence[TypeExpr],
        index: int,
    ) -> list[Variance]:
        """Variance of a descendant parameter as each input sees it."""
        views = []
        for t in inputs:
            t_def = self._types[t.name]
            leaf = t_def.params_for_descendant(name)[index]
            views.append(t_def.params[t_def.index_of_param(leaf.name)].variance)
        return views

    def _mixed_column(
        self,
        column: Sequence[TypeExpr],
        views: Sequence[Variance],
    ) -> list[TypeExpr]:
        """Unify a column the inputs see with different variances.

        Invariant views pin the type. Without one, the candidates are the
        nearest common descendants of the covariant views together with the
        nearest common parents of the contravariant views. A candidate must
        sit below every covariant view and above every contravariant one.
        """
        pairs = list(zip(column, views, strict=True))
        pinned = [t for t, v in pairs if v is Variance.INV]
        if pinned:
            merged = reduce(_merge_or_none, pinned[1:], pinned[0])
            candidates = [] if merged is None else [merged]
        else:
            covariant = [t for t, v in pairs if v is Variance.CO]
            contravariant = [t for t, v in pairs if v is Variance.CONTRA]
            candidates = unique([
                *self._nearest(covariant, upward=False),
                *self._nearest(contravariant, upward=True),
            ])
        return [
            c
            for c in candidates
            if all(
                self._fulfills(c, t) if v is Variance.CO else self._fulfills(t, c)
                for t, v in pairs
                if v is not Variance.INV
            )
        ]

    def prune(
        self,
        types: Sequence[TypeExpr],
        *,
        upward: bool = True,
    ) -> list[TypeExpr]:
        """Keep only the nearest elements of types.

        With upward set, drop every element that is a strict parent of
        another element; otherwise drop every strict descendant.
        """

        def farther(c: TypeExpr, d: TypeExpr) -> bool:
            if upward:
                return self._fulfills(d, c) and not self._fulfills(c, d)
            return self._fulfills(c, d) and not self._fulfills(d, c)

        return [c for c in types if not any(d != c and farther(c, d) for d in types)]

    # =========================================================================
    # Matching generics against related types
    # =========================================================================

    def matching_types_in_descendant(
        self,
        generic: str,
        ancestor: TypeExpr,
        descendant: TypeExpr,
    ) -> list[TypeExpr]:
        """Find what generic stands for when ancestor is fulfilled by descendant.

        Args:
            generic: The type variable to look for.
            ancestor: The pattern containing generic, e.g. ``getterlist(a)``.
            descendant: The actual type, e.g. ``list(dog)``.

        Returns:
            Every expression in descendant sitting where generic sits in
            ancestor, e.g. ``[dog]``. Empty if the types are unrelated.

        """
        self.validate(ancestor)
        self.validate(descendant)
        found: list[TypeExpr] = []
        self._collect(generic, ancestor, descendant, found, pattern_is_ancestor=True)
        return found

    def matching_types_in_ancestor(
        self,
        generic: str,
        descendant: TypeExpr,
        ancestor: TypeExpr,
    ) -> list[TypeExpr]:
        """Find what generic stands for when descendant fulfills ancestor.

        Args:
            generic: The type variable to look for.
            descendant: The pattern containing generic, e.g. ``list(a)``.
            ancestor: The actual type, e.g. ``getterlist(dog)``.

        Returns:
            Every expression in ancestor sitting where generic sits in
            descendant. Empty if the types are unrelated.

        """
        self.validate(descendant)
        self.validate(ancestor)
        found: list[TypeExpr] = []
        self._collect(generic, descendant, ancestor, found, pattern_is_ancestor=False)
        return found

    def _collect(
        self,
        generic: str,
        pattern: TypeExpr,
        actual: TypeExpr,
        found: list[TypeExpr],
        *,
        pattern_is_ancestor: bool,
    ) -> None:
        if pattern.name == generic:
            found.append(actual)
            return
        if not contains_generic(pattern, generic):
            return
        if actual.is_generic:
            found.append(actual)
            return

        if pattern_is_ancestor:
            actual_def = self._types[actual.name]
            if not actual_def.has_ancestor(pattern.name):
                return
            pairs = zip(
                pattern.args,
                actual_def.params_for_ancestor(pattern.name, actual.args),
                strict=False,
            )
        else:
            pattern_def = self._types[pattern.name]
            if not pattern_def.has_ancestor(actual.name):
                return
            pairs = zip(
                pattern_def.params_for_ancestor(actual.name, pattern.args),
                actual.args,
                strict=False,
            )
        for sub_pattern, sub_actual in pairs:
            self._collect(
                generic,
                sub_pattern,
                sub_actual,
                found,
                pattern_is_ancestor=pattern_is_ancestor,
            )


def _merge_exact(a: TypeExpr, b: TypeExpr) -> TypeExpr | None:
    """Return the common refinement of a and b, or None if they differ.

    Generic names on either side give way to the other side.
    """
    if a.is_generic:
        return b
    if b.is_generic:
        return a
    if a.name != b.name or len(a.args) != len(b.args):
        return None
    merged = []
    for x, y in zip(a.args, b.args, strict=True):
        m = _merge_exact(x, y)
        if m is None:
            return None
        merged.append(m)
    return TypeExpr(a.name, tuple(merged))


def _merge_or_none(acc: TypeExpr | None, expr: TypeExpr) -> TypeExpr | None:
    return None if acc is None else _merge_exact(acc, expr)
