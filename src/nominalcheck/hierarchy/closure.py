"""Preprocessing of the type DAG.

Builds the ancestor and descendant closures of every type and the all-pairs
tables of nearest common ancestors and nearest common descendants, so that
later queries are table lookups.

The nearest-common tables implement the preprocessing step of:

    Czumaj, Kowaluk and Lingas. "Faster algorithms for finding lowest common
    ancestors in directed acyclic graphs." Theoretical Computer Science,
    380.1-2 (2007): 37-46.

adapted so the same routine computes both ancestors and descendants. It runs
in O(nm) for n types and m direct edges.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeAlias

from nominalcheck.errors import CycleError, UndefinedTypeError
from nominalcheck.utils import unique

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from nominalcheck.hierarchy.defs import TypeDef

logger = logging.getLogger(__name__)

NearestTable: TypeAlias = "dict[str, dict[str, list[str]]]"
"""Maps a pair of type names to their nearest common relatives."""


def topological(
    types: Mapping[str, TypeDef],
    relatives: Callable[[TypeDef], list[str]],
) -> Iterator[TypeDef]:
    """Yield types so that each comes after all of its relatives.

    Types are visited in declaration order within each pass, which keeps every
    derived table deterministic.

    Raises:
        CycleError: If some types can never be visited because their
            relatives depend on them in turn.

    """
    unvisited = dict.fromkeys(types)
    while unvisited:
        progressed = False
        for name in list(unvisited):
            type_def = types[name]
            if any(r in unvisited for r in relatives(type_def)):
                continue
            del unvisited[name]
            progressed = True
            yield type_def
        if not progressed:
            raise CycleError(tuple(unvisited))


def link_subtypes(types: Mapping[str, TypeDef]) -> None:
    """Fill in direct subtypes from the declared direct supers.

    Raises:
        UndefinedTypeError: If a type fulfills a type that was not declared.

    """
    for name, type_def in types.items():
        for super_name in type_def.supers:
            super_def = types.get(super_name)
            if super_def is None:
                raise UndefinedTypeError(super_name, referenced_by=name)
            super_def.add_sub(type_def)


def close_ancestors(types: Mapping[str, TypeDef]) -> None:
    """Compute every type's ancestors and ancestor parameter maps."""
    for type_def in topological(types, lambda t: list(t.supers)):
        for super_name in type_def.supers:
            super_def = types[super_name]
            for ancestor in super_def.ancestors:
                type_def.add_ancestor(ancestor, super_def)


def close_descendants(types: Mapping[str, TypeDef]) -> None:
    """Compute every type's descendants and descendant parameter maps."""
    for type_def in topological(types, lambda t: t.subs):
        for sub_name in type_def.subs:
            for descendant in types[sub_name].descendants:
                type_def.add_descendant(types[descendant])


def nearest_common(
    types: Mapping[str, TypeDef],
    relatives: Callable[[TypeDef], list[str]],
    covers: Callable[[TypeDef, str], bool],
) -> NearestTable:
    """Build a table of nearest common relatives for every pair of types.

    Args:
        types: All types, keyed by name.
        relatives: The direct relatives to climb through (supers when
            building ancestors, subs when building descendants).
        covers: covers(t, u) is True when t is itself a common relative of t
            and u (t has u as a descendant, resp. ancestor).

    Returns:
        table[t][u] listing the nearest common relatives of t and u.

    """
    table: NearestTable = {}
    for type_def in topological(types, relatives):
        row: dict[str, list[str]] = {}
        table[type_def.name] = row
        for other in types:
            if covers(type_def, other):
                row[other] = [type_def.name]
                continue
            candidates = unique(
                name
                for relative in relatives(type_def)
                for name in table[relative][other]
            )
            # Drop any candidate that covers another candidate: it is farther.
            row[other] = [
                c
                for c in candidates
                if not any(d != c and covers(types[c], d) for d in candidates)
            ]
    return table


def nearest_common_ancestors(types: Mapping[str, TypeDef]) -> NearestTable:
    return nearest_common(
        types,
        lambda t: list(t.supers),
        lambda t, other: t.has_descendant(other),
    )


def nearest_common_descendants(types: Mapping[str, TypeDef]) -> NearestTable:
    return nearest_common(
        types,
        lambda t: t.subs,
        lambda t, other: t.has_ancestor(other),
    )


def preprocess(types: Mapping[str, TypeDef]) -> tuple[NearestTable, NearestTable]:
    """Run every preprocessing pass over freshly declared types.

    Returns:
        The nearest common ancestor and nearest common descendant tables.

    """
    link_subtypes(types)
    close_ancestors(types)
    close_descendants(types)
    nca = nearest_common_ancestors(types)
    ncd = nearest_common_descendants(types)
    logger.debug("Preprocessed %d types", len(types))
    return nca, ncd
