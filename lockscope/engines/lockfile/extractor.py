"""Lockfile graph extractor — turn an untyped document into candidate records.

Two sections are honoured, and both may be present:

* ``packages`` — the flat package-path table (lockfile v2/v3). Keys are
  install paths such as ``node_modules/a/node_modules/b``; the empty key
  is the project root.
* ``dependencies`` — the nested dependency tree (lockfile v1/v2), where
  each entry may carry its own ``dependencies`` mapping, to any depth.

Candidates are yielded in depth-first pre-order and are *not*
deduplicated; see :mod:`lockscope.engines.lockfile.resolver`.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator, Mapping
from typing import Any

from lockscope.engines.lockfile.decoding import (
    as_mapping,
    coerce_dependency,
    name_from_path,
    read_bool,
    read_key_set,
    read_str,
    read_str_list,
)
from lockscope.engines.lockfile.models import DEPENDENCIES, PACKAGES, Origin, PackageRecord

ROOT_PATH = ""


class ExtractionContext:
    """State threaded through one extraction pass."""

    def __init__(self) -> None:
        self.explicit_names: frozenset[str] = frozenset()
        self._visited: set[int] = set()
        self._counter = itertools.count(1)

    def mark_visited(self, node: Mapping[str, Any]) -> bool:
        """Record *node* by identity; False if it was already seen."""
        key = id(node)
        if key in self._visited:
            return False
        self._visited.add(key)
        return True

    def make_id(self, origin: Origin, parts: list[str | None]) -> str:
        slug = "|".join(p for p in parts if p is not None and p.strip())
        if slug:
            return f"{origin}:{slug}"
        return f"{origin}:entry-{next(self._counter)}"


def explicit_names(packages: Mapping[str, Any]) -> frozenset[str]:
    """Names declared by the root entry's dependencies and devDependencies."""
    root = as_mapping(packages.get(ROOT_PATH))
    if root is None:
        return frozenset()
    return frozenset(read_key_set(root, "dependencies")) | frozenset(
        read_key_set(root, "devDependencies")
    )


def build_candidate(
    ctx: ExtractionContext,
    origin: Origin,
    name: str | None,
    info: Mapping[str, Any],
    path: str | None = None,
) -> PackageRecord | None:
    """Build one candidate from whatever fields *info* carries.

    *name* comes from the path or the nesting key; when it is None the
    entry's own ``name`` field is used. Blank names yield None.
    """
    if name is None:
        name = read_str(info, "name")
    name = (name or "").strip()
    if not name:
        return None

    version = read_str(info, "version")
    return PackageRecord(
        id=ctx.make_id(origin, [path, name, version]),
        name=name,
        version=version,
        origins={origin},
        resolved=read_str(info, "resolved"),
        integrity=read_str(info, "integrity"),
        path=path,
        dev=read_bool(info, "dev"),
        optional=read_bool(info, "optional"),
        peer=read_bool(info, "peer"),
        extraneous=read_bool(info, "extraneous"),
        dependencies=read_key_set(info, "dependencies"),
        requires=read_key_set(info, "requires"),
        peer_dependencies=read_key_set(info, "peerDependencies"),
        bundled_dependencies=read_str_list(
            info, "bundledDependencies", fallback="bundleDependencies"
        ),
        raw=dict(info),
    )


def _children(ctx: ExtractionContext, info: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Nested ``dependencies`` of *info*, or None if *info* was expanded before."""
    if not ctx.mark_visited(info):
        return None
    nested = as_mapping(info.get("dependencies"))
    return nested or None


def walk_dependency_tree(
    ctx: ExtractionContext, tree: Mapping[str, Any]
) -> Iterator[PackageRecord]:
    """Yield candidates from a nested dependency tree.

    Iterative depth-first traversal: an entry is yielded before its
    children, and each metadata object's children are expanded at most
    once, so shared or cyclic substructures terminate.
    """
    stack: list[Iterator[tuple[Any, Any]]] = [iter(tree.items())]
    while stack:
        try:
            dep_name, value = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue

        info = as_mapping(value)
        if info is None:
            candidate = build_candidate(ctx, DEPENDENCIES, str(dep_name), coerce_dependency(value))
            if candidate is not None:
                yield candidate
            continue

        candidate = build_candidate(ctx, DEPENDENCIES, str(dep_name), info)
        if candidate is not None:
            yield candidate

        nested = _children(ctx, info)
        if nested is not None:
            stack.append(iter(nested.items()))


def walk_package_table(
    ctx: ExtractionContext, packages: Mapping[str, Any]
) -> Iterator[PackageRecord]:
    """Yield candidates from the flat package-path table.

    Each entry's own ``dependencies`` object is walked as a nested tree
    right after the entry itself.
    """
    for package_path, value in packages.items():
        info = as_mapping(value)
        if info is None:
            continue

        package_path = str(package_path)
        name = (read_str(info, "name") or "").strip() or name_from_path(package_path)
        candidate = build_candidate(ctx, PACKAGES, name, info, package_path or None)
        if candidate is not None:
            yield candidate

        nested = _children(ctx, info)
        if nested is not None:
            yield from walk_dependency_tree(ctx, nested)


def extract_candidates(
    document: Any, ctx: ExtractionContext | None = None
) -> Iterator[PackageRecord]:
    """Yield every candidate record found in *document*.

    The root's explicit name set is stored on *ctx* before the package
    table is iterated. Non-object documents yield nothing.
    """
    ctx = ctx or ExtractionContext()
    root = as_mapping(document)
    if root is None:
        return

    packages = as_mapping(root.get("packages"))
    if packages:
        ctx.explicit_names = explicit_names(packages)
        yield from walk_package_table(ctx, packages)

    tree = as_mapping(root.get("dependencies"))
    if tree:
        yield from walk_dependency_tree(ctx, tree)
