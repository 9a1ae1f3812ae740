"""
L2 Resolver — Dependency ordering.

Turns a set of requested package names into an install order where
every package comes after all of its hard dependencies, each name
appearing exactly once.

Depth-first post-order over ``PackageRecord.deps`` only; optional and
recommended dependencies never affect order.  The walk uses an explicit
stack, so deep dependency chains cannot hit the interpreter's recursion
limit.

A name is marked visited *before* its dependencies are walked.  On a
cyclic graph that makes the walk terminate, but members of the cycle
are not guaranteed to come after each other.  Pass ``strict_cycles``
to fail with ``DependencyCycleError`` instead.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Set

from bottler.core.errors import DependencyCycleError
from bottler.core.models.formula import Repository

logger = logging.getLogger(__name__)


def resolve_install_order(
    requested: Iterable[str],
    repo: Repository,
    *,
    strict_cycles: bool = False,
) -> list[str]:
    """Compute the install order for *requested*.

    Args:
        requested: Package names.  Sequences are walked in the given
            order; unordered sets are walked sorted, so the result is
            deterministic either way.
        repo: Repository to resolve against.
        strict_cycles: Raise on a dependency cycle instead of
            terminating silently.

    Returns:
        Distinct names, dependencies first.

    Raises:
        MissingPackageError: A requested name or a dependency is not in
            the repository.  Nothing is returned.
        DependencyCycleError: Only with ``strict_cycles``.
    """
    roots = sorted(requested) if isinstance(requested, Set) else list(requested)

    order: list[str] = []
    visited: set[str] = set()

    for root in roots:
        if root in visited:
            continue
        visited.add(root)
        record = repo.require(root)

        # Each frame: (name, iterator over its remaining deps)
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(record.deps))]
        on_path: set[str] = {root}

        while stack:
            name, deps = stack[-1]
            for dep in deps:
                if dep in visited:
                    if strict_cycles and dep in on_path:
                        path = [frame[0] for frame in stack]
                        raise DependencyCycleError(path[path.index(dep):] + [dep])
                    continue
                visited.add(dep)
                dep_record = repo.require(dep, required_by=name)
                stack.append((dep, iter(dep_record.deps)))
                on_path.add(dep)
                break
            else:
                stack.pop()
                on_path.discard(name)
                order.append(name)

    logger.debug("Resolved %d requested into %d packages: %s", len(roots), len(order), order)
    return order
