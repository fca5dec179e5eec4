"""
Load-level grouping.

Partitions a cohort of modules into levels such that every module's
dependencies sit in a strictly earlier level (or outside the cohort). Modules
within a level can then be activated concurrently.
"""

from collections.abc import Callable

from .exceptions import CircularDependencyError
from .exceptions import DependencyError
from .exceptions import MissingDependencyError
from .models import ModuleDescriptor


def build_levels(
    modules: list[ModuleDescriptor],
    is_loaded: Callable[[str], bool],
    has_module: Callable[[str], bool],
) -> list[list[ModuleDescriptor]]:
    """
    Group modules into dependency levels.

    A dependency is satisfied when it is already loaded, was placed in an
    earlier level of this run, or is a registered module outside the cohort
    (handled elsewhere). Input order is kept within each level.

    Args:
        modules: The cohort to group
        is_loaded: Load status predicate
        has_module: Registry membership predicate

    Returns:
        Levels of descriptors, in activation order

    Raises:
        MissingDependencyError: A stuck module depends on an unregistered name
        CircularDependencyError: The stuck modules form a cycle
    """
    cohort = {m.name for m in modules}
    processed: set[str] = set()
    levels: list[list[ModuleDescriptor]] = []

    def satisfied(dep: str) -> bool:
        if dep in processed or is_loaded(dep):
            return True
        return dep not in cohort and has_module(dep)

    remaining = list(modules)
    while remaining:
        # Readiness is judged against the previous levels only
        level = [m for m in remaining if all(satisfied(dep) for dep in m.dependencies)]
        if not level:
            _raise_stuck(remaining, cohort, levels, has_module)

        levels.append(level)
        processed.update(m.name for m in level)
        remaining = [m for m in remaining if m.name not in processed]

    return levels


def _raise_stuck(
    stuck: list[ModuleDescriptor],
    cohort: set[str],
    levels: list[list[ModuleDescriptor]],
    has_module: Callable[[str], bool],
) -> None:
    stuck_names = [m.name for m in stuck]
    done = [[m.name for m in level] for level in levels]
    by_name = {m.name: m for m in stuck}

    unloadable: dict[str, MissingDependencyError] = {}
    for module in stuck:
        missing = [dep for dep in module.dependencies if dep not in cohort and not has_module(dep)]
        if missing:
            unloadable[module.name] = MissingDependencyError(module.name, missing, levels=done)

    causes: dict[str, DependencyError] = {}
    for module in stuck:
        causes[module.name] = unloadable.get(module.name) or _trace_stuck(module, by_name, unloadable, done)

    error: DependencyError
    if unloadable:
        first = next(iter(unloadable.values()))
        error = MissingDependencyError(first.module_name, first.missing, modules=stuck_names, levels=done)
    else:
        cycle = _trace_stuck(stuck[0], by_name, {}, done).cycle
        error = CircularDependencyError(cycle, modules=stuck_names, levels=done)
    error.causes = causes
    raise error


def _trace_stuck(
    module: ModuleDescriptor,
    by_name: dict[str, ModuleDescriptor],
    unloadable: dict[str, MissingDependencyError],
    done: list[list[str]],
) -> DependencyError:
    """Follow unsatisfied edges from ``module`` until a name repeats or an unloadable module is hit."""
    path: list[str] = []
    current = module
    while current.name not in path:
        path.append(current.name)
        # Every stuck module without missing names has at least one stuck dependency
        dep = next(d for d in current.dependencies if d in by_name)
        if dep in unloadable:
            return DependencyError(
                f"Module {module.name} depends on {dep}, which cannot be loaded",
                modules=[module.name],
                levels=done,
            )
        current = by_name[dep]
    cycle = path[path.index(current.name):] + [current.name]
    return CircularDependencyError(cycle, modules=[module.name], levels=done)
