"""Merging of dependency and dependency management lists."""

import logging
from typing import Callable, Iterable, List, Optional, Sequence

from .models import Coordinate, Dependency

logger = logging.getLogger(__name__)


def merge_dependencies(
    dominant: Optional[Sequence[Dependency]],
    recessive: Optional[Sequence[Dependency]],
) -> Sequence[Dependency]:
    """
    Merge two dependency lists by versionless identity.

    All dominant entries come first in their original order, followed by the
    recessive entries whose identity is not already present. When either side
    is empty the other side is returned as-is.
    """
    if not dominant:
        return recessive if recessive is not None else ()
    if not recessive:
        return dominant

    result: List[Dependency] = []
    ids = set()
    for dependency in dominant:
        ids.add(dependency.coordinate.versionless_id)
        result.append(dependency)
    for dependency in recessive:
        if dependency.coordinate.versionless_id not in ids:
            result.append(dependency)
    return result


def import_boms(
    boms: Iterable[Optional[str]],
    read_managed: Callable[[Coordinate], Sequence[Dependency]],
) -> List[Dependency]:
    """
    Fold the managed dependencies of several BOMs, first listed BOM wins.

    Args:
        boms: BOM coordinate strings; None or empty entries are skipped
        read_managed: Returns the managed dependencies declared by a BOM

    Returns:
        Managed dependencies with unique versionless identities
    """
    keys = set()
    managed_dependencies: List[Dependency] = []
    for bom_gav in boms:
        if not bom_gav:
            continue
        bom = Coordinate.parse(bom_gav)
        imported = 0
        for dependency in read_managed(bom):
            key = dependency.coordinate.versionless_id
            if key not in keys:
                keys.add(key)
                managed_dependencies.append(dependency)
                imported += 1
            else:
                logger.warning(f"BOM {bom} introduced an already managed dependency {dependency}")
        logger.debug(f"Imported {imported} managed dependencies from BOM {bom}")
    return managed_dependencies
