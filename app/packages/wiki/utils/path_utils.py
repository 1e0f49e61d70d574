"""Path utilities for the materialized directory paths.

Rules shared by the store and the service layer:
- A stored path always starts with '/' and never ends with '/';
- The synthetic root is '/', it is never stored and has level 0;
- Segment K of a path is the sanitized name of the ancestor at depth K.

All helpers are pure string functions; ancestry and cycle checks are prefix
comparisons, no tree walking involved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from app.packages.wiki.core.constants import PATH_SEPARATOR, ROOT_PATH
from app.packages.wiki.utils.name_rules import sanitize_name


@dataclass(frozen=True)
class PathSegment:
    """One step of a path chain, used for breadcrumbs."""

    name: str
    path: str
    level: int


def norm_abs_path(p: str | None) -> str:
    """Normalize user input to an absolute path without trailing slash."""
    s = (p or ROOT_PATH).strip() or ROOT_PATH
    if not s.startswith(PATH_SEPARATOR):
        s = PATH_SEPARATOR + s
    s = s.rstrip(PATH_SEPARATOR)
    return s or ROOT_PATH


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split(PATH_SEPARATOR) if segment]


def build_path(parent_path: Optional[str], name: str) -> str:
    if not parent_path or parent_path == ROOT_PATH:
        return ROOT_PATH + sanitize_name(name)
    return parent_path.rstrip(PATH_SEPARATOR) + PATH_SEPARATOR + sanitize_name(name)


def get_level(path: str) -> int:
    return len(_segments(path))


def get_parent_path(path: str) -> str:
    segments = _segments(path)
    if len(segments) <= 1:
        return ROOT_PATH
    return ROOT_PATH + PATH_SEPARATOR.join(segments[:-1])


def get_ancestor_paths(path: str) -> List[str]:
    """Every proper prefix of ``path`` from '/' downwards, excluding ``path``."""
    ancestors = [ROOT_PATH]
    current = ""
    for segment in _segments(path)[:-1]:
        current += PATH_SEPARATOR + segment
        ancestors.append(current)
    return ancestors


def get_descendant_path_prefix(path: str) -> str:
    """Prefix shared by every path strictly below ``path``.

    The root's prefix is '/' itself, which matches every stored path.
    """
    if path == ROOT_PATH:
        return ROOT_PATH
    return path + PATH_SEPARATOR


def is_child_of(path: str, ancestor_path: str) -> bool:
    """True when ``path`` lies anywhere below ``ancestor_path``."""
    if path == ancestor_path:
        return False
    return path.startswith(get_descendant_path_prefix(ancestor_path))


def is_direct_child_of(path: str, ancestor_path: str) -> bool:
    return is_child_of(path, ancestor_path) and get_level(path) == get_level(ancestor_path) + 1


def would_create_cycle(subject_path: str, new_parent_path: str) -> bool:
    """Moving ``subject_path`` under ``new_parent_path`` would nest it in itself."""
    return new_parent_path == subject_path or is_child_of(new_parent_path, subject_path)


def replace_path_prefix(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap the ``old_prefix`` head of ``path`` for ``new_prefix``, keeping the suffix."""
    if path == old_prefix:
        return new_prefix
    if not is_child_of(path, old_prefix):
        raise ValueError(f"{path!r} is not under {old_prefix!r}")
    return new_prefix + path[len(old_prefix):]


def parse_path_info(path: str) -> List[PathSegment]:
    """Decompose ``path`` into its segment chain, root excluded."""
    chain: List[PathSegment] = []
    current = ""
    for level, segment in enumerate(_segments(path), start=1):
        current += PATH_SEPARATOR + segment
        chain.append(PathSegment(name=segment, path=current, level=level))
    return chain
