"""
Proto file discovery and include-path resolution.

Pure functions over path strings.  Everything returned is deduplicated
and in a stable order so the argument strings built from it are
deterministic between runs.

Every proto file's own directory goes on the include path, which means
any ``.proto`` in the project can ``import`` any other regardless of
how far apart they live in the tree.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Sequence

from protosync.config import BUILTIN_INCLUDE_MARKER, PACKAGE_NAME, PROTO_EXTENSION

logger = logging.getLogger(__name__)

#: Unity unpacks registry packages as ``<name>@<version>``.
_VERSIONED_PACKAGE = re.compile(re.escape(PACKAGE_NAME) + r"@[^\\/]*")


def _unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates, keep first-seen order."""
    return list(dict.fromkeys(items))


def is_builtin(
    path: str,
    builtin_marker: str = BUILTIN_INCLUDE_MARKER,
    builtin_dirs: Sequence[str] = (),
) -> bool:
    """
    ``True`` if *path* lies in the bundled include tree.

    The marker is matched with any ``@<version>`` suffix stripped from the
    package folder, so ``com.e7.protobuf-unity@1.4.0/Editor/.protoc``
    matches as well as the unversioned form.
    """
    if builtin_marker in _VERSIONED_PACKAGE.sub(PACKAGE_NAME, path):
        return True
    return is_excluded(path, builtin_dirs)


def discover_all_proto_files(
    project_root: Path,
    builtin_marker: str = BUILTIN_INCLUDE_MARKER,
    builtin_dirs: Sequence[str] = (),
) -> List[str]:
    """
    Recursively collect every ``.proto`` under *project_root*.

    Paths in the bundled ``google/protobuf`` include tree are skipped:
    anything containing *builtin_marker* or lying under one of
    *builtin_dirs*.  Returns sorted, absolute, deduplicated paths.
    """
    root = Path(project_root).resolve()
    found = {
        str(p.resolve())
        for p in root.rglob(f"*{PROTO_EXTENSION}")
        if p.is_file()
    }
    files = sorted(
        p for p in found if not is_builtin(p, builtin_marker, builtin_dirs)
    )
    logger.debug("Discovered %d proto files under %s", len(files), root)
    return files


def is_excluded(path: str, excluded_prefixes: Sequence[str]) -> bool:
    return any(path.startswith(prefix) for prefix in excluded_prefixes)


def filter_compilable(
    paths: Iterable[str],
    excluded_prefixes: Sequence[str],
) -> List[str]:
    """
    Remove files living under a read-only root such as the package cache.

    Matching is by string prefix, so a file sitting right at the boundary
    of an excluded root is excluded too.
    """
    return [p for p in _unique(paths) if not is_excluded(p, excluded_prefixes)]


def compute_include_paths(
    paths: Iterable[str],
    builtin_include_dir: str,
) -> List[str]:
    """Parent directory of every path, then *builtin_include_dir*, deduplicated."""
    return _unique(
        [os.path.dirname(p) for p in paths] + [str(builtin_include_dir)]
    )
