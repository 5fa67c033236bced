"""
Existence-based staleness check used by the "compile uncompiled" path.

A proto counts as compiled as soon as a generated ``.cs`` sits next to
it.  Modification times are *not* compared: a proto edited after its
``.cs`` was produced is still reported as compiled.  Edits are covered
by the change-notification entry point instead, which compiles whatever
the host reports as changed.
"""

from __future__ import annotations

import os
from typing import Iterable, List, Sequence

from protosync.config import GENERATED_EXTENSION
from protosync.resolver import filter_compilable


def csharp_file_base(stem: str) -> str:
    """
    Base name protoc's C# generator uses for a proto file stem.

    Letters after a separator or a digit are upper-cased and the
    separators dropped: ``foo_bar-baz2x`` becomes ``FooBarBaz2X``.
    """
    out = []
    cap_next = True
    for ch in stem:
        if "a" <= ch <= "z":
            out.append(ch.upper() if cap_next else ch)
            cap_next = False
        elif "A" <= ch <= "Z":
            out.append(ch)
            cap_next = False
        elif "0" <= ch <= "9":
            out.append(ch)
            cap_next = True
        else:
            cap_next = True
    return "".join(out)


def generated_siblings(
    proto_path: str,
    generated_extension: str = GENERATED_EXTENSION,
) -> List[str]:
    """Paths at which the generated artifact for *proto_path* may exist."""
    directory, name = os.path.split(proto_path)
    stem = os.path.splitext(name)[0]
    names = dict.fromkeys([stem, csharp_file_base(stem)])
    return [os.path.join(directory, n + generated_extension) for n in names if n]


def has_generated_sibling(proto_path: str) -> bool:
    return any(os.path.isfile(p) for p in generated_siblings(proto_path))


def uncompiled(
    paths: Iterable[str],
    excluded_prefixes: Sequence[str],
) -> List[str]:
    """Compilable paths that have no generated artifact beside them yet."""
    return [
        p for p in filter_compilable(paths, excluded_prefixes)
        if not has_generated_sibling(p)
    ]
