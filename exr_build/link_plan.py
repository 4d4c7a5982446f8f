#!/usr/bin/env python3
"""
Link plan emitter.

Turns resolved locations plus the wrapper archive into the ordered directive
list the outer compiler/linker consumes. A search path is always emitted
before the libraries that live in it.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .config import CANONICAL_ORDER, WRAPPER_LIB_NAME
from .models import ResolvedLocation


@dataclass(frozen=True)
class SearchPath:
    path: Path

    def render(self) -> str:
        return f"link-search=native={self.path}"


@dataclass(frozen=True)
class LinkLibrary:
    name: str
    kind: str = "static"

    def render(self) -> str:
        return f"link-lib={self.kind}={self.name}"


@dataclass(frozen=True)
class IncludePath:
    path: Path

    def render(self) -> str:
        return f"include={self.path}"


Directive = Union[SearchPath, LinkLibrary, IncludePath]


@dataclass(frozen=True)
class LinkPlan:
    directives: Tuple[Directive, ...]

    @property
    def search_paths(self) -> List[Path]:
        return [d.path for d in self.directives if isinstance(d, SearchPath)]

    @property
    def libraries(self) -> List[str]:
        return [d.name for d in self.directives if isinstance(d, LinkLibrary)]

    @property
    def include_paths(self) -> List[Path]:
        return [d.path for d in self.directives if isinstance(d, IncludePath)]

    def render(self) -> str:
        return "\n".join(d.render() for d in self.directives)

    def to_dict(self) -> dict:
        return {
            "directives": [
                {"type": type(d).__name__, **{k: str(v) for k, v in vars(d).items()}}
                for d in self.directives
            ],
            "search_paths": [str(p) for p in self.search_paths],
            "libraries": self.libraries,
            "include_paths": [str(p) for p in self.include_paths],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


def _canonical_key(location: ResolvedLocation) -> int:
    names = [spec.name for spec in CANONICAL_ORDER]
    return names.index(location.name) if location.name in names else len(names)


def emit(
    locations: Iterable[ResolvedLocation],
    wrapper_archive: Path,
    wrapper_include_dir: Optional[Path] = None,
) -> LinkPlan:
    """
    Assemble the link plan.

    Dependencies are emitted in canonical order (OpenEXR, IlmBase, zlib): each
    one's search paths, then its link libraries, then its include paths. The
    wrapper archive's search path and library come last. Repeated directories
    are emitted once.
    """
    directives: List[Directive] = []
    seen_search = set()
    seen_include = set()

    def add_search(path: Path):
        if path not in seen_search:
            seen_search.add(path)
            directives.append(SearchPath(path))

    def add_include(path: Path):
        if path not in seen_include:
            seen_include.add(path)
            directives.append(IncludePath(path))

    for location in sorted(locations, key=_canonical_key):
        for path in location.library_dirs:
            add_search(path)
        for name in location.libraries:
            directives.append(LinkLibrary(name, location.link_kind))
        for path in location.include_dirs:
            add_include(path)

    wrapper_archive = Path(wrapper_archive)
    add_search(wrapper_archive.parent)
    directives.append(LinkLibrary(WRAPPER_LIB_NAME, "static"))
    if wrapper_include_dir is not None:
        add_include(Path(wrapper_include_dir))

    return LinkPlan(tuple(directives))
