#!/usr/bin/env python3
"""
Build session: native build -> resolve -> wrapper -> link plan.

Strictly sequential. Any BuildError propagates to the caller unchanged; the
CLI is the only place that reports it and exits.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .builders import NativeBuilder, build_native_dependencies
from .config import CANONICAL_ORDER, BuildSettings
from .link_plan import LinkPlan, emit
from .models import ResolvedLocation, SourceOverrides
from .resolver import resolve_all
from .wrapper import WrapperCompiler


@dataclass(frozen=True)
class SessionResult:
    overrides: SourceOverrides
    locations: List[ResolvedLocation]
    wrapper_archive: Path
    plan: LinkPlan


def run_session(
    settings: BuildSettings,
    builder: Optional[NativeBuilder] = None,
    registry=None,
    wrapper_compiler: Optional[WrapperCompiler] = None,
) -> SessionResult:
    """Run the whole pipeline once and return the link plan"""
    overrides = build_native_dependencies(settings, builder)

    locations = resolve_all(CANONICAL_ORDER, overrides, registry=registry, toolchain=settings.toolchain)

    include_paths = [path for location in locations for path in location.include_dirs]
    compiler = wrapper_compiler or WrapperCompiler(settings.toolchain, settings.wrapper_dir, settings.out_dir)
    archive = compiler.compile(include_paths)

    plan = emit(locations, archive, wrapper_include_dir=compiler.source_dir)
    return SessionResult(overrides=overrides, locations=locations, wrapper_archive=archive, plan=plan)
