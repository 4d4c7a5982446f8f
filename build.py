#!/usr/bin/env python3
"""
OpenEXR native build script

Fetches and builds OpenEXR 2.4.1 and zlib 1.2.11, compiles the C wrapper,
and prints the link plan for the encompassing build.

Usage:
    python build.py                     # Build and print the link plan
    python build.py --format json       # Same, as JSON
    python build.py --info              # Show build configuration
    python build.py --clean             # Remove the staging directory

Configuration is read from OUT_DIR, OPENEXR_DIR, ILMBASE_DIR, ZLIB_DIR,
OPENEXR_LIB_SUFFIX, EXR_BUILD_POLICY, EXR_BUILD_TOOLCHAIN and EXR_WRAPPER_DIR.
"""

from exr_build.cli import main

if __name__ == "__main__":
    main()
