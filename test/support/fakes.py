"""Fakes for the external collaborators: network, cmake, compiler, pkg-config."""

from __future__ import annotations

import io
import tarfile
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx

from exr_build.config import OPENEXR_URL, ZLIB_URL
from exr_build.errors import BuildInvocationError, ConfigProbeError
from exr_build.resolver import RegistryEntry


def make_zip(entries: Dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


def make_tar_gz(entries: Dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, content in entries.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


OPENEXR_ZIP = make_zip({"openexr-2.4.1/CMakeLists.txt": "project(OpenEXR)\n"})
ZLIB_ZIP = make_zip({"zlib-1.2.11/CMakeLists.txt": "project(zlib C)\n"})


class ArchiveServer:
    """httpx transport serving the pinned archives and counting requests"""

    def __init__(self, routes: Optional[Dict[str, bytes]] = None):
        self.routes = routes if routes is not None else {OPENEXR_URL: OPENEXR_ZIP, ZLIB_URL: ZLIB_ZIP}
        self.requests: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.routes:
            return httpx.Response(200, content=self.routes[url])
        return httpx.Response(404)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), follow_redirects=True)


INSTALLED_FILES = {
    "zlib": ["include/zlib.h", "lib/libz.a"],
    "OpenEXR": [
        "include/OpenEXR/ImfRgbaFile.h",
        "include/OpenEXR/ImathVec.h",
        "lib/libIlmImf-2_4.a",
        "lib/libIlmImfUtil-2_4.a",
        "lib/libHalf-2_4.a",
    ],
}


class FakeCMake:
    """Stands in for run_streaming_cmd; install steps create a plausible tree"""

    def __init__(self, fail_when: Optional[Callable[[tuple], bool]] = None):
        self.fail_when = fail_when
        self.calls: List[tuple] = []

    def __call__(self, cmd_name, *args, title="", dependency=None, cwd=None, **kwargs):
        self.calls.append((cmd_name, dependency, args))
        if self.fail_when and self.fail_when(args):
            raise BuildInvocationError(f"{cmd_name} failed with exit code 1", exit_code=1, dependency=dependency)

        if args and args[0] == "--install":
            install_root = Path(args[1]) / "install"
            for rel in INSTALLED_FILES.get(dependency, []):
                path = install_root / rel
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text("")
        return 0

    def steps_for(self, dependency: str) -> List[tuple]:
        return [args for _, dep, args in self.calls if dep == dependency]


class FakeCompiler:
    """Stands in for run_command; the archiver creates its output file"""

    def __init__(self):
        self.commands: List[List[str]] = []

    def __call__(self, cmd, description="", cwd=None, dependency=None):
        cmd = [str(c) for c in cmd]
        self.commands.append(cmd)
        if cmd[0] in ("ar", "lib.exe"):
            archive = cmd[2] if cmd[0] == "ar" else cmd[2][len("/OUT:"):]
            Path(archive).write_bytes(b"!<arch>\n")


class FakeRegistry:
    """pkg-config stand-in keyed by registry name"""

    def __init__(self, entries: Optional[Dict[str, RegistryEntry]] = None):
        self.entries = entries or {}
        self.probed: List[str] = []

    def probe(self, name: str) -> RegistryEntry:
        self.probed.append(name)
        if name not in self.entries:
            raise ConfigProbeError(f"Package {name} was not found", dependency=name, step="probe")
        return self.entries[name]
