#!/usr/bin/env python3
"""
Archive downloader.

Fetches a pinned source archive into the staging directory. The cache rule is
presence-only: if the destination file exists, nothing is fetched.
"""

import os
from pathlib import Path
from typing import Optional

import httpx

from .errors import BuildError, HttpError, NetworkError
from .utils import console

CHUNK_SIZE = 64 * 1024


def fetch(url: str, dest: Path, client: Optional[httpx.Client] = None, dependency: Optional[str] = None) -> bool:
    """
    Download ``url`` to ``dest`` unless ``dest`` already exists.

    Args:
        url: HTTPS URL of the archive; redirects are followed
        dest: Destination file in the staging directory
        client: Optional httpx client (a fresh one is created otherwise)
        dependency: Dependency name for diagnostics

    Returns:
        True if the archive was downloaded, False if it was already cached

    Raises:
        NetworkError: On transport failure
        HttpError: If the final response status is not a success
    """
    dest = Path(dest)
    if dest.exists():
        console.print(f"[cyan]Using cached archive:[/] {dest}")
        return False

    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_name(dest.name + ".part")

    own_client = client is None
    if own_client:
        # No timeout: large archives on slow links may take arbitrarily long
        client = httpx.Client(follow_redirects=True, timeout=None)

    console.print(f"[bold]Downloading {url}[/]")
    try:
        with client.stream("GET", url, follow_redirects=True) as response:
            if not response.is_success:
                raise HttpError(
                    f"GET {url} returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    dependency=dependency,
                    step="download",
                )
            with open(partial, "wb") as f:
                for chunk in response.iter_bytes(CHUNK_SIZE):
                    f.write(chunk)
                f.flush()
                os.fsync(f.fileno())
    except httpx.HTTPError as e:
        partial.unlink(missing_ok=True)
        raise NetworkError(f"GET {url} failed: {e}", dependency=dependency, step="download") from e
    except HttpError:
        partial.unlink(missing_ok=True)
        raise
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise BuildError(f"Could not write {partial}: {e}", dependency=dependency, step="download") from e
    finally:
        if own_client:
            client.close()

    os.replace(partial, dest)
    console.print(f"[green]Downloaded {dest.name} ({dest.stat().st_size:,} bytes)[/]")
    return True
