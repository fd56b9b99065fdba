"""Download the results archive from the validation environment."""

from __future__ import annotations

import logging
import os
import tarfile
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from opct.kube import KubeError
from opct.sonobuoy import AGGREGATOR_RESULTS_PATH
from opct.types import CERTIFICATION_NAMESPACE

log = logging.getLogger(__name__)

DEFAULT_RETRY_LIMIT = 10
DEFAULT_RETRY_PAUSE_SECONDS = 2.0

Scanner = Callable[[BinaryIO], BinaryIO]
PathLike = Union[str, "os.PathLike[str]"]


class RetrieveError(Exception):
    """The results could not be retrieved."""


def renamed_result_path(path: PathLike) -> str:
    """Path of the result file once renamed with the 'opct_' prefix."""
    original = Path(path)
    base = original.name.replace("sonobuoy_", "", 1)
    return f"{original.parent}/opct_{base}"


def _inside(destination: Path, target: Path) -> bool:
    try:
        target.relative_to(destination)
    except ValueError:
        return False
    return True


def extract_results(
    archive: BinaryIO, destination: PathLike, scanner: Optional[Scanner] = None
) -> list[str]:
    """Unpack the tar stream into destination; return the files created."""
    stream = scanner(archive) if scanner is not None else archive
    root = Path(destination).resolve()
    created: list[str] = []
    try:
        with tarfile.open(fileobj=stream, mode="r|*") as tar:
            for member in tar:
                target = (root / member.name).resolve()
                if not _inside(root, target):
                    raise RetrieveError(f"archive entry {member.name!r} escapes {root}")
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if not member.isfile():
                    log.debug("skipping non-regular archive entry %s", member.name)
                    continue
                source = tar.extractfile(member)
                if source is None:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with source, open(target, "wb") as out:
                    while chunk := source.read(64 * 1024):
                        out.write(chunk)
                created.append(str(target))
    except tarfile.TarError as exc:
        raise RetrieveError(f"error extracting results: {exc}") from exc
    return created


def retrieve_results(
    sonobuoy: Any, destination: PathLike, scanner: Optional[Scanner] = None
) -> list[str]:
    """Download, extract and rename the results; return the final paths."""
    try:
        reader = sonobuoy.retrieve_results(CERTIFICATION_NAMESPACE, AGGREGATOR_RESULTS_PATH)
    except KubeError as exc:
        raise RetrieveError(f"error retrieving results from sonobuoy: {exc}") from exc

    results = extract_results(reader, destination, scanner)

    renamed: list[str] = []
    for result in results:
        new_file = renamed_result_path(result)
        log.debug("Renaming %s to %s", result, new_file)
        try:
            os.replace(result, new_file)
        except OSError as exc:
            raise RetrieveError(f"error renaming {result} to {new_file}: {exc}") from exc
        log.info("Results saved to %s", new_file)
        renamed.append(new_file)
    return renamed


def retrieve_results_retry(
    sonobuoy: Any,
    destination: PathLike,
    limit: int = DEFAULT_RETRY_LIMIT,
    pause: float = DEFAULT_RETRY_PAUSE_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    scanner: Optional[Scanner] = None,
) -> list[str]:
    """Retry retrieval up to limit times, pausing after each failure."""
    if not Path(destination).is_dir():
        raise RetrieveError(f"retrieve finished with errors: {destination} is not a directory")
    for attempt in range(1, limit + 1):
        try:
            return retrieve_results(sonobuoy, destination, scanner)
        except RetrieveError as exc:
            log.warning("%s", exc)
            if attempt + 1 < limit:
                log.warning("Retrying retrieval %d more times", limit - attempt)
            sleep(pause)
    raise RetrieveError("Retrieval retry limit reached")