"""Aggregator status model and an in-memory Sonobuoy client."""

from __future__ import annotations

import copy
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional, Union

from opct.kube import KubeError

log = logging.getLogger(__name__)

RUNNING_STATUS = "running"
POST_PROCESSING_STATUS = "post-processing"
COMPLETE_STATUS = "complete"
FAILED_STATUS = "failed"

AGGREGATOR_RESULTS_PATH = "/tmp/sonobuoy/results"


@dataclass
class ProgressUpdate:
    """Progress reported by a running plugin."""

    total: int = 0
    completed: int = 0
    errors: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    message: str = ""


@dataclass
class PluginStatus:
    """State of one plugin as seen by the aggregator."""

    plugin: str
    status: str = ""
    node: str = ""
    result_status: str = ""
    result_status_counts: dict[str, int] = field(default_factory=dict)
    progress: Optional[ProgressUpdate] = None


@dataclass
class AggregatorStatus:
    """Overall state reported by the aggregator."""

    status: str = ""
    plugins: list[PluginStatus] = field(default_factory=list)

    def plugin(self, name: str) -> Optional[PluginStatus]:
        """Status of the named plugin, or None when it is not reported."""
        return next((p for p in self.plugins if p.plugin == name), None)


StatusItem = Union[AggregatorStatus, BaseException]


class InMemorySonobuoy:
    """A Sonobuoy client that replays scripted aggregator statuses.

    Each call to get_status returns the next scripted item; once the script
    runs out the last item is repeated. Exceptions in the script are raised.
    """

    def __init__(self, statuses: Iterable[StatusItem] = ()) -> None:
        self._statuses: list[StatusItem] = list(statuses)
        self._index = 0
        self.status_requests: list[str] = []
        self.deleted: list[tuple[str, timedelta]] = []
        self.preflight_errors: list[Exception] = []
        self.preflight_configs: list[Any] = []
        self.runs: list[Any] = []
        self.results_archive: Optional[bytes] = None
        self.retrieved: list[tuple[str, str]] = []

    def get_status(self, namespace: str) -> AggregatorStatus:
        self.status_requests.append(namespace)
        if not self._statuses:
            raise KubeError(f"no aggregator status found in namespace {namespace}")
        item = self._statuses[min(self._index, len(self._statuses) - 1)]
        self._index += 1
        if isinstance(item, BaseException):
            raise item
        return copy.deepcopy(item)

    def delete(self, namespace: str, wait: timedelta = timedelta(0)) -> None:
        log.info("deleting sonobuoy environment in namespace %s", namespace)
        self.deleted.append((namespace, wait))

    def preflight_checks(self, config: Any) -> list[Exception]:
        self.preflight_configs.append(config)
        return list(self.preflight_errors)

    def run(self, config: Any) -> None:
        self.runs.append(config)

    def retrieve_results(
        self, namespace: str, path: str = AGGREGATOR_RESULTS_PATH
    ) -> io.BytesIO:
        self.retrieved.append((namespace, path))
        if self.results_archive is None:
            raise KubeError(f"no results available in namespace {namespace}")
        return io.BytesIO(self.results_archive)