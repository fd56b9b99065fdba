"""Track and print the state of a running validation environment."""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional, TextIO

from opct.kube import NotFoundError
from opct.printer import build_printable_status, render_status
from opct.sonobuoy import (
    COMPLETE_STATUS,
    POST_PROCESSING_STATUS,
    RUNNING_STATUS,
    AggregatorStatus,
    PluginStatus,
)
from opct.types import CERTIFICATION_NAMESPACE
from opct.wait import wait_for_required_resources

log = logging.getLogger(__name__)

DEFAULT_STATUS_INTERVAL_SECONDS = 10
STATUS_RETRY_LIMIT = 10


class StatusError(Exception):
    """The status of the validation environment could not be determined."""


class Status:
    """Latest aggregator state together with the options to watch it."""

    def __init__(
        self,
        kube: Any,
        sonobuoy: Any,
        watch: bool = False,
        interval_seconds: int = 0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.kube = kube
        self.sonobuoy = sonobuoy
        self.watch = watch
        self.wait_interval = float(interval_seconds or DEFAULT_STATUS_INTERVAL_SECONDS)
        self.start_time = datetime.now().astimezone()
        self.latest: Optional[AggregatorStatus] = None
        self.shown_post_process_msg = False
        self._sleep = sleep

    def pre_run_check(self) -> None:
        """Fail when no validation environment is running."""
        try:
            self.kube.get_namespace(CERTIFICATION_NAMESPACE)
        except NotFoundError:
            raise StatusError(
                "looks like there is no validation environment running. "
                "use run command to start the validation process"
            ) from None

    def update(self) -> None:
        """Fetch the current aggregator status."""
        self.latest = self.sonobuoy.get_status(namespace=CERTIFICATION_NAMESPACE)

    def status_for_plugin(self, name: str) -> Optional[PluginStatus]:
        if self.latest is None:
            return None
        return self.latest.plugin(name)

    def current_status(self) -> str:
        """Latest aggregator status, or an empty string before any update."""
        return self.latest.status if self.latest is not None else ""

    def wait_for_status_report(self) -> None:
        """Block until the aggregator reports a status or the retry limit is hit."""
        tries = 1
        while True:
            if tries == STATUS_RETRY_LIMIT:
                raise StatusError("retry limit reached checking for aggregator status")
            try:
                self.update()
            except Exception as exc:  # any client failure is retried
                log.warning("error retrieving current aggregator status: %s", exc)
            else:
                if self.latest is not None and self.latest.status:
                    return
            tries += 1
            log.warning("waiting %ds to retry", int(self.wait_interval))
            self._sleep(self.wait_interval)

    def print_status(self, out: Optional[TextIO] = None) -> None:
        """Print once, or keep printing until complete when watching."""
        if not self.watch:
            self.do_print(out)
            return
        tries = 1
        while True:
            if tries == STATUS_RETRY_LIMIT:
                raise StatusError("retry limit reached checking status")
            try:
                self.update()
            except Exception as exc:  # back-to-back failures count towards the limit
                tries += 1
                log.error("%s", exc)
                self._sleep(self.wait_interval)
                continue
            tries = 1
            if self.do_print(out):
                return
            self._sleep(self.wait_interval)

    def _write(self, out: Optional[TextIO]) -> None:
        stream = sys.stdout if out is None else out
        printable = build_printable_status(self.latest, self.start_time, self.kube)
        stream.write(render_status(printable))

    def do_print(self, out: Optional[TextIO] = None) -> bool:
        """Print the status table when relevant; return True once complete."""
        state = self.current_status()
        if state == RUNNING_STATUS:
            self._write(out)
        elif state == POST_PROCESSING_STATUS:
            if not self.watch:
                self._write(out)
            elif not self.shown_post_process_msg:
                self._write(out)
                log.info("Waiting for post-processor...")
                self.shown_post_process_msg = True
        elif state == COMPLETE_STATUS:
            self._write(out)
            log.info(
                "The execution has completed! Use retrieve command to collect the "
                "results and share the archive with your Red Hat partner."
            )
            return True
        else:
            log.info("Unknown state %s", state)
        return False


def run_status_command(status: Status, out: Optional[TextIO] = None) -> None:
    """Check the environment, wait for the aggregator and print its status."""
    status.pre_run_check()
    wait_for_required_resources(status.kube)
    status.wait_for_status_report()
    status.print_status(out)