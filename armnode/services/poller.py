"""
Deployment provisioning poller.

    Accepted -> (Ready | Running) -> {Succeeded, Failed, Canceled, Deleted}

Succeeded is the only successful terminal state. Failed, Canceled and
Deleted raise ProviderFailedError. A state string outside the known set is
reported as UnrecognizedStateWarning and polling carries on; it is never
terminal. The deadline is enforced here, not by the provider: running out
of time raises PollingTimeoutError and leaves the deployment as it is.
"""

from __future__ import annotations
import logging
import threading
import time
import warnings
from typing import Callable, Optional, Set

from armnode.exceptions import (
    PollError,
    PollingCancelledError,
    PollingTimeoutError,
    ProviderFailedError,
    TransportError,
    UnrecognizedStateWarning,
)
from armnode.models import Deployment, ProvisioningState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3.0
DEFAULT_TIMEOUT = 800.0


class ProvisioningPoller:
    def __init__(
        self,
        fetch: Callable[[str], Deployment],
        interval: float = DEFAULT_INTERVAL,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        if interval <= 0:
            raise ValueError("Polling interval must be positive")
        if timeout < 0:
            raise ValueError("Polling timeout must not be negative")
        self.fetch = fetch
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self.sleep = sleep

    def _wait(self, seconds: float, cancel: Optional[threading.Event]) -> bool:
        """Block between ticks; True when the caller cancelled."""
        if cancel is not None and cancel.is_set():
            return True
        if self.sleep is None and cancel is not None:
            return cancel.wait(seconds)
        (self.sleep or time.sleep)(seconds)
        return cancel is not None and cancel.is_set()

    def _fetch(self, name: str) -> Optional[Deployment]:
        try:
            return self.fetch(name)
        except (PollError, TransportError) as e:
            logger.warning("Status query for deployment %s failed, retrying next tick: %s", name, e)
            return None

    def poll(self, name: str, initial: Optional[Deployment] = None,
             cancel: Optional[threading.Event] = None) -> Deployment:
        """
        Poll until `name` reaches a terminal state.

        Starts from `initial` (the submission snapshot) when given, otherwise
        from an immediate status query. Returns the Succeeded snapshot.
        """
        deadline = self.clock() + self.timeout
        reported: Set[str] = set()
        last_state: Optional[str] = None

        deployment = initial if initial is not None else self._fetch(name)
        while True:
            if deployment is not None:
                raw = deployment.properties.provisioningState
                state = ProvisioningState.from_string(raw)
                last_state = raw
                if state is ProvisioningState.SUCCEEDED:
                    logger.info("Deployment %s succeeded", name)
                    return deployment
                if state.is_terminal:
                    logger.error("Deployment %s ended in state %s: %s", name, raw, deployment.properties.error)
                    raise ProviderFailedError(name, state)
                if state is ProvisioningState.UNRECOGNIZED and raw not in reported:
                    reported.add(raw)
                    logger.warning("Deployment %s reported unrecognized state %r", name, raw)
                    warnings.warn(
                        f"Deployment '{name}' reported unrecognized provisioning state {raw!r}",
                        UnrecognizedStateWarning,
                        stacklevel=2,
                    )
                logger.debug("Deployment %s is %s", name, raw)

            remaining = deadline - self.clock()
            if remaining <= 0:
                raise PollingTimeoutError(name, self.timeout, last_state)
            if self._wait(min(self.interval, remaining), cancel):
                logger.info("Polling for deployment %s cancelled (last state: %s)", name, last_state)
                raise PollingCancelledError(f"Polling for deployment '{name}' was cancelled")
            deployment = self._fetch(name)
