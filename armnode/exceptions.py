from __future__ import annotations
from typing import List, Optional


class ArmNodeError(Exception):
    """Base class for provisioning errors"""


class TemplateValidationError(ArmNodeError):
    """The resource graph is not referentially complete; raised before any network call"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid deployment template: " + "; ".join(self.errors))


class TransportError(ArmNodeError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SubmissionError(ArmNodeError):
    """The provider did not accept the deployment request"""


class PollError(ArmNodeError):
    """A single status query failed"""


class PollingTimeoutError(ArmNodeError):
    def __init__(self, deployment_name: str, timeout: float, last_state: Optional[str] = None):
        super().__init__(
            f"Deployment '{deployment_name}' did not reach a terminal state within {timeout}s "
            f"(last state: {last_state or 'unknown'})"
        )
        self.deployment_name = deployment_name
        self.timeout = timeout
        self.last_state = last_state


class PollingCancelledError(ArmNodeError):
    pass


class ProviderFailedError(ArmNodeError):
    def __init__(self, deployment_name: str, state):
        super().__init__(f"Deployment '{deployment_name}' ended in state {state.value}")
        self.deployment_name = deployment_name
        self.state = state


class UnrecognizedStateWarning(UserWarning):
    pass
