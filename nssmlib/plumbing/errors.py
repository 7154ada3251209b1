"""
Exception types raised by plumbing and tasks.

Every failure is an `NssmError`, grouped by where it originates:

- `PreconditionError`: the host can't be managed at all (rights, missing manager binaries)
- `ManagerSystemError`: a numeric error code reported by the service manager
- `UnexpectedStatusError`: a composite operation didn't settle in the expected state
- `UnclassifiedError`: a failure message we couldn't interpret
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .nssm import ServiceStatus


class NssmError(Exception):
    """
    Base exception for anything going wrong whilst managing services.
    """


class PreconditionError(NssmError):
    """
    Raised when a controller can't be set up on this host.
    """


class InsufficientRightsError(PreconditionError):
    """
    The current session lacks the administrative rights needed to manage services.
    """


class ManagerNotFoundError(PreconditionError):
    """
    The search location, or the architecture-specific manager binary within it, is missing.
    """


class InvalidServiceNameError(NssmError):
    """
    A command was requested without a usable service name.
    """


class ExecutableNotFoundError(NssmError):
    """
    The target executable of a service to be installed doesn't exist.
    """


class ManagerSystemError(NssmError):
    """
    Error code reported by the service manager, with an accompanying human-readable message.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class ManagerOutdatedError(ManagerSystemError):
    """
    The service refers to a manager binary that no longer exists, and needs reinstalling.
    """


class ServiceAlreadyRunningError(ManagerSystemError):
    pass


class ServiceNotFoundError(ManagerSystemError):
    pass


class ServiceExistsError(ManagerSystemError):
    pass


class UnexpectedStatusError(NssmError):
    """
    A composite operation completed, but the service settled in the wrong state.
    """

    def __init__(self, observed: Optional["ServiceStatus"], expected: "ServiceStatus"):
        super().__init__("Unexpected Status : {}, expected {}"
                         .format(observed.value if observed else "unrecognized", expected.value))
        self.observed = observed
        self.expected = expected


class UnclassifiedError(NssmError):
    """
    Command failure carrying neither an error code nor a status, with the raw message as-is.
    """
