"""Error taxonomy for edgectl.

Fatal errors derive from ``EdgectlError`` and abort a bootstrap run at the point
they are raised. Non-fatal conditions derive from ``EdgectlWarning``; they are
collected on the run state and logged, and execution continues.
"""


class EdgectlError(Exception):
    """Base class for every fatal edgectl error."""


class PrerequisiteMissing(EdgectlError):
    """A required local tool is not installed."""


class TransportError(EdgectlError):
    """The remote host is unreachable or rejected our credentials."""


class CommandTimeout(EdgectlError, TimeoutError):
    """A remote command ran longer than its timeout."""


class NoRouteFound(EdgectlError):
    """No local address can be advertised to the target host."""


class InstallFailure(EdgectlError):
    """An installer command exited non-zero or the container runtime refused it."""


class ConvergenceTimeout(EdgectlError):
    """A readiness poll exhausted its retry ceiling."""


class CredentialError(EdgectlError):
    """The cluster access credential is missing or malformed."""


class EdgectlWarning(Exception):
    """Base class for non-fatal conditions."""


class LabelingWarning(EdgectlWarning):
    """A node label could not be applied."""


class AddonWarning(EdgectlWarning):
    """An add-on manifest failed to apply or its pods never became ready."""


class ReportingWarning(EdgectlWarning):
    """Cluster state could not be read for the final report."""
