"""
Error types shared across edgecli.

A RemediationError pairs the underlying failure with a suggested next
action for the user. Commands raise; the entry point prints.
"""
from typing import Optional, TextIO

import requests


NETWORK_REMEDIATION = (
    "This error may be caused by transient network issues. "
    "Please verify your network connection and DNS configuration, and try again."
)

BUG_REMEDIATION = (
    "If you believe this error is the result of a bug, please file an issue: "
    "https://github.com/edgecli/edgecli/issues/new"
)

AUTH_REMEDIATION = (
    "Please check your API token is valid. Provide it with --token, "
    "the EDGECLI_API_TOKEN environment variable, or a configuration profile."
)

SERVICE_ID_REMEDIATION = (
    "Please provide one via the --service-id or --service-name flag, "
    "the EDGECLI_SERVICE_ID environment variable, or an edgecli.toml manifest."
)

CLI_UPDATE_REMEDIATION = "Please try updating with `edgecli update`."

FILE_PERMISSION_REMEDIATION = (
    "Please check the permissions of the configuration file and its parent directory."
)

UPDATE_RECOVERY_REMEDIATION = (
    "The update did not complete. If the CLI no longer starts, rename the "
    "backup copy ending in '~' back to its original name."
)

INVALID_FLAGS_REMEDIATION = "Run the command with --help to see the valid flag combinations."


class RemediationError(Exception):
    """An error with a human-readable suggested next action."""

    def __init__(self, inner, remediation: str = ""):
        if isinstance(inner, str):
            inner = Exception(inner)
        super().__init__(str(inner))
        self.inner = inner
        self.remediation = remediation

    def print(self, stream: TextIO):
        """Write the error and its remediation to the given stream."""
        stream.write(f"\nERROR: {self.inner}.\n")
        if self.remediation:
            stream.write(f"\n{self.remediation}\n")
        stream.flush()

    def print_warning(self, stream: TextIO):
        """Same as print() but labelled as a non-fatal warning."""
        stream.write(f"\nWARNING: {self.inner}.\n")
        if self.remediation:
            stream.write(f"\n{self.remediation}\n")
        stream.flush()


class ApiError(Exception):
    """The management API returned a non-success response."""

    def __init__(self, status_code: int, message: str, url: Optional[str] = None):
        super().__init__(f"{status_code} - {message}")
        self.status_code = status_code
        self.message = message
        self.url = url


# Common failures. Each call returns a fresh instance so tracebacks and
# chained context never carry over between raises.

def no_token_error() -> RemediationError:
    return RemediationError("no token provided", AUTH_REMEDIATION)


def no_service_id_error() -> RemediationError:
    return RemediationError("error reading service: no service ID found", SERVICE_ID_REMEDIATION)


def verbose_json_error() -> RemediationError:
    return RemediationError(
        "invalid flag combination, --verbose and --json",
        "Use either --verbose or --json, not both.",
    )



def deduce(exc: BaseException) -> RemediationError:
    """
    Map an arbitrary exception to a RemediationError for display.

    Errors that already carry a remediation are returned unchanged.
    """
    if isinstance(exc, RemediationError):
        return exc
    if isinstance(exc, ApiError):
        if exc.status_code == 401:
            return RemediationError(exc, AUTH_REMEDIATION)
        return RemediationError(exc, BUG_REMEDIATION)
    if isinstance(exc, requests.exceptions.RequestException):
        return RemediationError(exc, NETWORK_REMEDIATION)
    if isinstance(exc, PermissionError):
        return RemediationError(exc, FILE_PERMISSION_REMEDIATION)
    return RemediationError(exc, BUG_REMEDIATION)
