"""Exception hierarchy for oav.

Task failures (a tool exiting non-zero) are never raised; they are recorded
in the status ledger.  Only problems that stop a stage or the whole command
become exceptions.
"""

from __future__ import annotations


class OavError(Exception):
    """Base class for errors reported to the user as ``error: <message>``."""


class ConfigurationError(OavError):
    """Raised when configuration cannot be resolved into runnable tasks.

    Examples: an unknown compile target, a missing generator config, an
    unparsable ``.oavc`` or a spec path outside the repository.
    """


class DockerUnavailableError(OavError):
    """Raised when the Docker CLI is missing or the daemon does not answer."""
