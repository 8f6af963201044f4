# Rev 0.1.0
"""Exception hierarchy shared by repositories, services and CLI tools."""
from __future__ import annotations


class BuildtrackError(Exception):
    """Base class for all domain errors."""


class ValidationError(BuildtrackError):
    """Rejected input: bad percentage, non-leaf task, invalid reference."""


class NotFoundError(BuildtrackError):
    """A referenced task, project or office does not exist."""


class InvariantViolation(BuildtrackError):
    """Nested-set bounds are missing or corrupted; run rebuild_tree()."""
