from __future__ import annotations


class GitUserError(Exception):
    """Base class for every error git-user raises on purpose."""


class StorageFault(GitUserError):
    """The identity database could not be opened or initialized."""


class StorageError(GitUserError):
    """A single store call failed."""


class StorageTimeout(StorageError):
    """A store call ran past its deadline and was abandoned."""


class ValidationError(GitUserError):
    pass


class NotTrackedWorkspace(GitUserError):
    pass


class NotConfigured(GitUserError):
    pass


class ExternalToolError(GitUserError):
    """git (or whatever bridge is in use) failed; the message is shown verbatim."""
