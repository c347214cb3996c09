# acs_core/errors.py
"""
Error kinds of a keyholder invocation.

Every error is terminal for the invocation; the CLI reports
``<kind>: <message>`` on stderr and exits with status 1.
"""


class AccessControlError(Exception):
    kind = "AccessControlError"

    def __str__(self) -> str:
        msg = super().__str__()
        return msg or self.kind


class NoSshAncestorError(AccessControlError):
    kind = "NoSshAncestor"


class LoginNotFoundError(AccessControlError):
    kind = "LoginNotFound"


class KeyNotFoundError(AccessControlError):
    kind = "KeyNotFound"


class UnknownUserError(AccessControlError):
    kind = "UnknownUser"


class InvalidCommandError(AccessControlError):
    kind = "InvalidCommand"


class StoreError(AccessControlError):
    kind = "StoreError"


class StateWriteError(AccessControlError):
    kind = "StateWriteError"
