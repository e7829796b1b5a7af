"""
errors.py — User-facing error taxonomy
=======================================
Every error a user can recover from derives from EssembiError and carries
the text we are willing to show them. Handlers catch EssembiError and
render ``user_message``; anything else is a bug and propagates to the
turn error handler in server.py.

Host lookup failures are not here: they come back from host.py as an
IdentityLookup outcome instead of being raised.
"""

from typing import Optional

SUPPORT_SUFFIX = "Please try again later. Contact Essembi support if this problem persists."


class EssembiError(Exception):
    user_message = f"An unexpected error occurred. {SUPPORT_SUFFIX}"

    def __init__(self, user_message: Optional[str] = None):
        if user_message:
            self.user_message = user_message
        super().__init__(self.user_message)


class AccountNotFound(EssembiError):
    user_message = "You do not have an Essembi account. Sign up today at essembi.com!"


class AuthenticationFailed(EssembiError):
    user_message = f"An error occurred while trying to authenticate your account. {SUPPORT_SUFFIX}"


class NoEnvironmentsConfigured(EssembiError):
    user_message = (
        "You must enable the Teams integration in Essembi. "
        "This is done in Settings > Integrations."
    )


class SessionExpired(EssembiError):
    user_message = "Your session has expired. Please try again."


class InvalidInput(EssembiError):
    user_message = f"An unexpected error occurred while processing the input. {SUPPORT_SUFFIX}"


class EnvironmentNotFound(InvalidInput):
    pass


class SubmissionFailed(EssembiError):
    user_message = f"An error occurred while trying to create the ticket. {SUPPORT_SUFFIX}"


class SearchFailed(EssembiError):
    user_message = f"An error occurred while searching Essembi. {SUPPORT_SUFFIX}"


class UnexpectedResponse(EssembiError):
    pass
