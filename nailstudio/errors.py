class NailStudioError(Exception):
    """Base class for errors raised by the booking application"""


class ConfigError(NailStudioError):
    """A required startup setting is missing"""


class IdentityError(NailStudioError):
    """Sign-up or sign-in was refused"""


class AuthorizationError(NailStudioError):
    """The caller is not allowed to run a privileged operation"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ReservationError(NailStudioError):
    """The booking could not be written to the store"""


class SlotUnavailableError(ReservationError):
    """The chosen run of slots is no longer bookable"""


class WizardError(NailStudioError):
    """A booking wizard transition was requested from the wrong step"""
