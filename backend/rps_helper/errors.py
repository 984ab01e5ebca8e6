"""Error taxonomy for the session coordinator.

Only decode and validation errors are raised across module boundaries.
Datastore and transport failures are caught and logged where they happen.
"""


class CoordinatorError(Exception):
    pass


class ActionDecodeError(CoordinatorError, ValueError):
    """Inbound payload does not describe a known action."""


class RejectedAction(CoordinatorError):
    """Action refused before any mutation; carries the user-visible notice."""

    notice = 'This action is not available.'
    show_alert = True

    def __init__(self, notice=None):
        super().__init__(notice or self.notice)
        if notice:
            self.notice = notice


class UnauthorizedAction(RejectedAction):
    notice = "This button isn't for you."


class DuplicateAction(RejectedAction):
    notice = 'You have already made a choice.'


class StaleAction(RejectedAction):
    notice = 'That option is no longer available.'


class InactiveSession(RejectedAction):
    notice = 'This game is no longer active.'


class InvalidTransition(CoordinatorError):
    """A status change that would leave the mode graph."""


class InvalidChoice(CoordinatorError):
    """A choice outside rock/paper/scissors reached the resolver."""
