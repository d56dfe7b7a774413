"""Exceptions raised by the reminder engine."""


class ReminderError(Exception):
    """Base class for reminder engine errors."""


class StorageError(ReminderError):
    """The reminders table could not be read or written."""


class InvalidStatusTransition(ReminderError):
    """A status write that the lifecycle does not allow."""

    def __init__(self, reminder_id: str, current: str, requested: str):
        super().__init__(f"Reminder {reminder_id}: cannot move from '{current}' to '{requested}'")
        self.reminder_id = reminder_id
        self.current = current
        self.requested = requested


class SchedulingError(ReminderError):
    """A delivery job could not be installed."""


class DeliveryError(ReminderError):
    """The messaging API did not accept a notification."""


class RecoveryError(ReminderError):
    """The startup recovery pass could not read the pending set."""


class TimeResolutionError(ReminderError):
    """A reminder request could not be turned into a fire time.

    ``user_message`` is safe to send back to the user as-is.
    """

    user_message = "I couldn't understand that reminder."

    def __init__(self, user_message: str | None = None):
        if user_message:
            self.user_message = user_message
        super().__init__(self.user_message)


class NoTimeExpressionFound(TimeResolutionError):
    user_message = (
        "I couldn't understand the reminder you're trying to set. Please be more specific "
        "with the time and what you want to be reminded about. E.g., 'Remind me to call mom "
        "at 3 PM tomorrow' or 'Remind me to submit report in 2 hours'."
    )


class NoTaskDescription(TimeResolutionError):
    user_message = (
        "What should I remind you about? Please provide the text for the reminder. "
        "E.g., 'Remind me to buy milk tomorrow at 8 AM'"
    )


class PastOrTooSoon(TimeResolutionError):

    def __init__(self, timezone_name: str):
        super().__init__(
            "I can only set reminders for future times. The time you provided seems to be "
            f"in the past or too soon relative to your timezone ({timezone_name}). "
            "Please specify a future time."
        )
        self.timezone_name = timezone_name
