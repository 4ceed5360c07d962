# footprint/exceptions.py


class FootprintError(Exception):
    """Base class for errors raised by the footprint package."""


class MalformedActivityError(FootprintError, ValueError):
    """Activity is structurally broken (type not a string, payload not an object)."""


class UserNotFound(FootprintError, LookupError):
    def __init__(self, user_id):
        super().__init__(f"user {user_id!r} not found")
        self.user_id = user_id


class DuplicateEmail(FootprintError):
    def __init__(self, email):
        super().__init__(f"user with email {email!r} already exists")
        self.email = email


class StatsUpdateConflict(FootprintError):
    """The stats read-modify-write could not be committed; safe to retry."""


class ContributionOutOfRange(FootprintError, ValueError):
    """Applying the contribution would push a stats total past the float range."""
