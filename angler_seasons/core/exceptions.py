class SeasonsError(Exception):
    """Base exception for the seasonal competition backend."""
    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)

# --- Not Found Errors (404) ---
class EntityNotFoundError(SeasonsError):
    """Base for Not Found errors."""
    pass

class SeasonNotFoundError(EntityNotFoundError):
    def __init__(self, season_id: str = None, message: str = None):
        if message is None:
            message = f"Season not found: {season_id}" if season_id else "Season not found"
        super().__init__(message)

class ParticipantNotFoundError(EntityNotFoundError):
    def __init__(self, message: str = "Participant not found"):
        super().__init__(message)

class ArchiveNotFoundError(EntityNotFoundError):
    def __init__(self, message: str = "Season archive not found"):
        super().__init__(message)

# --- Already Exists Errors (409) ---
class EntityAlreadyExistsError(SeasonsError):
    pass

class AlreadyEnrolledError(EntityAlreadyExistsError):
    def __init__(self, user_id: str, season_id: str, message: str = None):
        if message is None:
            message = f"User {user_id} is already enrolled in season {season_id}"
        self.user_id = user_id
        self.season_id = season_id
        super().__init__(message)

class SeasonAlreadyExistsError(EntityAlreadyExistsError):
    def __init__(self, name: str, message: str = None):
        if message is None:
            message = f"Season already exists: {name}"
        super().__init__(message)

# --- Business Logic / Validation Errors (400) ---
class BusinessLogicError(SeasonsError):
    pass

class SeasonClosedError(BusinessLogicError):
    def __init__(self, status: str, message: str = None):
        if message is None:
            message = f"Season is not open for enrollment (status: {status})"
        super().__init__(message)

class SeasonFullError(BusinessLogicError):
    def __init__(self, max_participants: int, message: str = None):
        if message is None:
            message = f"Season is full (max participants: {max_participants})"
        super().__init__(message)

class InvalidScoringRulesError(BusinessLogicError):
    def __init__(self, message: str = "Malformed scoring rules"):
        super().__init__(message)

class InvalidSeasonWindowError(BusinessLogicError):
    def __init__(self, message: str = "Season dates must satisfy registration_start <= registration_end <= start < end"):
        super().__init__(message)

class InvalidLifecycleEventError(BusinessLogicError):
    def __init__(self, event_type: str, message: str = None):
        if message is None:
            message = f"Unknown lifecycle event: {event_type}"
        super().__init__(message)
