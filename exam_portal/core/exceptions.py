"""
Exam Portal Errors
Every business-rule failure raised by the engine and the services
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-readable error code returned alongside the message"""
    INVALID_POLICY = "invalid_policy"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    INSUFFICIENT_QUESTIONS = "insufficient_questions"
    TOO_MANY_POOLS = "too_many_pools"
    EMPTY_SELECTION = "empty_selection"
    ALREADY_TAKEN = "already_taken"
    ALREADY_SUBMITTED = "already_submitted"
    EXPIRED = "expired"
    NOT_AVAILABLE = "not_available"
    NOT_FOUND = "not_found"
    STORAGE = "storage_error"


class ExamPortalError(Exception):
    """Base exception for exam portal errors"""
    kind: ErrorKind = ErrorKind.INVALID_POLICY
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPolicyError(ExamPortalError):
    """Malformed or inconsistent selection policy"""
    kind = ErrorKind.INVALID_POLICY


class InsufficientInventoryError(ExamPortalError):
    """Selected pools hold fewer questions than the test needs"""
    kind = ErrorKind.INSUFFICIENT_INVENTORY

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient questions ({available} available in selected pools) "
            f"to generate a test of {required} questions."
        )
        self.required = required
        self.available = available


class InsufficientQuestionsError(ExamPortalError):
    """A single (pool, difficulty) bucket cannot cover its requested count"""
    kind = ErrorKind.INSUFFICIENT_QUESTIONS

    def __init__(
        self,
        difficulty: str,
        required: int,
        available: int,
        pool_id: Optional[str] = None
    ):
        where = f" in pool {pool_id}" if pool_id else " in selected pools"
        super().__init__(
            f"Not enough {difficulty} questions{where}. "
            f"Required: {required}, Available: {available}"
        )
        self.difficulty = difficulty
        self.required = required
        self.available = available
        self.pool_id = pool_id


class TooManyPoolsError(ExamPortalError):
    kind = ErrorKind.TOO_MANY_POOLS

    def __init__(self, count: int, limit: int):
        super().__init__(
            f"Too many pools selected ({count}). Maximum allowed is {limit}."
        )
        self.count = count
        self.limit = limit


class EmptySelectionError(ExamPortalError):
    kind = ErrorKind.EMPTY_SELECTION


class AlreadyTakenError(ExamPortalError):
    kind = ErrorKind.ALREADY_TAKEN


class AlreadySubmittedError(ExamPortalError):
    kind = ErrorKind.ALREADY_SUBMITTED


class ExpiredError(ExamPortalError):
    kind = ErrorKind.EXPIRED


class NotAvailableError(ExamPortalError):
    """Test exists but is scheduled or inactive"""
    kind = ErrorKind.NOT_AVAILABLE


class NotFoundError(ExamPortalError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class StorageError(ExamPortalError):
    """MongoDB operation failed"""
    kind = ErrorKind.STORAGE
    status_code = 500
