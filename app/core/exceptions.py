"""
Parking domain exceptions

Every business error maps onto an atams exception so the shared handlers
render it with the proper HTTP status. The stable `code` is exposed in
`details` for clients that branch on the error kind.
"""
from typing import Any, Dict, Optional

from atams.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)


def _details(code: str, details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = {"code": code}
    if details:
        merged.update(details)
    return merged


class InvalidTokenException(NotFoundException):
    code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid QR code", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class JukirNotFoundException(NotFoundException):
    code = "JUKIR_NOT_FOUND"

    def __init__(self, message: str = "Jukir not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class AreaNotFoundException(NotFoundException):
    code = "AREA_NOT_FOUND"

    def __init__(self, message: str = "Parking area not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class SessionNotFoundException(NotFoundException):
    code = "SESSION_NOT_FOUND"

    def __init__(self, message: str = "Session not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class AttendantInactiveException(ForbiddenException):
    code = "ATTENDANT_INACTIVE"

    def __init__(self, message: str = "Jukir is not active", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class OutOfRangeException(ForbiddenException):
    code = "OUT_OF_RANGE"

    def __init__(self, message: str = "Location is out of range", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class CrossAreaMismatchException(ForbiddenException):
    code = "CROSS_AREA_MISMATCH"

    def __init__(
        self,
        message: str = "QR code belongs to a different parking area",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, _details(self.code, details))


class AttendantMismatchException(ForbiddenException):
    code = "ATTENDANT_MISMATCH"

    def __init__(
        self,
        message: str = "QR code does not match the check-in location",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, _details(self.code, details))


class SessionAlreadyCompletedException(ConflictException):
    code = "SESSION_ALREADY_COMPLETED"

    def __init__(self, message: str = "Session already completed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class SessionNotActiveException(ConflictException):
    code = "SESSION_NOT_ACTIVE"

    def __init__(self, message: str = "Session is not active", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class SessionAlreadyActiveException(ConflictException):
    code = "SESSION_ALREADY_ACTIVE"

    def __init__(
        self,
        message: str = "Vehicle already has an active parking session",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, _details(self.code, details))


class NotManualRecordException(BadRequestException):
    code = "NOT_MANUAL_RECORD"

    def __init__(self, message: str = "Session is not a manual record", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, _details(self.code, details))


class LocationRequiredException(BadRequestException):
    code = "LOCATION_REQUIRED"

    def __init__(
        self,
        message: str = "Latitude and longitude are required",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, _details(self.code, details))
