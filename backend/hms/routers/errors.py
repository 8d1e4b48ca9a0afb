"""
ServiceResult -> HTTP translation shared by the routers
"""
from fastapi import HTTPException, status

from hms.services.result import ServiceResult, ErrorCode

CONFLICT_CODES = {
    ErrorCode.ALREADY_CANCELLED,
    ErrorCode.ALREADY_CHECKED_IN,
    ErrorCode.ROOM_ALREADY_ASSIGNED,
    ErrorCode.ROOM_NUMBER_EXISTS,
    ErrorCode.ROOM_OCCUPIED,
    ErrorCode.REPORT_ALREADY_EXISTS,
}


def status_for(code: ErrorCode) -> int:
    if code == ErrorCode.INTERNAL_ERROR:
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if code.value.endswith("_NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    if code in CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def unwrap(result: ServiceResult):
    """Return ``result.data`` or raise the matching HTTPException"""
    if result.success:
        return result.data
    raise HTTPException(
        status_code=status_for(result.error.code),
        detail={"message": result.error.message, "code": result.error.code.value},
    )
