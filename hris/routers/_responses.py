from fastapi import status
from fastapi.responses import JSONResponse

from hris.core.schemas import ApiResponse

# Engine error codes -> HTTP status
STATUS_BY_CODE = {
    "UNAUTHORIZED": status.HTTP_401_UNAUTHORIZED,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "DUPLICATE_FORM": status.HTTP_409_CONFLICT,
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "STORE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def respond(result: ApiResponse, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if result.success:
        return JSONResponse(status_code=success_status, content=result.to_dict())
    code = result.error.code if result.error else "ERROR"
    return JSONResponse(
        status_code=STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST),
        content=result.to_dict(),
    )
