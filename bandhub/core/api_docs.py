from bandhub.schemas.common import ErrorOut


_ERROR_EXAMPLES: dict[int, tuple[str, str]] = {
    401: ("unauthorized", "Unauthorized"),
    403: ("permission_denied", "Insufficient band permission for this action"),
    404: ("not_found", "Resource not found"),
    409: ("invalid_state", "Record is no longer in a state that allows this action"),
    422: ("validation_error", "Validation failed"),
    500: ("internal_error", "Internal server error"),
}


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, message = _ERROR_EXAMPLES.get(status_code, ("http_error", "HTTP error"))
        responses[status_code] = {
            "model": ErrorOut,
            "description": message,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": message,
                            "request_id": "request-id",
                            "path": "/bands/example",
                            "details": None,
                        }
                    }
                }
            },
        }
    return responses
