from app.schemas.common import ErrorResponse

# every error body is an ErrorResponse; the text only feeds the generated docs
_ERRORS = {
    400: "Invalid input, duplicate username or email, or an unusable reset token",
    401: "Missing session token or wrong credentials",
    403: "Invalid session token or not enough privileges",
    404: "Admin, article or portfolio item not found",
    500: "Server configuration or storage failure",
}

ERROR_RESPONSES = {code: {"model": ErrorResponse, "description": text} for code, text in _ERRORS.items()}
