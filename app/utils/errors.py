# app/utils/errors.py

from fastapi import HTTPException

class BadRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class UnauthorizedRequestError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=401, detail=detail)

class ServiceUnavailableError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=503, detail=detail)


class PersistenceError(Exception):
    """The message store could not complete a read or write."""
