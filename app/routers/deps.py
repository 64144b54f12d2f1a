# app/routers/deps.py

from fastapi import Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.jwt import decode_access_token, InvalidTokenError
from app.utils.errors import UnauthorizedRequestError

bearer_scheme = HTTPBearer()

def get_current_user(token: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> dict:
    try:
        return decode_access_token(token.credentials)
    except InvalidTokenError:
        raise UnauthorizedRequestError("Unauthorized: Invalid token.")
