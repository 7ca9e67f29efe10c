from datetime import timedelta
from jose import jwt
from careerly.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from careerly.db.base import utcnow


def create_access_token(data: dict, expires_delta: timedelta = None):
    """
    Issue a signed access token.

    Tokens are minted by the identity service in production; this is used
    for local development and tests. "sub" must carry the user id.
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
