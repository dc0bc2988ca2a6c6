"""Security related functions."""

import jwt
from fastapi import HTTPException, status

from app.core.config import settings


class ClerkAuthenticator:
    """
    Handles Clerk token verification.

    The messaging service does not own identities: every request carries a
    Clerk-issued JWT whose ``sub`` claim identifies the caller.

    :ivar secret_key: The secret key used to verify JWT tokens.
    :type secret_key: str
    """

    def __init__(self):
        self.secret_key = settings.clerk_secret_key

    async def verify_token(self, token: str) -> dict:
        """
        Decode a Clerk JWT and return its payload.

        When a Clerk secret key is configured the signature is checked with it;
        otherwise (local development) the token is decoded without
        verification.

        :param token: The JWT token to be verified.
        :return: The decoded payload.
        """
        try:
            if self.secret_key:
                return jwt.decode(
                    token,
                    key=self.secret_key,
                    algorithms=[settings.algorithm],
                    options={"verify_aud": False},
                )
            return jwt.decode(
                token,
                options={"verify_signature": False, "verify_aud": False, "verify_exp": False},
            )
        except jwt.InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid authentication token: {str(e)}",
            ) from e
