"""Signed session tokens for the realtime channel.

The login collaborator owns cookies and passwords; once a user is signed in it
mints a short token with :meth:`SessionTokenSigner.issue` and the browser sends
it in the WebSocket ``auth`` frame. The relay only trusts the user id that comes
back out of :meth:`SessionTokenSigner.verify`.
"""

from __future__ import annotations

import logging

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from campusride.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_SALT = "campusride-ws-session"


class SessionTokenSigner:
    def __init__(self, secret_key: str, *, max_age: int) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key, salt=_SALT)
        self._max_age = max_age

    def issue(self, user_id: int) -> str:
        return self._serializer.dumps({"uid": int(user_id)})

    def verify(self, token: str) -> int:
        try:
            payload = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired as exc:
            raise AuthenticationError("Session token expired", code="token_expired") from exc
        except BadSignature as exc:
            raise AuthenticationError("Invalid session token", code="token_invalid") from exc

        user_id = payload.get("uid") if isinstance(payload, dict) else None
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            logger.warning("Signed session token carried no usable uid")
            raise AuthenticationError("Invalid session token", code="token_invalid")
        return user_id
