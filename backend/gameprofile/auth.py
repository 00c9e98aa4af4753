"""Bearer-token verification and the request gate for the users API.

The gate runs in a fixed order: client allowlist, credential presence,
token verification. Read endpoints only apply the allowlist.
"""
from functools import wraps
from typing import FrozenSet, Iterable, Optional

import jwt
from flask import current_app, request
from flask_login import UserMixin, current_user

from gameprofile.errors import NoCredentials, Unauthorized, ValidationError


class Identity(UserMixin):
    """Verified caller, built fresh for each request."""

    def __init__(self, subject: str, scopes: Iterable[str] = ()):
        self.subject = subject
        self.scopes: FrozenSet[str] = frozenset(scopes)

    def get_id(self):
        return self.subject

    def __repr__(self):
        return f"<Identity {self.subject}>"


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """Return the token part of a "<scheme> <token>" header value, or None."""
    if not header:
        return None
    parts = header.split()
    if len(parts) < 2:
        return None
    return parts[1]


def _scopes_from_claims(claims: dict) -> FrozenSet[str]:
    scope = claims.get('scope')
    if isinstance(scope, str):
        return frozenset(scope.split())
    scopes = claims.get('scopes')
    if isinstance(scopes, (list, tuple)):
        return frozenset(str(s) for s in scopes)
    return frozenset()


class TokenVerifier:
    """Verifies signed tokens against a fixed public key.

    Every failure (bad encoding, bad signature, expiry, no subject, no key)
    surfaces as the same Unauthorized error.
    """

    def __init__(self, public_key, algorithms=None, leeway: int = 0):
        self.public_key = public_key
        self.algorithms = list(algorithms or ['RS256'])
        self.leeway = leeway

    def verify(self, token: Optional[str]) -> Identity:
        if not token or not self.public_key:
            raise Unauthorized()
        try:
            claims = jwt.decode(
                token,
                self.public_key,
                algorithms=self.algorithms,
                leeway=self.leeway,
                options={'require': ['sub'], 'verify_aud': False},
            )
        except jwt.PyJWTError as exc:
            current_app.logger.info(f"[auth] token rejected: {exc.__class__.__name__}")
            raise Unauthorized() from exc
        subject = claims.get('sub')
        if not isinstance(subject, str) or not subject:
            raise Unauthorized()
        return Identity(subject, _scopes_from_claims(claims))


def load_public_key(config) -> Optional[bytes]:
    pem = config.get('AUTH_PUBLIC_KEY')
    if pem:
        return pem.encode() if isinstance(pem, str) else pem
    path = config.get('AUTH_PUBLIC_KEY_PATH')
    if not path:
        return None
    try:
        with open(path, 'rb') as fh:
            return fh.read()
    except OSError:
        return None


def load_identity_from_request(req):
    """Flask-Login request loader: turn the Authorization header into an Identity."""
    token = extract_bearer_token(req.headers.get('Authorization'))
    if token is None:
        return None
    verifier = current_app.extensions['token_verifier']
    try:
        return verifier.verify(token)
    except Unauthorized:
        return None


def check_client():
    allowed = current_app.config.get('CLIENT_WHITELIST') or []
    client_id = request.args.get('client_id')
    if not client_id or client_id not in allowed:
        raise ValidationError('Unknown client_id')


def client_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        check_client()
        return view(*args, **kwargs)
    return wrapper


def token_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        check_client()
        if not request.headers.get('Authorization'):
            raise NoCredentials()
        if not current_user.is_authenticated:
            raise Unauthorized()
        return view(*args, **kwargs)
    return wrapper
