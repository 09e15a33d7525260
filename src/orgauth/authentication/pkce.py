"""PKCE (RFC 7636) parameter generation for the authorization code flow.

Both the CSRF ``state`` and the code verifier come from ``secrets``; only S256
challenges are produced.
"""

import base64
import hashlib
import secrets

from orgauth.authentication.auth_models import FlowParameters

CODE_VERIFIER_BYTES = 32
STATE_BYTES = 32


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_state() -> str:
    """Opaque CSRF correlation value (256 bits)."""
    return secrets.token_urlsafe(STATE_BYTES)


def generate_code_verifier() -> str:
    """Unpadded base64url of 32 random bytes: always 43 characters."""
    return _base64url(secrets.token_bytes(CODE_VERIFIER_BYTES))


def generate_code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _base64url(digest)


def create_flow_parameters(return_to: str) -> FlowParameters:
    code_verifier = generate_code_verifier()
    return FlowParameters(
        state=generate_state(),
        code_verifier=code_verifier,
        code_challenge=generate_code_challenge(code_verifier),
        return_to=return_to,
    )
