"""Webhook signature verification.

Adobe I/O deliveries are signed either with an RSA key pair (the signature is a
base64 SHA-256 signature) or, for self-registered webhooks, with a shared
secret (hex HMAC-SHA256 of the raw body). Which check applies is decided once,
up front, by `resolve_mode`; `SignatureVerifier.verify` then dispatches on the
resolved plan and never raises.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from pipeline_notify.files import existing_file
from pipeline_notify.models import IncomingRequest

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_HEADER = "x-adobe-signature"

PublicKey = rsa.RSAPublicKey | ec.EllipticCurvePublicKey


class VerificationMode(Enum):
    RAW_PUBLIC_KEY = "raw_public_key"
    PARSED_PUBLIC_KEY = "parsed_public_key"
    HMAC = "hmac"
    REJECT = "reject"


@dataclass(frozen=True)
class VerificationPlan:
    mode: VerificationMode
    signature: str = ""
    public_key: PublicKey | None = None
    secret: str = ""
    reason: str = ""


def load_public_key(key: str) -> PublicKey | None:
    """Parse `key` (PEM text or a path to a PEM file) as a public key.

    Returns None when the material is not a usable public key, in which case
    the caller treats it as a shared secret.
    """
    content = key
    path = existing_file(key) if "\n" not in key else None
    if path:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Error reading key file: {e}")
            return None
    try:
        public_key = serialization.load_pem_public_key(content.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm):
        return None
    if not isinstance(public_key, (rsa.RSAPublicKey, ec.EllipticCurvePublicKey)):
        logger.warning(f"Unsupported public key type: {type(public_key).__name__}")
        return None
    return public_key


def _integral_floats_as_ints(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {k: _integral_floats_as_ints(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_integral_floats_as_ints(v) for v in value]
    return value


def canonical_body(body: Any) -> bytes:
    """Compact JSON of a parsed body, base64-encoded: the signed representation.

    The signer serializes with JSON.stringify, which writes 1.0 as 1, so
    whole-number floats are emitted as integers here as well.
    """
    serialized = json.dumps(_integral_floats_as_ints(body), separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(serialized.encode("utf-8"))


def _to_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def resolve_mode(
    request: IncomingRequest,
    key_material: str | None = None,
    signature_header: str = DEFAULT_SIGNATURE_HEADER,
) -> VerificationPlan:
    """Decide how `request` must be verified.

    Configured key material takes precedence over a key embedded in the request.
    """
    key = key_material or request.public_key
    if not key:
        return VerificationPlan(VerificationMode.REJECT, reason="no key material")

    signature = request.header(signature_header)
    if not signature:
        return VerificationPlan(VerificationMode.REJECT, reason=f"missing {signature_header} header")

    public_key = load_public_key(key)
    if public_key is not None:
        if request.raw_body is not None:
            return VerificationPlan(VerificationMode.RAW_PUBLIC_KEY, signature, public_key=public_key)
        if request.body is not None:
            return VerificationPlan(VerificationMode.PARSED_PUBLIC_KEY, signature, public_key=public_key)
        return VerificationPlan(VerificationMode.REJECT, reason="no body to verify")

    if request.raw_body is None:
        return VerificationPlan(VerificationMode.REJECT, reason="HMAC requires the raw body")
    return VerificationPlan(VerificationMode.HMAC, signature, secret=key)


def _verify_public_key(public_key: PublicKey, signature: str, payload: bytes) -> bool:
    try:
        raw_signature = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        return False
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(raw_signature, payload, padding.PKCS1v15(), hashes.SHA256())
        else:
            public_key.verify(raw_signature, payload, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True


def _verify_hmac(secret: str, signature: str, raw_body: bytes) -> bool:
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8"))


class SignatureVerifier:
    def __init__(self, signature_header: str = DEFAULT_SIGNATURE_HEADER):
        self.signature_header = signature_header

    def verify(self, request: IncomingRequest, key_material: str | None = None) -> bool:
        plan = resolve_mode(request, key_material, self.signature_header)
        logger.info(f"Verifying request signature (mode={plan.mode.value})")

        match plan.mode:
            case VerificationMode.RAW_PUBLIC_KEY:
                ok = _verify_public_key(plan.public_key, plan.signature, _to_bytes(request.raw_body))
            case VerificationMode.PARSED_PUBLIC_KEY:
                ok = _verify_public_key(plan.public_key, plan.signature, canonical_body(request.body))
            case VerificationMode.HMAC:
                ok = _verify_hmac(plan.secret, plan.signature, _to_bytes(request.raw_body))
            case _:
                logger.warning(f"Signature verification rejected: {plan.reason}")
                return False

        if not ok:
            logger.warning(f"Signature mismatch (mode={plan.mode.value})")
        return ok


def verify_request(
    request: IncomingRequest,
    key_material: str | None = None,
    signature_header: str = DEFAULT_SIGNATURE_HEADER,
) -> bool:
    return SignatureVerifier(signature_header).verify(request, key_material)
