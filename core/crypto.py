# core/crypto.py
"""
Identity and signature utilities for ledger calls.
An identity is derived from an RSA public key; every state-changing call is
signed by the caller's private key so the node can trust who sent it.
"""

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa, padding
from cryptography.hazmat.primitives import hashes, serialization
from typing import Tuple, Dict, Any
import hashlib
import json

from config import RSA_KEY_SIZE, IDENTITY_LENGTH


def generate_keypair() -> Tuple[str, str]:
    """
    Generate an RSA public-private key pair for signing calls.

    Returns:
        tuple: (private_key_pem, public_key_pem) as PEM-encoded strings
    """
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=RSA_KEY_SIZE,
    )
    public_key = private_key.public_key()

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


def canonical_call(action: str, args: Dict[str, Any], nonce: int) -> str:
    """
    Deterministic text form of a call; this is the exact message that gets signed.
    """
    body = {"action": action, "args": args, "nonce": nonce}
    return json.dumps(body, sort_keys=True, separators=(",", ":"))


def sign_message(message: str, private_key_pem: str) -> str:
    """
    Sign a message using the private key.

    Args:
        message: The message to sign
        private_key_pem: PEM-encoded private key

    Returns:
        str: Hex-encoded signature
    """
    private_key = serialization.load_pem_private_key(
        private_key_pem.encode('utf-8'),
        password=None,
    )

    signature = private_key.sign(
        message.encode('utf-8'),
        padding.PSS(
            mgf=padding.MGF1(hashes.SHA256()),
            salt_length=padding.PSS.MAX_LENGTH
        ),
        hashes.SHA256()
    )
    return signature.hex()


def verify_signature(message: str, signature_hex: str, public_key_pem: str) -> bool:
    """
    Verify that a signature is valid for the given message and public key.
    Malformed keys or signatures count as invalid.
    """
    try:
        public_key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
        signature = bytes.fromhex(signature_hex)
    except (ValueError, UnsupportedAlgorithm):
        return False

    if not isinstance(public_key, rsa.RSAPublicKey):
        return False

    try:
        public_key.verify(
            signature,
            message.encode('utf-8'),
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.MAX_LENGTH
            ),
            hashes.SHA256()
        )
    except InvalidSignature:
        return False
    return True


def sign_call(action: str, args: Dict[str, Any], nonce: int, private_key_pem: str) -> str:
    return sign_message(canonical_call(action, args, nonce), private_key_pem)


def hash_public_key(public_key_pem: str) -> str:
    """
    Derive the caller identity ("address") from a public key.
    """
    key_hash = hashlib.sha256(public_key_pem.encode('utf-8')).hexdigest()
    return key_hash[:IDENTITY_LENGTH]
