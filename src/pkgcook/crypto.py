"""
Signing keys for package archives.
"""

from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .exceptions import SigningError

PRIVATE_KEY_NAME = "cook-private.key"
PUBLIC_KEY_NAME = "cook-public.key"


def _pss() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()), salt_length=hashes.SHA256.digest_size
    )


def generate_keys() -> tuple[rsa.RSAPrivateKey, rsa.RSAPublicKey]:
    """Generates a new 4096-bit RSA key pair."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=4096)
    return private_key, private_key.public_key()


def write_key_pair(out_dir: Path) -> tuple[Path, Path]:
    """Writes a fresh key pair as PEM files, refusing to overwrite existing keys."""
    private_path = out_dir / PRIVATE_KEY_NAME
    public_path = out_dir / PUBLIC_KEY_NAME
    for path in (private_path, public_path):
        if path.exists():
            raise SigningError(f"Key already exists: {path}")

    private_key, public_key = generate_keys()
    out_dir.mkdir(parents=True, exist_ok=True)
    private_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    private_path.chmod(0o600)
    public_path.write_bytes(
        public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )
    return private_path, public_path


def load_private_key(path: Path) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(path.read_bytes(), password=None)
    except (OSError, ValueError) as e:
        raise SigningError(f"Cannot load private key from {path}: {e}") from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"Private key at {path} is not an RSA key.")
    return key


def load_public_key(path: Path) -> rsa.RSAPublicKey:
    try:
        key = serialization.load_pem_public_key(path.read_bytes())
    except (OSError, ValueError) as e:
        raise SigningError(f"Cannot load public key from {path}: {e}") from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise SigningError(f"Public key at {path} is not an RSA key.")
    return key


def sign_payload_hash(payload_hash: bytes, private_key: rsa.RSAPrivateKey) -> bytes:
    """Signs a 32-byte SHA-256 hash using RSA-PSS."""
    if not isinstance(payload_hash, bytes) or len(payload_hash) != 32:
        raise SigningError("Payload hash must be a 32-byte SHA-256 hash.")

    return private_key.sign(payload_hash, _pss(), hashes.SHA256())


def verify_payload_hash(
    payload_hash: bytes, signature: bytes, public_key: rsa.RSAPublicKey
) -> bool:
    try:
        public_key.verify(signature, payload_hash, _pss(), hashes.SHA256())
    except InvalidSignature:
        return False
    return True
