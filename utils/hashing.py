import hashlib
import hmac
from passlib.context import CryptContext

bcrypt_context = CryptContext(schemes=['bcrypt'], deprecated='auto')

def get_password_hash(password: str):
    # Bcrypt has a 72-byte limit, truncate if necessary
    return bcrypt_context.hash(password[:72])


def verify_password(plain_password: str, hashed_password: str):
    return bcrypt_context.verify(plain_password[:72], hashed_password)


def hash_refresh_token(token: str) -> str:
    """Digest stored on the user in place of the refresh token itself."""
    return hashlib.sha256(token.encode()).hexdigest()


def refresh_token_matches(token: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_refresh_token(token), stored_hash)
