# backend/utils/hashing.py
from passlib.context import CryptContext

# pbkdf2_sha256 ships with passlib itself, no native backend needed
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognized or malformed hash
        return False
