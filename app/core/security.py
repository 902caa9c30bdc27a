import hashlib
import bcrypt

# bcrypt truncates input at 72 bytes; the digest is always 32
def _prehash(password: str) -> bytes:
    return hashlib.sha256(password.encode("utf-8")).digest()

def hash_password(password: str) -> str:
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode()

def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_prehash(password), hashed_password.encode())
    except ValueError:
        # stored value is not a bcrypt hash
        return False
