import secrets
import uuid

def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def gen_numeric_code(digits: int = 6) -> str:
    # Zero-padded, uniformly distributed (e.g. "004821")
    return str(secrets.randbelow(10 ** digits)).zfill(digits)
