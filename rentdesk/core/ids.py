import uuid

LISTING_PREFIX = "apt"
TEMP_PREFIX = "tmp"


def gen_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def is_temporary_id(value: str) -> bool:
    return value.startswith(f"{TEMP_PREFIX}_")
