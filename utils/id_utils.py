"""
utils/id_utils.py

Purpose: Locally generated record identifiers

Format: <prefix>_<epoch millis>_<9 random base36 chars>, e.g. msg_1718000000000_k3j9x0a1b
"""

import secrets
import string
import time

ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_record_id(prefix: str) -> str:
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{millis}_{suffix}"
