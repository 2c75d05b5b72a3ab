"""Content digests used as deduplication keys."""

import hashlib
from typing import Union

DIGEST_LENGTH = 64


def compute_digest(content: Union[str, bytes]) -> str:
    """Compute SHA-256 digest of content.

    Args:
        content: Content to hash (str is encoded as UTF-8)

    Returns:
        Lowercase hex digest, always DIGEST_LENGTH characters
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()
