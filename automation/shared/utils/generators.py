"""Primary key generation for ORM rows."""

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """Return a new CUID2 string (used as default for every `id` column)."""
    return str(_next_cuid())
