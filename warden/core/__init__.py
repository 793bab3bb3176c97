"""
Core building blocks: the access registry, sample entity models and
shared utilities.

Import submodules directly (``warden.core.registry``); this package
re-exports only the dependency-free utilities.
"""

from warden.core.utils import coerce_identifier, generate_id, utc_now

__all__ = [
    "coerce_identifier",
    "generate_id",
    "utc_now",
]
