"""Base exception for metarepo.

Module-specific errors live next to the code that raises them
(manifest, git, templates, retry) and all derive from MetarepoError,
so commands can report any of them uniformly.
"""


class MetarepoError(Exception):
    """Base exception for all metarepo failures."""
    pass
