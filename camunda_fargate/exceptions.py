"""
Errors raised while assembling a Camunda deployment graph.
"""


class TopologyError(ValueError):
    """
    Raised at construction time when the requested topology cannot be wired.

    The message names the missing or conflicting input so the caller can fix
    the construct properties rather than debug a half-built stack.
    """
