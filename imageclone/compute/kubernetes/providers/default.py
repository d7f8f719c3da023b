"""
Default provider for the Kubernetes API.
"""

__all__ = ["Default"]


from .local import Local


class Default(Local):
    pass
