"""
Default provider for image transfer.
"""

__all__ = ["Default"]


from .docker_local import DockerLocal


class Default(DockerLocal):
    pass
