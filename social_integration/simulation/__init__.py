from .controller import Controller

__all__ = ["Controller"]
