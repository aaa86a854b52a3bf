"""
Ready-made event handlers.

    GreeterHandler  telnet demo answering hello / path / goodby
"""

from .greeter import GreeterHandler

__all__ = ["GreeterHandler"]
