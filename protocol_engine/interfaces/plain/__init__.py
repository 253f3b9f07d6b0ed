"""Plain (exit code only) test interface module."""

from protocol_engine.interfaces.plain.interface import PlainInterface

plain_interface = PlainInterface()

__all__ = ["PlainInterface", "plain_interface"]
