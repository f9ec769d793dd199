"""
ProtoCom: scriptable serial-line protocol interpreter.

Drives embedded devices over UART with a compact, human-readable protocol
(single-character tags, optional length-prefixed binary payloads, newline
termination) and runs conditional scripts of protocol exchanges.
"""

__version__ = "0.1.0"
