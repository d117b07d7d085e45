"""
hostlog - UDP log receiver for remote agents

Remote agents send short text datagrams of the form ``<filename>:<message>``.
The receiver routes each message into a per-host log file and rotates files
by size, retiring old rotations according to a retention limit.

Main modules:
- core: configuration and shared data models
- receiver: parser, host registry, log writer, rotator, transport and receive loop
- diagnostics: date-named error/debug trace files
- cli: operator command line (hostlogctl)
"""

__version__ = "0.2.0"
__author__ = "hostlog maintainers"

__all__ = ["__version__", "__author__"]
