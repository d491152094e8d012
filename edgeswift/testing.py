"""
Helper tools to test the applications embedding the SWIFT controller.

This module is a part of the public interface.
"""
from edgeswift._kits.doubles import ConvergenceCall, InMemoryConvergence, ScriptedWatchTransport

__all__ = [
    'ConvergenceCall',
    'InMemoryConvergence',
    'ScriptedWatchTransport',
]
