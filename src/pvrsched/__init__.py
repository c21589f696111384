"""
pvrsched - recording scheduler for a multi-tuner personal video recorder.

The scheduling core lives in :mod:`pvrsched.scheduling`; everything else
(settings, logging, snapshot persistence, formatting, CLI) is plumbing
around it.
"""

__version__ = "0.1.0"
