"""Supervision of the local search daemon.

This package launches the search backend as a child process and exposes its
lifecycle as an observable state machine.

Architecture:
- process.py: Child process wrapper (launch, output capture, terminate, reap)
- readiness.py: Readiness probes (output sentinel, socket connect)
- supervisor.py: State machine and command serialization
- timeouts.py: Centralized timeout values
"""

from quarrybar.adapters.daemon.supervisor import DaemonSupervisor

__all__ = ["DaemonSupervisor"]
