"""SSH tunnel infrastructure.

Provides local port allocation and lifecycle management for ``ssh -L``
forwards used to reach MySQL servers behind a jump host.
"""

from .ports import LOOPBACK, allocate_local_port, is_port_listening
from .tunnel import SshTunnelManager, TunnelHandle, TunnelState

__all__ = [
    "LOOPBACK",
    "allocate_local_port",
    "is_port_listening",
    "SshTunnelManager",
    "TunnelHandle",
    "TunnelState",
]
