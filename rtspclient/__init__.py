"""rtspclient - session-oriented RTSP control client

Public API:
  - RTSPClient: SETUP/PLAY/PAUSE/RECORD/DESCRIBE/OPTIONS/TEARDOWN session
  - SessionConfig: client configuration record
  - TCPTransport / TransportBase: control-channel transport and its contract
  - parse_rtsp_url: utility parser
"""

from .client import RTSPClient, SessionConfig
from .transport import TCPTransport, TransportBase
from .utils import parse_rtsp_url
from .exceptions import *

__all__ = [
    "RTSPClient",
    "SessionConfig",
    "TCPTransport",
    "TransportBase",
    "parse_rtsp_url",
    # exceptions
    "RTSPError", "RTSPValidationError", "RTSPTransportError", "RTSPProtocolError",
]
