"""High-level RTSPClient: session state machine over a pluggable transport.

The client owns configuration (server address, media path, requested
transport) and session state (connected flag, session id). Every verb goes
through request(), which applies the same status check and diagnostic
output. Socket I/O and message framing belong to the transport.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional

from .exceptions import RTSPError, RTSPValidationError
from .transport import TCPTransport, TransportBase
from .utils import DEFAULT_PORT, parse_rtsp_url

log = logging.getLogger("rtspclient.client")

@dataclass
class SessionConfig:
    address: str
    port: int = DEFAULT_PORT
    media_path: str = '/'
    transport_protocol: str = 'RTP/AVP;unicast'
    client_port_range: str = '6970-6971'
    print_headers: bool = False
    debug: bool = False

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.address, str) or not self.address:
            raise RTSPValidationError("address is required")
        try:
            self.port = int(self.port)
        except (TypeError, ValueError) as exc:
            raise RTSPValidationError(f"Invalid port: {self.port!r}") from exc
        if not 0 < self.port < 65536:
            raise RTSPValidationError(f"Port out of range: {self.port}")
        if not isinstance(self.media_path, str) or not self.media_path.startswith('/'):
            raise RTSPValidationError(f"media_path must start with '/': {self.media_path!r}")

    @classmethod
    def from_url(cls, url: str, **overrides) -> "SessionConfig":
        host, port, path = parse_rtsp_url(url)
        return cls(address=host, port=port, media_path=path, **overrides)

def _config_property(name: str, doc: str) -> property:
    def fget(self):
        return getattr(self.config, name)

    def fset(self, value):
        old = getattr(self.config, name)
        setattr(self.config, name, value)
        try:
            self.config.validate()
        except RTSPValidationError:
            setattr(self.config, name, old)
            raise

    return property(fget, fset, doc=doc)

def _session_timeout(params: str) -> Optional[int]:
    for param in params.split(';'):
        key, _, value = param.partition('=')
        if key.strip().lower() == 'timeout' and value.strip().isdigit():
            return int(value)
    return None

class RTSPClient:
    """RTSP control session against a single media path.

    Example::

        with RTSPClient('10.0.1.105', media_path='/mpeg4/media.amp') as client:
            if client.open():
                sdp = client.describe()
                client.play()

    Verbs return False (or None for data-returning ones) when the client is
    not connected or the server answers anything but 200; request_status()
    tells an expected 405 apart from a real failure. Leaving the ``with``
    block, calling close(), or discarding a connected client sends a
    best-effort TEARDOWN.
    """

    address = _config_property('address', 'RTSP server address.')
    port = _config_property('port', 'RTSP server port.')
    media_path = _config_property('media_path', 'Path of the requested media stream, e.g. /mpeg4/media.amp.')
    transport_protocol = _config_property('transport_protocol', 'Transport requested on SETUP.')
    client_port_range = _config_property('client_port_range', 'Client RTP/RTCP port pair advertised on SETUP.')
    print_headers = _config_property('print_headers', 'Log response headers and body of successful requests.')
    debug = _config_property('debug', 'Log the status line of every response.')

    def __init__(self,
                 address: str,
                 port: int = DEFAULT_PORT,
                 media_path: str = '/',
                 transport_protocol: str = 'RTP/AVP;unicast',
                 client_port_range: str = '6970-6971',
                 print_headers: bool = False,
                 debug: bool = False,
                 transport: Optional[TransportBase] = None):
        self._connected = False
        self.config = SessionConfig(address, port, media_path, transport_protocol,
                                    client_port_range, print_headers, debug)
        self._transport = transport if transport is not None else TCPTransport()
        self._session_id: Optional[str] = None
        self.session_timeout: Optional[int] = None

    @classmethod
    def from_config(cls, config: SessionConfig, transport: Optional[TransportBase] = None) -> "RTSPClient":
        return cls(transport=transport, **asdict(config))

    @classmethod
    def from_url(cls, url: str, transport: Optional[TransportBase] = None, **overrides) -> "RTSPClient":
        """Build a client from ``rtsp://host[:port]/path``.

        Raises RTSPValidationError if the host or path cannot be extracted.
        """
        return cls.from_config(SessionConfig.from_url(url, **overrides), transport)

    # state
    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def transport(self) -> TransportBase:
        return self._transport

    @property
    def request_uri(self) -> str:
        return f"rtsp://{self.address}:{self.port}{self.media_path}"

    def request_status(self) -> Optional[int]:
        """Status code of the last request (e.g. 200, 405)."""
        return self._transport.status_code

    @property
    def status(self) -> Optional[int]:
        """Attribute form of request_status(), read like the other state properties."""
        return self.request_status()

    # verbs
    def open(self) -> bool:
        """Connect to the server and SETUP a session.

        Returns True once the server has assigned a session id. Returns False
        when SETUP is refused or the reply carries no Session header; the
        connection is closed in both cases. Raises RTSPTransportError if the
        server cannot be reached; any error raised while connecting or during
        SETUP leaves the client unconnected with the connection closed.
        """
        try:
            self._transport.open_connection(self.address, self.port)
        except RTSPError:
            self._end_session()
            raise
        self._transport.set_request_header(
            'Transport', ';'.join((self.transport_protocol, f"client_port={self.client_port_range}")))
        try:
            ok = self.request('SETUP')
        except RTSPError:
            self._end_session()
            raise
        finally:
            # only SETUP negotiates the transport
            self._transport.remove_request_header('Transport')
        if not ok:
            self._end_session()
            return False

        values = self._transport.get_header('Session')
        session_id, _, params = (values[0] if values else '').partition(';')
        session_id = session_id.strip()
        if not session_id:
            log.warning('SETUP %s succeeded without a session id', self.request_uri)
            self._end_session()
            return False

        self._session_id = session_id
        self.session_timeout = _session_timeout(params)
        self._transport.set_request_header('Session', session_id)
        self._connected = True
        log.debug('Session %s established with %s', session_id, self.request_uri)
        return True

    def play(self) -> bool:
        """Start or resume playback of the stream."""
        if not self._connected:
            return False
        return self.request('PLAY')

    def pause(self) -> bool:
        """Halt playback; a later play() resumes from the pause point."""
        if not self._connected:
            return False
        return self.request('PAUSE')

    def record(self) -> bool:
        """Ask the server to store the stream."""
        if not self._connected:
            return False
        return self.request('RECORD')

    def teardown(self) -> bool:
        """End the session.

        The client counts as disconnected before the request goes out, so a
        failed TEARDOWN is not retried.
        """
        if not self._connected:
            return False
        self._connected = False
        try:
            return self.request('TEARDOWN')
        finally:
            self._end_session()

    def options(self) -> bool:
        if not self._connected:
            return False
        return self.request('OPTIONS')

    def options_public(self) -> Optional[List[str]]:
        """Methods the server accepts, from the Public header of an OPTIONS reply."""
        if not self.options():
            return None
        values = self._transport.get_header('Public')
        if not values:
            return None
        return [token.strip() for value in values for token in value.split(',') if token.strip()]

    def describe(self) -> Optional[str]:
        """Raw DESCRIBE body, normally SDP text."""
        if not self._connected:
            return None
        if not self.request('DESCRIBE'):
            return None
        return self._transport.response_body

    def request(self, method: str) -> bool:
        """Send ``method`` to the current request URI; True on a 200 reply."""
        method = method.upper()
        if not self._transport.send_request(method, self.request_uri):
            return False

        status = self._transport.status_code
        if self.debug:
            log.info('Status: %s %s', status, self._transport.status_message)
        if status != 200:
            return False

        if self.print_headers:
            for line in self._transport.response_header_lines:
                log.info('%s', line)
            body = self._transport.response_body
            if body:
                log.info('%s', body)
        return True

    # cleanup
    def _end_session(self) -> None:
        self._connected = False
        self._session_id = None
        self.session_timeout = None
        self._transport.remove_request_header('Session')
        self._transport.close()

    def _teardown_quietly(self) -> None:
        try:
            self.teardown()
        except Exception as exc:
            log.debug('Best-effort TEARDOWN failed: %s', exc)

    def close(self) -> None:
        """Tear the session down if still connected and release the connection."""
        try:
            if self._connected:
                self._teardown_quietly()
        finally:
            self._transport.close()

    def __enter__(self) -> "RTSPClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        if getattr(self, '_connected', False):
            self._teardown_quietly()
