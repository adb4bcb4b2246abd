"""Control-channel transport: blocking TCP connection plus RTSP message codec.

RTSPClient only talks to the TransportBase contract below, so tests (or
callers with their own I/O) can substitute any object implementing it.
"""

from __future__ import annotations

import logging
import re
import socket
from typing import Dict, List, Optional, Tuple

from .exceptions import RTSPProtocolError, RTSPTransportError
from .utils import validate_token

log = logging.getLogger("rtspclient.transport")

RTSP_VERSION = "1.0"
USER_AGENT = "rtspclient/0.1"
HEADER_END = b"\r\n\r\n"

_STATUS_RE = re.compile(r"RTSP/[12]\.[01]\s+([0-9]{3})\s*(.*)$")
_CONTENT_LENGTH_RE = re.compile(r"^content-length:\s*(\d+)\s*$", re.IGNORECASE | re.MULTILINE)

class TransportBase:
    """What RTSPClient needs from a transport.

    Request headers registered with set_request_header() stick until they
    are overwritten or removed; response accessors describe the most recent
    exchange only.
    """

    @property
    def connected(self) -> bool:
        raise NotImplementedError

    def open_connection(self, host: str, port: int) -> None:
        raise NotImplementedError

    def set_request_header(self, name: str, value: str) -> None:
        raise NotImplementedError

    def remove_request_header(self, name: str) -> None:
        raise NotImplementedError

    def send_request(self, method: str, uri: str) -> bool:
        raise NotImplementedError

    @property
    def status_code(self) -> Optional[int]:
        raise NotImplementedError

    @property
    def status_message(self) -> str:
        raise NotImplementedError

    @property
    def response_headers(self) -> Dict[str, List[str]]:
        raise NotImplementedError

    @property
    def response_body(self) -> str:
        raise NotImplementedError

    @property
    def response_header_lines(self) -> List[str]:
        return [f"{name}: {value}" for name, values in self.response_headers.items() for value in values]

    def get_header(self, name: str) -> Optional[List[str]]:
        return self.response_headers.get(name.lower())

    def close(self) -> None:
        raise NotImplementedError

# TCPTransport - one blocking request/response exchange per send_request()
class TCPTransport(TransportBase):
    def __init__(self, timeout: float = 5.0, user_agent: str = USER_AGENT, mode: str = 'strict'):
        self.timeout = float(timeout)
        self.user_agent = user_agent
        self.mode = mode
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self.cseq = 1
        self._sock: Optional[socket.socket] = None
        self._buffer = b''
        self._request_headers: Dict[str, str] = {}
        self._reset_response()

    def _reset_response(self) -> None:
        self._status_code: Optional[int] = None
        self._status_message = ''
        self._response_headers: Dict[str, List[str]] = {}
        self._response_header_lines: List[str] = []
        self._response_body = ''

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def open_connection(self, host: str, port: int) -> None:
        if self._sock:
            log.debug('Transport already open - closing before reconnect.')
            self.close()
        try:
            s = socket.create_connection((host, int(port)), timeout=self.timeout)
            s.settimeout(self.timeout)
        except OSError as exc:
            raise RTSPTransportError(str(exc), exc.errno) from exc
        self._sock = s
        self.host = host
        self.port = int(port)
        log.debug("TCPTransport connected to %s:%d", host, self.port)

    def close(self) -> None:
        try:
            if self._sock:
                self._sock.close()
        finally:
            self._sock = None
            self._buffer = b''

    # request headers
    def set_request_header(self, name: str, value: str) -> None:
        validate_token('header-name', name, self.mode)
        self.remove_request_header(name)
        self._request_headers[name] = str(value)

    def remove_request_header(self, name: str) -> None:
        for key in [k for k in self._request_headers if k.lower() == name.lower()]:
            del self._request_headers[key]

    @property
    def request_headers(self) -> Dict[str, str]:
        return dict(self._request_headers)

    # response accessors
    @property
    def status_code(self) -> Optional[int]:
        return self._status_code

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def response_headers(self) -> Dict[str, List[str]]:
        return self._response_headers

    @property
    def response_body(self) -> str:
        return self._response_body

    @property
    def response_header_lines(self) -> List[str]:
        """Header lines as received, original name casing kept."""
        return list(self._response_header_lines)

    # exchange
    def _next_cseq(self) -> str:
        v = str(self.cseq)
        self.cseq += 1
        return v

    def _format_request(self, method: str, uri: str) -> bytes:
        headers = {'CSeq': self._next_cseq(), 'User-Agent': self.user_agent}
        headers.update(self._request_headers)
        req_line = f"{method} {uri} RTSP/{RTSP_VERSION}\r\n"
        hdrs = ''.join(f"{k}: {v}\r\n" for k, v in headers.items())
        full = req_line + hdrs + '\r\n'
        log.debug('>>> REQUEST >>>\n%s', full)
        return full.encode()

    def send_request(self, method: str, uri: str) -> bool:
        if not self._sock:
            raise RTSPTransportError("Not connected")
        validate_token('method', method, self.mode)
        self._reset_response()
        raw_req = self._format_request(method, uri)
        try:
            self._sock.sendall(raw_req)
            head, body = self._read_response()
        except OSError as exc:
            log.warning('Transport error during %s: %s', method, exc)
            raise RTSPTransportError(str(exc), exc.errno) from exc
        log.debug('<<< RESPONSE <<<\n%s%s', head, body if len(body) < 2000 else body[:2000] + '...(truncated)')
        self._parse_response(head, body)
        return True

    def _recv_more(self) -> None:
        data = self._sock.recv(65536)
        if not data:
            raise RTSPTransportError('Connection closed by server')
        self._buffer += data

    def _read_response(self) -> Tuple[str, str]:
        """Read one complete message: headers, then Content-Length bytes."""
        while HEADER_END not in self._buffer:
            self._recv_more()
        end = self._buffer.index(HEADER_END) + len(HEADER_END)
        head = self._buffer[:end].decode(errors='ignore')
        m = _CONTENT_LENGTH_RE.search(head)
        length = int(m.group(1)) if m else 0
        while len(self._buffer) < end + length:
            self._recv_more()
        body = self._buffer[end:end + length]
        self._buffer = self._buffer[end + length:]
        return head, body.decode(errors='ignore')

    def _parse_response(self, head: str, body: str) -> None:
        lines = head.rstrip('\r\n').split('\r\n')
        status_line = lines[0]
        m = _STATUS_RE.match(status_line)
        if m:
            status_code = int(m.group(1))
            reason = m.group(2).strip()
        elif self.mode == 'strict':
            raise RTSPProtocolError(f'Invalid status line: {status_line!r}')
        else:
            log.warning('lenient: invalid status line %r - treating as 500', status_line)
            status_code, reason = 500, ''
        headers: Dict[str, List[str]] = {}
        fields: List[List[str]] = []
        last = None
        for line in lines[1:]:
            if not line:
                continue
            if line[0] in ' \t' and last is not None:
                # folded continuation of the previous header
                headers[last][-1] = f"{headers[last][-1]} {line.strip()}"
                fields[-1][1] = headers[last][-1]
                continue
            if ':' not in line:
                if self.mode == 'strict':
                    raise RTSPProtocolError(f'Malformed header line: {line!r}')
                log.warning('lenient: malformed header line %r - skipping', line)
                continue
            k, v = line.split(':', 1)
            last = k.strip().lower()
            headers.setdefault(last, []).append(v.strip())
            fields.append([k.strip(), v.strip()])
        self._status_code = status_code
        self._status_message = reason
        self._response_headers = headers
        self._response_header_lines = [f"{name}: {value}" for name, value in fields]
        self._response_body = body
