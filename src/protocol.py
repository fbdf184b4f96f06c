"""
SQRL Protocol Codec

This module implements the wire format of the SQRL server-side protocol
as seen by a client: the base64url "sqrl64" text encoding, the client
body, the form-encoded cli request and the server's cli response.

A cli request carries three encoded values:
- client: sqrl64 of CRLF separated name=value lines written by the client
- server: the previous server response verbatim (or the sqrl64 SQRL URL
  for the first request of a session)
- ids/urs/pids: signatures over client + server
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode

from errors import CodecError

SQRL_SCHEME = 'sqrl'
CLI_SUFFIX = '/cli.sqrl'
NUT_SUFFIX = '/nut.sqrl'

COMMANDS = ('query', 'ident', 'disable', 'enable', 'remove')

# Commands that must carry an unlock request signature (urs)
IRREVERSIBLE_COMMANDS = ('enable', 'remove')

_LINE_END = '\r\n'


def sqrl64_encode(data: Union[bytes, str]) -> str:
    """Encode to URL-safe base64 without padding"""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def sqrl64_decode(token: str) -> bytes:
    """Decode URL-safe base64 with or without padding"""
    token = token.strip().rstrip('=')
    if len(token) % 4 == 1:
        raise CodecError(f"Invalid sqrl64 length: {len(token)}")
    padding = '=' * (-len(token) % 4)
    try:
        return base64.b64decode(token + padding, altchars=b'-_', validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CodecError("Invalid sqrl64 data", cause=exc) from exc


def _parse_lines(text: str) -> Dict[str, str]:
    """Parse CRLF separated name=value lines"""
    values: Dict[str, str] = {}
    for line in text.split(_LINE_END):
        if not line:
            continue
        name, sep, value = line.partition('=')
        if not sep:
            raise CodecError(f"Malformed line in SQRL body: {line!r}")
        values[name] = value
    return values


def _decode_lines(encoded: str) -> Dict[str, str]:
    try:
        text = sqrl64_decode(encoded).decode('utf-8')
    except UnicodeDecodeError as exc:
        raise CodecError("SQRL body is not UTF-8", cause=exc) from exc
    return _parse_lines(text)


@dataclass
class ClientBody:
    """The client parameter of a cli request"""
    cmd: str = ''
    version: List[int] = field(default_factory=lambda: [1])
    opt: Dict[str, bool] = field(default_factory=dict)
    suk: str = ''
    vuk: str = ''
    pidk: str = ''
    idk: str = ''
    ins: str = ''
    pins: str = ''

    def lines(self) -> List[Tuple[str, str]]:
        """Non-empty name/value pairs in wire order"""
        pairs = [
            ('ver', ','.join(str(v) for v in self.version)),
            ('cmd', self.cmd),
            ('suk', self.suk),
            ('vuk', self.vuk),
            ('pidk', self.pidk),
            ('idk', self.idk),
            ('ins', self.ins),
            ('pins', self.pins),
            ('opt', '~'.join(name for name, on in self.opt.items() if on)),
        ]
        return [(name, value) for name, value in pairs if value]

    def encode(self) -> str:
        text = ''.join(f"{name}={value}{_LINE_END}" for name, value in self.lines())
        return sqrl64_encode(text)

    @classmethod
    def parse(cls, encoded: str) -> 'ClientBody':
        values = _decode_lines(encoded)
        try:
            version = [int(v) for v in values.get('ver', '').split(',') if v]
        except ValueError as exc:
            raise CodecError(f"Invalid client version: {values['ver']!r}", cause=exc) from exc
        opts = values.get('opt', '')
        return cls(
            cmd=values.get('cmd', ''),
            version=version,
            opt={name: True for name in opts.split('~') if name},
            suk=values.get('suk', ''),
            vuk=values.get('vuk', ''),
            pidk=values.get('pidk', ''),
            idk=values.get('idk', ''),
            ins=values.get('ins', ''),
            pins=values.get('pins', ''),
        )


@dataclass
class CliRequest:
    """A cli request as posted to the server"""
    client: Optional[ClientBody] = None
    server: str = ''
    ids: str = ''
    pids: str = ''
    urs: str = ''
    # Overrides the encoded client value, for sending tampered bodies
    raw_client: Optional[str] = None

    @property
    def cmd(self) -> str:
        return self.client.cmd if self.client else ''

    def client_string(self) -> str:
        if self.raw_client is not None:
            return self.raw_client
        if self.client is None:
            return ''
        return self.client.encode()

    def signing_string(self) -> bytes:
        """Canonical bytes covered by ids, pids and urs"""
        return (self.client_string() + self.server).encode('utf-8')

    def encode(self) -> str:
        """Form-encoded transport body"""
        params = [
            ('client', self.client_string()),
            ('server', self.server),
            ('ids', self.ids),
        ]
        if self.pids:
            params.append(('pids', self.pids))
        if self.urs:
            params.append(('urs', self.urs))
        return urlencode(params)

    @classmethod
    def parse(cls, body: Union[bytes, str]) -> 'CliRequest':
        if isinstance(body, bytes):
            body = body.decode('ascii', errors='replace')
        params = dict(parse_qsl(body, keep_blank_values=True))
        raw_client = params.get('client', '')
        client = ClientBody.parse(raw_client) if raw_client else None
        return cls(
            client=client,
            server=params.get('server', ''),
            ids=params.get('ids', ''),
            pids=params.get('pids', ''),
            urs=params.get('urs', ''),
            raw_client=raw_client,
        )


@dataclass
class CliResponse:
    """A parsed cli response"""
    nut: str
    tif: int
    version: List[int] = field(default_factory=lambda: [1])
    qry: str = ''
    url: str = ''
    sin: str = ''
    suk: str = ''
    ask: str = ''
    can: str = ''
    # The response body as received; becomes the next request's server value
    raw: str = ''

    def encode(self) -> str:
        pairs = [
            ('ver', ','.join(str(v) for v in self.version)),
            ('nut', self.nut),
            ('tif', format(self.tif, 'X')),
            ('qry', self.qry),
            ('url', self.url),
            ('sin', self.sin),
            ('suk', self.suk),
            ('ask', self.ask),
            ('can', self.can),
        ]
        text = ''.join(f"{name}={value}{_LINE_END}" for name, value in pairs if value)
        return sqrl64_encode(text)


def parse_cli_response(body: Union[bytes, str]) -> CliResponse:
    """Parse the raw body of a cli response"""
    if isinstance(body, bytes):
        try:
            body = body.decode('ascii')
        except UnicodeDecodeError as exc:
            raise CodecError("Response body is not ASCII", cause=exc) from exc
    values = _decode_lines(body.strip())

    if 'nut' not in values:
        raise CodecError("Response missing nut")
    if 'tif' not in values:
        raise CodecError("Response missing tif")
    try:
        tif = int(values['tif'], 16)
        version = [int(v) for v in values.get('ver', '1').split(',') if v]
    except ValueError as exc:
        raise CodecError(f"Invalid response values: {values!r}", cause=exc) from exc

    return CliResponse(
        nut=values['nut'],
        tif=tif,
        version=version,
        qry=values.get('qry', ''),
        url=values.get('url', ''),
        sin=values.get('sin', ''),
        suk=values.get('suk', ''),
        ask=values.get('ask', ''),
        can=values.get('can', ''),
        raw=body,
    )
