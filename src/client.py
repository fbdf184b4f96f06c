"""
SQRL Test Client

A stateful client for a single SQRL SSP service. It plays the part of a SQRL
user agent: it fetches a nut, builds and signs cli requests with a test
identity, and chains each request to the server's previous response.
"""

import logging
from typing import Optional
from urllib.parse import urlencode, urlunsplit

import requests

from config import ClientConfig, setup_logging
from errors import CodecError, SQRLClientError, TransportError
from identity import FakeIdentity
from nut_providers import NutProvider, NutResponse, SelfNutProvider, build_nut_provider
from protocol import (
    CLI_SUFFIX, IRREVERSIBLE_COMMANDS, NUT_SUFFIX, SQRL_SCHEME,
    CliRequest, CliResponse, ClientBody, parse_cli_response, sqrl64_encode
)
from tif import describe_tif


def new_request(cmd: str, **opts: bool) -> CliRequest:
    """Create an unsigned version 1 request for cmd"""
    return CliRequest(client=ClientBody(cmd=cmd, version=[1], opt=dict(opts)))


class SQRLClient:
    """
    Client for one SQRL login session.

    The session starts unbound. The first cli request fetches a nut from the
    nut provider; every response then replaces the current nut and the
    server context, so each request is signed over the previous response.
    A session is strictly sequential and must not be shared between threads.
    """

    def __init__(self, scheme: str, host: str, root_path: str = '',
                 identity: Optional[FakeIdentity] = None,
                 nut_provider: Optional[NutProvider] = None,
                 session: Optional[requests.Session] = None,
                 log_bodies: bool = False):
        self.scheme = scheme
        self.host = host
        self.root_path = root_path.rstrip('/')
        self.identity = identity or FakeIdentity.generate()
        self.http = session or requests.Session()
        self.nut_provider = nut_provider or SelfNutProvider(
            scheme, host, self.root_path, session=self.http
        )
        self.log_bodies = log_bodies

        self.nut_response: Optional[NutResponse] = None
        self.current_nut: str = ''
        self.last_server_response: str = ''
        self.logger = self._setup_logging()

    @classmethod
    def from_config(cls, config: ClientConfig,
                    identity: Optional[FakeIdentity] = None,
                    session: Optional[requests.Session] = None) -> 'SQRLClient':
        """Create a client with the nut provider selected by config"""
        session = session or requests.Session()
        return cls(
            config.scheme, config.host, config.root_path,
            identity=identity,
            nut_provider=build_nut_provider(config, session),
            session=session,
            log_bodies=config.log_bodies,
        )

    def _setup_logging(self) -> logging.Logger:
        level = logging.DEBUG if self.log_bodies else logging.INFO
        return setup_logging(f'SQRLClient-{self.host}', level)

    @property
    def state(self) -> str:
        return 'Bound' if self.current_nut else 'Unbound'

    def _session_host(self) -> str:
        if self.nut_response and self.nut_response.session_host:
            return self.nut_response.session_host
        return self.host

    def _session_path(self) -> str:
        if self.nut_response and self.nut_response.session_path:
            return self.nut_response.session_path
        return self.root_path + CLI_SUFFIX

    def cli_url(self, nut: str = '', can: str = '') -> str:
        """URL for a cli request on the current session path"""
        params = {}
        if nut:
            params['nut'] = nut
        if can:
            params['can'] = can
        return urlunsplit((
            self.scheme, self._session_host(), self._session_path(),
            urlencode(params), ''
        ))

    def nut_url(self) -> str:
        return urlunsplit((self.scheme, self.host, self.root_path + NUT_SUFFIX, '', ''))

    def sqrl_cli_url(self, nut_response: NutResponse, include_can: bool = False) -> str:
        """sqrl:// URL for the configured server, as shown in a QR code"""
        params = {'nut': nut_response.nut}
        if include_can and nut_response.can:
            params['can'] = sqrl64_encode(nut_response.can)
        return urlunsplit((
            SQRL_SCHEME, self.host, self.root_path + CLI_SUFFIX,
            urlencode(params), ''
        ))

    def make_nut_request(self) -> NutResponse:
        """
        Fetch a new nut from the nut provider and bind the session to it.

        The SQRL URL becomes the server value of the first cli request.
        """
        nut_response = self.nut_provider.get_nut()
        self.nut_response = nut_response
        sqrl_url = nut_response.sqrl_url_string() or self.sqrl_cli_url(nut_response)
        self.last_server_response = sqrl64_encode(sqrl_url)
        self.current_nut = nut_response.nut
        self.logger.info(f"Bound session to nut {self.current_nut}")
        return nut_response

    def make_cli_request(self, req: CliRequest) -> CliResponse:
        """Make a valid cli request, filling in the session state as we go"""
        if not self.current_nut:
            try:
                self.make_nut_request()
            except SQRLClientError as exc:
                exc.command = req.cmd or None
                raise

        can = self.nut_response.can if self.nut_response else ''
        cli_url = self.cli_url(self.current_nut, can)
        self.apply_state_and_sign(req)
        return self.make_raw_cli_request(cli_url, req)

    def apply_state_and_sign(self, req: CliRequest) -> None:
        """Set the server context and the signatures required by the command"""
        req.server = self.last_server_response
        if req.cmd == 'ident':
            req.client.vuk = self.identity.vuk64
            req.client.suk = self.identity.suk64
        if req.cmd in IRREVERSIBLE_COMMANDS:
            self.identity.sign_idk_and_urs(req)
        else:
            self.identity.sign_idk(req)

    def make_standard_url_raw_cli_request(self, req: CliRequest) -> CliResponse:
        """Make an unmodified request against the current nut"""
        can = self.nut_response.can if self.nut_response else ''
        return self.make_raw_cli_request(self.cli_url(self.current_nut, can), req)

    def make_raw_cli_request(self, cli_url: str, req: CliRequest) -> CliResponse:
        """
        Make an unmodified request as passed in.

        The response still replaces the current nut and server context so
        that further requests can be chained after a deliberately bad one.
        """
        cmd = req.cmd or None
        body = req.encode()
        self.logger.info(f"Posting {cmd or '<no client>'} to {cli_url}")
        if self.log_bodies:
            self.logger.debug(f"Req client: {req.client!r}")
            self.logger.debug(f"Body {body}")

        try:
            resp = self.http.post(
                cli_url, data=body,
                headers={'Content-Type': 'application/x-www-form-urlencoded'}
            )
        except requests.RequestException as exc:
            raise TransportError("Error posting request", url=cli_url,
                                 command=cmd, cause=exc) from exc
        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"Invalid response code: {resp.status_code} {resp.reason}",
                status=resp.status_code, url=cli_url, command=cmd
            )

        if self.log_bodies:
            self.logger.debug(f"Resp raw: {resp.text}")
        try:
            cli_resp = parse_cli_response(resp.content)
        except CodecError as exc:
            exc.url = cli_url
            exc.command = cmd
            raise

        self.last_server_response = cli_resp.raw
        self.current_nut = cli_resp.nut
        self.logger.info(
            f"TIF 0x{cli_resp.tif:X} ({', '.join(describe_tif(cli_resp.tif)) or 'none'})"
        )
        return cli_resp


if __name__ == "__main__":
    from tif import TIF_IP_MATCHED, tif_compare

    # Example usage against the server configured in SQRLUA_* variables
    client = SQRLClient.from_config(ClientConfig.from_env())
    response = client.make_cli_request(new_request('query'))
    mismatches = tif_compare(TIF_IP_MATCHED, response.tif)
    if mismatches:
        for mismatch in mismatches:
            print(f"TIF Fail: {mismatch}")
    else:
        print(f"Query OK, next nut {client.current_nut}")
