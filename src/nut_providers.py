"""
SQRL Nut Providers

A nut provider starts a SQRL session: it fetches the first nut and the SQRL
URL the server announces for the login. The self provider talks to the
server under test; the Java and .NET providers scrape the public demo sites
of those reference implementations.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from urllib.parse import SplitResult, parse_qs, urlencode, urlsplit, urlunsplit

import requests

from config import ClientConfig, setup_logging
from errors import CodecError, NutNotFoundError, TransportError
from protocol import CLI_SUFFIX, NUT_SUFFIX, SQRL_SCHEME

JAVA_DEMO_URL = 'https://sqrljava.com:20000/sqrlexample/login'
DOTNET_DEMO_URL = 'https://www.liamraper.me.uk/login-sqrl?Helper'

SQRL_URL_PATTERN = re.compile(r"sqrl://[\-0-9A-Za-z._~:/?#\[\]@!$&'()*+,;=]+")


@dataclass
class NutResponse:
    """Result of a nut request"""
    nut: str
    sqrl_url: Optional[SplitResult] = None
    # only returned by the self provider
    pag_nut: str = ''
    can: str = ''

    @property
    def session_path(self) -> str:
        return self.sqrl_url.path if self.sqrl_url else ''

    @property
    def session_host(self) -> str:
        return self.sqrl_url.netloc if self.sqrl_url else ''

    def sqrl_url_string(self) -> str:
        return urlunsplit(self.sqrl_url) if self.sqrl_url else ''


class NutProvider(ABC):
    """Source of the initial nut for a session"""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.logger = setup_logging(f'NutProvider-{type(self).__name__}')

    @abstractmethod
    def get_nut(self) -> NutResponse:
        """Fetch a fresh nut and the SQRL URL it belongs to"""

    def _get(self, url: str, **kwargs) -> requests.Response:
        self.logger.info(f"Running nut request: GET {url}")
        try:
            resp = self.session.get(url, **kwargs)
        except requests.RequestException as exc:
            raise TransportError("Nut request failed", url=url, cause=exc) from exc
        if not 200 <= resp.status_code < 300:
            raise TransportError(
                f"Invalid response code: {resp.status_code} {resp.reason}",
                status=resp.status_code, url=url
            )
        return resp


def _nut_from_url(sqrl_url: SplitResult, source: str) -> NutResponse:
    nuts = parse_qs(sqrl_url.query).get('nut')
    if not nuts:
        raise NutNotFoundError("SQRL URL has no nut", url=source)
    return NutResponse(nut=nuts[0], sqrl_url=sqrl_url)


def parse_sqrl_url_from_body(text: str, source: Optional[str] = None) -> SplitResult:
    """Return the first sqrl:// URL found in a page"""
    for line in text.splitlines():
        match = SQRL_URL_PATTERN.search(line)
        if match:
            return urlsplit(match.group(0))
    raise NutNotFoundError("SQRL URL Not Found", url=source)


class SelfNutProvider(NutProvider):
    """Asks the server under test for a nut on its nut.sqrl endpoint"""

    def __init__(self, scheme: str, host: str, root_path: str = '',
                 session: Optional[requests.Session] = None):
        super().__init__(session)
        self.scheme = scheme
        self.host = host
        self.root_path = root_path.rstrip('/')

    def nut_url(self) -> str:
        return urlunsplit((self.scheme, self.host, self.root_path + NUT_SUFFIX, '', ''))

    def get_nut(self) -> NutResponse:
        url = self.nut_url()
        resp = self._get(url)
        params = parse_qs(resp.text, keep_blank_values=True)
        if 'nut' not in params:
            raise CodecError(f"Couldn't parse url encoded body: {resp.text!r}", url=url)
        nut = params['nut'][0]
        sqrl_url = SplitResult(
            SQRL_SCHEME, self.host, self.root_path + CLI_SUFFIX,
            urlencode({'nut': nut}), ''
        )
        return NutResponse(
            nut=nut,
            sqrl_url=sqrl_url,
            pag_nut=params.get('pag', [''])[0],
            can=params.get('can', [''])[0],
        )


class JavaNutProvider(NutProvider):
    """Scrapes the SQRL URL from the sqrljava.com login page"""

    def __init__(self, url: str = JAVA_DEMO_URL,
                 session: Optional[requests.Session] = None):
        super().__init__(session)
        self.url = url

    def get_nut(self) -> NutResponse:
        resp = self._get(self.url, allow_redirects=False)
        sqrl_url = parse_sqrl_url_from_body(resp.text, source=self.url)
        self.logger.info(f"Got match: {urlunsplit(sqrl_url)}")
        return _nut_from_url(sqrl_url, self.url)


class DotNetNutProvider(NutProvider):
    """Reads the SQRL URL from the JSON helper of the .NET reference server"""

    def __init__(self, url: str = DOTNET_DEMO_URL,
                 session: Optional[requests.Session] = None):
        super().__init__(session)
        self.url = url

    def get_nut(self) -> NutResponse:
        resp = self._get(self.url, allow_redirects=False)
        try:
            helper = resp.json()
        except ValueError as exc:
            raise CodecError("Invalid JSON from nut helper", url=self.url, cause=exc) from exc
        # also carries checkUrl, cancelUrl, qrCodeBase64 and redirectUrl
        raw_url = helper.get('url') if isinstance(helper, dict) else None
        if not isinstance(raw_url, str) or not raw_url.startswith(SQRL_SCHEME + '://'):
            raise NutNotFoundError("SQRL URL Not Found in helper response", url=self.url)
        return _nut_from_url(urlsplit(raw_url), self.url)


def build_nut_provider(config: ClientConfig,
                       session: Optional[requests.Session] = None) -> NutProvider:
    """Create the nut provider selected in the config"""
    if config.nut_provider == 'java':
        return JavaNutProvider(session=session)
    if config.nut_provider == 'dotnet':
        return DotNetNutProvider(session=session)
    return SelfNutProvider(config.scheme, config.host, config.root_path, session=session)
