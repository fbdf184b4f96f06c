"""
Shared fixtures for the SQRL client tests.

End-to-end tests run against the in-process stub server unless --live is
given, in which case they target the server named by --scheme/--host/--path.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from client import SQRLClient
from config import ClientConfig
from stub_server import RunningStubServer


def pytest_addoption(parser):
    group = parser.getgroup('sqrl')
    group.addoption('--live', action='store_true', default=False,
                    help='run end-to-end tests against a real SQRL server')
    group.addoption('--scheme', default='http', help='url scheme for the host')
    group.addoption('--host', default='localhost:8000',
                    help='host to execute the tests against')
    group.addoption('--path', default='',
                    help='path where the SQRL API is rooted if not /')
    group.addoption('--nut-provider', default='self',
                    choices=['self', 'java', 'dotnet'],
                    help='how the first nut of a session is obtained')


@pytest.fixture
def stub_server():
    server = RunningStubServer().start()
    yield server
    server.stop()


@pytest.fixture
def client_config(request, stub_server):
    opts = request.config
    if opts.getoption('--live'):
        return ClientConfig(
            scheme=opts.getoption('--scheme'),
            host=opts.getoption('--host'),
            root_path=opts.getoption('--path'),
            nut_provider=opts.getoption('--nut-provider'),
        )
    return ClientConfig(scheme='http', host=stub_server.host)


@pytest.fixture
def client(client_config):
    return SQRLClient.from_config(client_config)
