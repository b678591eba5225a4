"""
Pytest fixtures for the OP Stack withdrawal tests.

Contract reads are served by `FakeReader`, scripted per (contract, function),
so no node is needed.
"""

from __future__ import annotations

import pytest

from chains.op_stack.contracts import resolve_contracts
from helpers import FakeReader, make_withdrawal
from utils.config import ChainName


@pytest.fixture
def contracts():
    return resolve_contracts(ChainName.OP_SEPOLIA)


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def withdrawal():
    return make_withdrawal()
