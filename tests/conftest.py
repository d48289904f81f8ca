#!/usr/bin/env python3
"""
Pytest configuration for hctm tests.

This file contains shared fixtures and configurations for unit tests.
"""

import os
import sys
import pytest
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from tests.fake_nvme import FakeNvme


@pytest.fixture
def fake_nvme():
    """
    Fixture replacing subprocess.run with a simulated nvme-cli.

    The yielded FakeNvme can be reconfigured by the test before use.
    """
    fake = FakeNvme()
    with patch('subprocess.run', side_effect=fake):
        yield fake


@pytest.fixture
def as_root():
    """Fixture pretending the tests run as root with nvme-cli installed."""
    with patch('os.geteuid', return_value=0) as mock_geteuid, \
         patch('shutil.which', return_value='/usr/sbin/nvme') as mock_which:
        yield {
            'geteuid': mock_geteuid,
            'which': mock_which
        }


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """
    Fixture removing HCTM_* variables and running from an empty directory.

    The whole environment is restored afterwards, including variables that
    python-dotenv wrote directly into os.environ.
    """
    with patch.dict(os.environ):
        for name in list(os.environ):
            if name.startswith('HCTM_'):
                del os.environ[name]
        monkeypatch.chdir(tmp_path)
        yield tmp_path
