import logging

import pytest
from heurist2rocrate import _loglevel_from_env


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ("debug", logging.DEBUG),
        (" ERROR ", logging.ERROR),
        ("verbose", logging.INFO),
        ("", logging.INFO),
    ],
)
def test_loglevel_from_env(monkeypatch, env, expected):
    monkeypatch.setenv("LOGLEVEL", env)
    assert _loglevel_from_env(logging.INFO) == expected
