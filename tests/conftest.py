import importlib.util
import pathlib
import sys
from unittest.mock import MagicMock

import pytest
import requests

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def fake_response(body=None, status=200, text=None):
    """requests.Response stand-in; ``raise_for_status`` behaves like the real one."""
    resp = MagicMock()
    resp.status_code = status
    if text is not None:
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        resp.json.return_value = body
    if status >= 400:
        real = requests.Response()
        real.status_code = status
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Client Error", response=real)
    return resp


def load_script(relpath, name):
    """Import a script by path (some live in folders with spaces)."""
    spec = importlib.util.spec_from_file_location(name, ROOT / relpath)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def session():
    return MagicMock()
