# Pytest looks here for fixtures
from typing import Any, Dict, Optional

import pytest

from bgwallet.simple_config import SimpleConfig


@pytest.fixture
def data_dir(tmp_path) -> str:
    path = tmp_path / "bgwallet"
    path.mkdir()
    return str(path)


@pytest.fixture
def make_config(data_dir):
    # The environment is not consulted, so the settings of the machine running the tests do not
    # leak in.
    def _make_config(options: Optional[Dict[str, Any]]=None,
            user_config: Optional[Dict[str, Any]]=None) -> SimpleConfig:
        config_options = { "bgwallet_path": data_dir }
        config_options.update(options or {})
        return SimpleConfig(config_options,
            read_user_config_function=lambda path: dict(user_config or {}), environ={})
    return _make_config
