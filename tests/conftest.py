import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))
sys.path.insert(0, os.path.dirname(__file__))

# Configure the process-wide manager before any module creates its logger,
# so log files land in a scratch directory.
from a11yscan.utils.config_manager import get_config_manager  # noqa: E402

OUTPUT_DIR = tempfile.mkdtemp(prefix="a11yscan-tests-")
CONFIG = get_config_manager(cli_args={"OUTPUT_DIR": OUTPUT_DIR, "LOG_LEVEL": "WARNING"})


@pytest.fixture
def config_manager():
    return CONFIG


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path
