"""Shared pytest configuration for the Tourism Block test suite.

Ensures the project root is on sys.path so test files can import
source modules (contract, registry, api, etc.) directly, and keeps the
log file and default world state out of the repo.
"""

import os
import sys
import tempfile
from pathlib import Path

# Add project root to sys.path so `import contract`, `from api import app`, etc. work
PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

_tmp_ctx = tempfile.TemporaryDirectory(prefix="tourism_block_test_")
os.environ.setdefault("TOURISM_ENV", "test")
os.environ.setdefault("TOURISM_API_TOKEN", "")
os.environ.setdefault("TOURISM_LOG_FILE", os.path.join(_tmp_ctx.name, "tourism_block.log"))
os.environ.setdefault("TOURISM_DB_PATH", os.path.join(_tmp_ctx.name, "tourism_block.db"))
