from __future__ import annotations

import os
import sys
from pathlib import Path


# Ensure `import apify_tester...` works when running `pytest` from repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

# `apify_tester.api.app` builds a module-level app at import time.
os.environ.setdefault("APIFY_TESTER_CONFIG_PATH", str(REPO_ROOT / "config" / "default.toml"))
