from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_root_on_syspath() -> None:
    # Some pytest import modes (and some Windows invocations) may not include the repo
    # root on sys.path, causing imports like `import ssd_kit` to fail. The tests dir is
    # added too so test modules can share `tflite_fakes`.
    tests_dir = Path(__file__).resolve().parent
    for path in (tests_dir.parent, tests_dir):
        path_str = str(path)
        if path_str not in sys.path:
            sys.path.insert(0, path_str)


_ensure_repo_root_on_syspath()
