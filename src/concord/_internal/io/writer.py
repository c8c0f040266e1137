"""Output writers: evidence files and the consensus report."""

import os
import tempfile
from pathlib import Path
from typing import Any, Union

from concord._internal.canonical_json import canonical_dumps


def write_json_atomic(path: Union[str, Path], obj: Any) -> Path:
    """Write pretty canonical JSON via temp file + rename.

    A reader never observes a half-written file: either the previous content
    or the complete new content.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(canonical_dumps(obj, indent=2) + "\n")
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return target
