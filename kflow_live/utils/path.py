
import os
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).parent.parent.resolve()

def to_abs_path(p: Optional[str | os.PathLike]) -> Optional[Path]:
    """Resolve a user-supplied path (sources file, conntrack file).
    Lookup order:
      1) absolute: expanduser+resolve
      2) relative to CWD
      3) relative to the package folder (BASE_DIR)
    """
    if not p:
        return None
    pp = Path(p).expanduser()
    if pp.is_absolute():
        return pp.resolve()
    p1 = Path.cwd() / pp
    if p1.exists():
        return p1.resolve()
    return (BASE_DIR / pp).resolve()
