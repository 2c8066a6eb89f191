# tests/conftest.py
from pathlib import Path
import sys

# Ensure the src/ layout is importable when running pytest directly.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
