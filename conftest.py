import os
import sys

ROOT = os.path.dirname(__file__)
SRC = os.path.join(ROOT, "src")
EXAMPLES = os.path.join(ROOT, "examples")

for p in (SRC, EXAMPLES):
    if p not in sys.path:
        sys.path.insert(0, p)
