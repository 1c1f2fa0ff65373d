"""Pytest bootstrap ensuring the in-repo nfsdstat package is imported.

Prepends the repository root so a stale installed copy in site-packages
does not shadow the working tree.
"""

import os, sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
