#!/usr/bin/env python
"""
Thin wrapper script to invoke the vc_smart_commit CLI.

Running ``python smartcommit.py`` is equivalent to running the
``smartcommit`` console script installed via ``pyproject.toml``.
"""

from vc_smart_commit.cli import main


if __name__ == "__main__":
    main(prog_name="smartcommit")
