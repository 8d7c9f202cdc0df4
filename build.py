#!/usr/bin/env python3
from __future__ import annotations

import sys

from rutulys.cli import main

if __name__ == "__main__":
    sys.exit(main())
