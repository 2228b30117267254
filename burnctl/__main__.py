from __future__ import annotations

import sys

from burnctl.cli import main

sys.exit(main())
