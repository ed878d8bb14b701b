"""Allow running taskshell as ``python -m taskshell``."""

import sys

from .cli import main

sys.exit(main())
