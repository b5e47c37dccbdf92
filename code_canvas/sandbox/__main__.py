"""Child-process entry point: ``python -m code_canvas.sandbox``."""

import sys

from .runner import main

sys.exit(main())
