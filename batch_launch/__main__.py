"""Allow ``python -m batch_launch``."""

import sys

from batch_launch.cli import main

sys.exit(main())
