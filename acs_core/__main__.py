import sys

from acs_core.cli import main

sys.exit(main())
