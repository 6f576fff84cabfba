import sys

from chainguard.cli import main

sys.exit(main())
