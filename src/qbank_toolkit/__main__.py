import sys

from qbank_toolkit.cli import main

sys.exit(main())
