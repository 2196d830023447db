import sys

from graphsplit.cli import main

sys.exit(main())
