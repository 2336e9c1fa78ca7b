import sys

from sigil_oracle.cli.oracle import main

sys.exit(main())
