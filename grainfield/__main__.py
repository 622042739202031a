import sys

from grainfield.cli import main

sys.exit(main())
