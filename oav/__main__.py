import sys

from oav.cli import main

sys.exit(main())
