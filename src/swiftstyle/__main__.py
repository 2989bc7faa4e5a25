import sys

from swiftstyle.cli import main

sys.exit(main())
