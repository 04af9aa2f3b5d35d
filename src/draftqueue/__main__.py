import sys

from draftqueue.cli import main

sys.exit(main())
