import sys

from learnsync.cli import main

sys.exit(main())
