import sys

from sftpsync.cli import main

sys.exit(main())
