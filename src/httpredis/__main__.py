import sys

from httpredis.cli import main

sys.exit(main())
